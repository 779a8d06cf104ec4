"""
Instagram adapter - business accounts read through the Graph API.

Posts carry no structured event data. Each post's caption plus the text on
its flyer images (OCR) goes to the LLM extractor, whose date fragments the
date resolver turns into concrete times. The business-discovery endpoint
only returns the most recent media, so a failed fetch returns ``None`` and
the previous snapshot entry is kept instead of being overwritten.
"""

import asyncio
from datetime import datetime, timedelta

from openai import OpenAIError

from community_calendar.exceptions import EventDateError
from community_calendar.schemas import (
    Event,
    ExtractionContext,
    InstagramMedia,
    InstagramSource,
)
from community_calendar.services.date_resolver import (
    get_calendar_timezone,
    resolve_event_times,
)
from community_calendar.services.event_deduplicator import remove_duplicate_events
from community_calendar.services.event_extractor import EventExtractor
from community_calendar.services.event_sources.base import EventSourceAdapter
from community_calendar.services.ocr_service import NullOCR, OCRService
from community_calendar.utils.logger import setup_logger

logger = setup_logger("instagram_source")

GRAPH_API_URL = "https://graph.facebook.com/{version}/{user_id}"
MEDIA_FIELDS = (
    "id,caption,media_type,media_url,thumbnail_url,permalink,timestamp,"
    "children{media_url,media_type,thumbnail_url}"
)
RATE_LIMIT_SIGNATURE = "(#4)"

DEFAULT_EVENT_TITLE = "Instagram Event"
FLYER_ONLY_DESCRIPTION = "See flyer image for details."
MIN_CAPTION_CHARS = 5
MIN_OCR_CHARS = 10


def business_discovery_fields(username: str, limit: int) -> str:
    return f"business_discovery.username({username}){{media.limit({limit}){{{MEDIA_FIELDS}}}}}"


class InstagramAdapter(EventSourceAdapter):
    source_type = "instagram"
    config_key = "instagram"
    display_name = "Instagram"
    required_settings = (
        "instagram_business_user_id",
        "instagram_user_access_token",
        "openai_api_key",
    )
    failure_returns_none = True

    def __init__(
        self,
        http_client,
        extractor: EventExtractor | None = None,
        ocr: OCRService | None = None,
        **kwargs,
    ):
        super().__init__(http_client, **kwargs)
        self.extractor = extractor
        self.ocr = ocr or NullOCR()

    def configured_sources(self, config) -> list[InstagramSource]:
        return [source for source in config.instagram if source.username]

    def log_prefix(self, source: InstagramSource) -> str:
        return f"[Instagram @{source.username}]"

    async def fetch_media(self, source: InstagramSource) -> list[InstagramMedia] | None:
        log_prefix = self.log_prefix(source)
        response = await self.http_client.get(
            GRAPH_API_URL.format(
                version=self.settings.instagram_graph_api_version,
                user_id=self.settings.instagram_business_user_id,
            ),
            params={
                "fields": business_discovery_fields(
                    source.username, self.settings.instagram_media_limit
                ),
                "access_token": self.settings.instagram_user_access_token,
            },
        )

        if response.is_error:
            if RATE_LIMIT_SIGNATURE in response.text:
                logger.warning(f"{log_prefix} [Rate Limit] Account temporarily blocked")
            else:
                logger.warning(
                    f"{log_prefix} [API Error] returned {response.status_code}: {response.text[:150]}"
                )
            return None

        data = response.json()
        discovery = data.get("business_discovery") if isinstance(data, dict) else None
        if not discovery:
            logger.warning(
                f"{log_prefix} [Data Missing] No business data returned; likely a personal or age-gated account. "
                f"Response: {str(data)[:200]}"
            )
            return None

        raw_posts = (discovery.get("media") or {}).get("data") or []
        if not raw_posts:
            logger.warning(f"{log_prefix} Account exists but has 0 posts available to the API")
            return None

        posts = self.validate_items(raw_posts, InstagramMedia, source)
        logger.info(f"{log_prefix} Fetched {len(posts)} posts from API")
        return posts

    async def read_flyers(self, media_urls: list[str]) -> tuple[str, int]:
        """OCR the first images of a post concurrently; returns the labelled text and its raw length."""
        images = media_urls[: self.settings.ocr_max_images_per_post]
        if not images:
            return "", 0
        texts = await asyncio.gather(*(self.ocr.extract_text(url) for url in images))
        labelled = "\n".join(
            f"\n--- IMG {index} ---\n{text}\n" for index, text in enumerate(texts, start=1)
        )
        return labelled, sum(len(text.strip()) for text in texts)

    async def fetch_events(self, source: InstagramSource) -> list[Event] | None:
        if self.extractor is None:
            logger.error(f"{self.log_prefix(source)} No event extractor configured; skipping")
            return None

        posts = await self.fetch_media(source)
        if posts is None:
            return None

        now = datetime.now(get_calendar_timezone())
        events: list[Event] = []
        for number, post in enumerate(posts, start=1):
            events.extend(await self.process_post(source, post, number, now))

        window = timedelta(minutes=self.settings.duplicate_window_minutes)
        return remove_duplicate_events(events, window=window)

    async def process_post(
        self, source: InstagramSource, post: InstagramMedia, number: int, now: datetime
    ) -> list[Event]:
        log_prefix = f"{self.log_prefix(source)} Post {number}"
        caption = post.caption or ""
        media_urls = post.media_urls()

        if not media_urls and not caption:
            logger.debug(f"{log_prefix} [Skip] No media URL and no caption")
            return []

        ocr_text, ocr_chars = await self.read_flyers(media_urls)
        if len(caption) < MIN_CAPTION_CHARS and ocr_chars < MIN_OCR_CHARS:
            logger.debug(
                f"{log_prefix} [Skip] Not enough text (caption: {len(caption)} chars, OCR: {ocr_chars} chars)"
            )
            return []

        context = ExtractionContext(
            source_name=source.name,
            post_date=post.timestamp.astimezone(get_calendar_timezone()),
            context_clues=source.context_clues,
        )
        try:
            extracted = await self.extractor.extract(caption, ocr_text, context)
        except OpenAIError as e:
            logger.warning(f"{log_prefix} Extraction failed, skipping post: {type(e).__name__}: {e}")
            return []

        if not extracted:
            return []
        logger.info(f"{log_prefix} ({context.post_date_text}): found {len(extracted)} event(s)")

        events: list[Event] = []
        for candidate in extracted:
            try:
                start, end = resolve_event_times(candidate, now=now)
            except EventDateError as e:
                logger.info(f"{log_prefix} Skipped event '{candidate.title}': {e}")
                continue

            description = caption or (FLYER_ONLY_DESCRIPTION if ocr_chars else "")
            event = self.build_event(
                source,
                event_id=f"ig-{post.id}-{len(events) + 1}",
                title=candidate.title or DEFAULT_EVENT_TITLE,
                start=start,
                end=end,
                description=description,
                url=post.permalink,
                location=candidate.location,
                images=media_urls,
                extra_tag_text=[source.name, ocr_text],
            )
            if event is not None:
                events.append(event)
        return events
