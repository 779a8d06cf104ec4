"""
Instagram archive adapter - previously scraped posts saved under assets.

No LLM here: a keyword filter decides whether a caption announces an event,
and dates come from a heuristic caption parse.
"""

import json
import re
from datetime import datetime, timedelta

from community_calendar.schemas import Event, InstagramArchivePost, InstagramSource
from community_calendar.services.date_resolver import (
    get_calendar_timezone,
    parse_caption_date,
)
from community_calendar.services.event_sources.base import EventSourceAdapter
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.text_processing import truncate

logger = setup_logger("instagram_archive_source")

EVENT_KEYWORDS = (
    "join us",
    "link in bio",
    "starts at",
    "pm",
    "am",
    "where:",
    "when:",
    "rsvp",
    "save the date",
    "tickets",
    "tomorrow",
    "tonight",
    "this weekend",
    "workshop",
    "celebration",
    "parade",
    "market",
)
ARCHIVE_DEFAULT_LOCATION = "Instagram Live"
ARCHIVE_DEFAULT_TITLE = "Instagram Post"
TITLE_MAX_CHARS = 60
ARCHIVE_EVENT_DURATION = timedelta(hours=1)


def is_likely_event(caption: str | None) -> bool:
    if not caption:
        return False
    lowered = caption.lower()
    return any(keyword in lowered for keyword in EVENT_KEYWORDS)


def extract_title(caption: str | None) -> str:
    if not caption:
        return ARCHIVE_DEFAULT_TITLE
    return truncate(caption.split("\n")[0], TITLE_MAX_CHARS)


def archive_event_id(post: InstagramArchivePost, start: datetime, title: str) -> str:
    """The post id (or short code); posts without either get a date and title slug."""
    if post.id or post.short_code:
        return f"ig-{post.id or post.short_code}"
    local = start.astimezone(get_calendar_timezone())
    slug = re.sub(r"[^a-zA-Z0-9]", "", title)[:5].lower()
    return f"ig-{local:%y%m%d}-{slug}"


class InstagramArchiveAdapter(EventSourceAdapter):
    source_type = "archiveInstagram"
    config_key = "instagram"
    display_name = "Instagram archive"

    def configured_sources(self, config) -> list[InstagramSource]:
        return [source for source in config.instagram if source.json_file and not source.username]

    async def fetch_events(self, source: InstagramSource) -> list[Event]:
        path = self.settings.assets_dir / source.json_file
        if not path.exists():
            logger.error(f"{self.log_prefix(source)} Instagram archive not found: {path}")
            return []

        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("archive is not a JSON array of posts")

        posts = self.validate_items(raw, InstagramArchivePost, source)
        logger.info(f"{self.log_prefix(source)} Processing {len(posts)} archived posts")

        events: list[Event] = []
        seen_ids: dict[str, int] = {}
        for post in posts:
            if not is_likely_event(post.caption):
                continue
            event = self.map_post(source, post)
            if event is None:
                continue
            count = seen_ids.get(event.id, 0) + 1
            seen_ids[event.id] = count
            if count > 1:
                event = event.model_copy(update={"id": f"{event.id}-{count}"})
            events.append(event)
        return events

    def map_post(self, source: InstagramSource, post: InstagramArchivePost) -> Event | None:
        caption = post.caption or ""
        title = extract_title(caption)
        start = parse_caption_date(caption, post.timestamp)
        logger.debug(
            f"{self.log_prefix(source)} [MATCH] Post {post.short_code or post.id}: '{title}' at {start.isoformat()}"
        )

        images = [post.display_url]
        images.extend(image for image in post.images if isinstance(image, str))
        images.extend(child.get("displayUrl") for child in post.child_posts)

        description = caption + (source.suffix_description or "")
        if post.hashtags:
            description += " " + " ".join(f"#{tag}" for tag in post.hashtags)

        return self.build_event(
            # Suffix already placed before the hashtags
            source.model_copy(
                update={
                    "suffix_description": None,
                    "default_location": source.default_location or ARCHIVE_DEFAULT_LOCATION,
                }
            ),
            event_id=archive_event_id(post, start, title),
            title=title,
            start=start,
            end=start + ARCHIVE_EVENT_DURATION,
            description=description,
            url=post.url,
            location=post.location_name,
            images=images,
            org=post.owner_full_name,
        )
