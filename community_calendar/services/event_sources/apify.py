"""
Apify dataset adapters.

Scraper runs on Apify leave their results in a dataset. A source either names
the dataset (``datasetId``, fetched live with ``APIFY_API_TOKEN``) or a saved
export of it under the assets directory (``jsonFile``).
"""

import json
import re
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from community_calendar.schemas import (
    ApifyDatasetSource,
    ApifyEventItem,
    ApifyMeetupItem,
    Event,
)
from community_calendar.services.date_resolver import get_calendar_timezone
from community_calendar.services.event_sources.base import (
    EventSourceAdapter,
    join_address_parts,
    title_date_event_id,
)
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.text_processing import find_image_urls

logger = setup_logger("apify_source")

APIFY_DATASET_ITEMS_URL = "https://api.apify.com/v2/datasets/{dataset_id}/items"

APIFY_MEETUP_DEFAULT_DURATION = timedelta(hours=2)
APIFY_DEFAULT_DURATION = timedelta(hours=1)

_HOURS_RE = re.compile(r"(\d+)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?|m)\b", re.IGNORECASE)


def parse_duration(text: str | None) -> timedelta | None:
    """Parse strings like "4 hr", "30 min" or "1h 30m". None when nothing is recognised."""
    if not text:
        return None
    total = timedelta()
    hours = _HOURS_RE.search(text)
    minutes = _MINUTES_RE.search(text)
    if hours:
        total += timedelta(hours=int(hours.group(1)))
    if minutes:
        total += timedelta(minutes=int(minutes.group(1)))
    return total or None


def parse_timestamp(value: str) -> datetime:
    """ISO 8601 timestamp; naive values are read as calendar-local time."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=get_calendar_timezone())
    return parsed


def hashtag_suffix(tags: Sequence[str]) -> str:
    cleaned = [re.sub(r"\s+", "", tag) for tag in tags if tag and tag.strip()]
    if not cleaned:
        return ""
    return " " + " ".join(f"#{tag}" for tag in cleaned)


class _ApifyDatasetAdapter(EventSourceAdapter):
    required_settings = ("apify_api_token",)

    def sources_needing_credentials(self, sources):
        return [source for source in sources if source.dataset_id]

    async def load_items(self, source: ApifyDatasetSource) -> list[Any]:
        if source.dataset_id:
            data = await self.get_json(
                APIFY_DATASET_ITEMS_URL.format(dataset_id=source.dataset_id),
                params={"token": self.settings.apify_api_token, "clean": "true"},
            )
        else:
            path = self.settings.assets_dir / source.json_file
            if not path.exists():
                logger.error(f"{self.log_prefix(source)} Dataset export not found: {path}")
                return []
            data = json.loads(path.read_text(encoding="utf-8"))

        if not isinstance(data, list):
            raise ValueError("dataset items are not a JSON array")
        return data


class ApifyMeetupAdapter(_ApifyDatasetAdapter):
    """Datasets produced by the Meetup scraper actor."""

    source_type = "apifyMeetup"
    config_key = "apify_meetup"
    display_name = "Apify Meetup"

    async def fetch_events(self, source: ApifyDatasetSource) -> list[Event]:
        items = await self.load_items(source)
        events: list[Event] = []
        for item in self.validate_items(items, ApifyMeetupItem, source):
            event = self.map_item(source, item)
            if event is not None:
                events.append(event)
        return events

    def map_item(self, source: ApifyDatasetSource, item: ApifyMeetupItem) -> Event | None:
        start = item.date_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=get_calendar_timezone())

        description = (item.description or "") + (source.suffix_description or "")
        description += hashtag_suffix(item.tags)

        location = None
        if item.location:
            location = join_address_parts(item.location.venue, item.location.address)

        group_image = item.group.image if item.group else None
        return self.build_event(
            # Suffix already placed before the hashtags
            source.model_copy(update={"suffix_description": None}),
            event_id=f"apify-{item.id}" if item.id else title_date_event_id(start, item.title),
            title=item.title,
            start=start,
            end=start + APIFY_MEETUP_DEFAULT_DURATION,
            description=description,
            url=item.url,
            location=location,
            images=[item.image, *find_image_urls(description), group_image],
            org=item.group.name if item.group else None,
        )


class ApifyEventsAdapter(_ApifyDatasetAdapter):
    """Generic event datasets (Facebook/Eventbrite-style scrapers)."""

    source_type = "apify"
    config_key = "apify"
    display_name = "Apify"

    async def fetch_events(self, source: ApifyDatasetSource) -> list[Event]:
        items = await self.load_items(source)
        events: list[Event] = []
        for item in self.validate_items(items, ApifyEventItem, source):
            event = self.map_item(source, item)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def item_location(item: ApifyEventItem) -> str | None:
        if isinstance(item.location, dict):
            name = item.location.get("name")
            return name if isinstance(name, str) else None
        if isinstance(item.location, str):
            return item.location
        return None

    def map_item(self, source: ApifyDatasetSource, item: ApifyEventItem) -> Event | None:
        title = item.name or item.title
        try:
            start = parse_timestamp(item.raw_start)
            end = parse_timestamp(item.raw_end) if item.raw_end else None
        except ValueError:
            logger.warning(
                f"{self.log_prefix(source)} Skipping '{title}': unparseable date {item.raw_start!r}"
            )
            return None

        if end is None:
            end = start + (parse_duration(item.duration) or APIFY_DEFAULT_DURATION)

        description = item.description or ""
        return self.build_event(
            source,
            event_id=f"apify-{item.id}" if item.id else title_date_event_id(start, title),
            title=title,
            start=start,
            end=end,
            description=description,
            url=item.event_url or item.url,
            location=self.item_location(item),
            images=[item.image_url, item.cover_url, *find_image_urls(description)],
        )
