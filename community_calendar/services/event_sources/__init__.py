"""
Event source adapters and the configuration they are driven by.
"""

import json
from pathlib import Path

import httpx
from pydantic import ValidationError

from community_calendar.config import settings
from community_calendar.exceptions import ConfigurationError
from community_calendar.schemas import (
    ApifyDatasetSource,
    EventbriteSource,
    EventSourcesConfig,
    GoogleCalendarSource,
    InstagramSource,
    MeetupSource,
    SourceConfig,
)
from community_calendar.services.event_extractor import EventExtractor
from community_calendar.services.event_sources.apify import (
    ApifyEventsAdapter,
    ApifyMeetupAdapter,
)
from community_calendar.services.event_sources.base import EventSourceAdapter
from community_calendar.services.event_sources.eventbrite import EventbriteAdapter
from community_calendar.services.event_sources.google_calendar import (
    GoogleCalendarAdapter,
)
from community_calendar.services.event_sources.instagram import InstagramAdapter
from community_calendar.services.event_sources.instagram_archive import (
    InstagramArchiveAdapter,
)
from community_calendar.services.event_sources.meetup import MeetupAdapter
from community_calendar.services.ocr_service import OCRService
from community_calendar.services.source_cache import SourceCache
from community_calendar.services.tag_classifier import TagClassifier
from community_calendar.utils.logger import setup_logger

logger = setup_logger("event_sources_config")

# JSON key -> (EventSourcesConfig field, source model)
SOURCE_SECTIONS: dict[str, tuple[str, type[SourceConfig]]] = {
    "googleCalendar": ("google_calendar", GoogleCalendarSource),
    "instagram": ("instagram", InstagramSource),
    "eventbrite": ("eventbrite", EventbriteSource),
    "meetup": ("meetup", MeetupSource),
    "apifyMeetup": ("apify_meetup", ApifyDatasetSource),
    "apify": ("apify", ApifyDatasetSource),
}

ADAPTER_TYPES: dict[str, type[EventSourceAdapter]] = {
    adapter.source_type: adapter
    for adapter in (
        GoogleCalendarAdapter,
        InstagramAdapter,
        InstagramArchiveAdapter,
        EventbriteAdapter,
        MeetupAdapter,
        ApifyMeetupAdapter,
        ApifyEventsAdapter,
    )
}


def parse_event_sources(raw: dict, origin: str = "event sources") -> EventSourcesConfig:
    """
    Validate each configured source on its own so that one malformed entry
    only drops that entry.
    """
    sections: dict[str, list[SourceConfig]] = {}
    for key, (field_name, model) in SOURCE_SECTIONS.items():
        entries = raw.get(key) or []
        if not isinstance(entries, list):
            logger.warning(f"[{origin}] '{key}' is not a list; ignoring it")
            continue
        valid = []
        for index, entry in enumerate(entries):
            try:
                valid.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    f"[{origin}] Skipping invalid '{key}' entry #{index}: {e.errors()[0].get('msg')}"
                )
        sections[field_name] = valid
    return EventSourcesConfig(**sections)


def load_event_sources(
    path: Path | str | None = None,
    env_value: str | None = None,
) -> EventSourcesConfig:
    """
    Read ``event_sources.json`` and append the Google Calendar sources given
    as JSON in ``EVENT_SOURCES_ENV``. A missing or unparseable file raises
    ``ConfigurationError``; individual invalid entries are only skipped.
    """
    path = Path(path or settings.event_sources_file)
    env_value = env_value if env_value is not None else settings.event_sources_env

    if not path.exists():
        raise ConfigurationError(f"Event sources file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Event sources file {path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Event sources file {path} must contain a JSON object")

    config = parse_event_sources(raw, origin=path.name)

    if env_value:
        try:
            env_raw = json.loads(env_value)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"EVENT_SOURCES_ENV is not valid JSON: {e}") from e
        env_config = parse_event_sources(
            {"googleCalendar": env_raw.get("googleCalendar") or []}
            if isinstance(env_raw, dict)
            else {},
            origin="EVENT_SOURCES_ENV",
        )
        if env_config.google_calendar:
            logger.info(
                f"Adding {len(env_config.google_calendar)} Google Calendar source(s) from EVENT_SOURCES_ENV"
            )
            config.google_calendar.extend(env_config.google_calendar)

    return config


def build_adapters(
    http_client: httpx.AsyncClient,
    *,
    extractor: EventExtractor | None = None,
    ocr: OCRService | None = None,
    cache: SourceCache | None = None,
    tag_classifier: TagClassifier | None = None,
    types: list[str] | None = None,
) -> list[EventSourceAdapter]:
    """One adapter per requested source type (all types when ``types`` is None)."""
    selected = types or list(ADAPTER_TYPES)
    unknown = [name for name in selected if name not in ADAPTER_TYPES]
    if unknown:
        raise ValueError(f"Unknown source type(s): {unknown}. Available: {list(ADAPTER_TYPES)}")

    adapters: list[EventSourceAdapter] = []
    for name in selected:
        common = {"tag_classifier": tag_classifier, "cache": cache}
        if name == InstagramAdapter.source_type:
            adapters.append(InstagramAdapter(http_client, extractor=extractor, ocr=ocr, **common))
        else:
            adapters.append(ADAPTER_TYPES[name](http_client, **common))
    return adapters


__all__ = [
    "ADAPTER_TYPES",
    "ApifyEventsAdapter",
    "ApifyMeetupAdapter",
    "EventSourceAdapter",
    "EventbriteAdapter",
    "GoogleCalendarAdapter",
    "InstagramAdapter",
    "InstagramArchiveAdapter",
    "MeetupAdapter",
    "build_adapters",
    "load_event_sources",
    "parse_event_sources",
]
