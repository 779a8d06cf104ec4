"""
Base class and shared helpers for upstream event source adapters.

Every adapter maps one upstream API's native items onto ``Event``. Failures
are scoped to a single source: an unreachable or malformed upstream yields an
empty event list for that source (``None`` for adapters whose failure must
not overwrite history, see ``failure_returns_none``), never an exception.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from community_calendar.config import Settings, settings
from community_calendar.schemas import (
    DEFAULT_LOCATION,
    Event,
    EventSourcesConfig,
    SourceConfig,
    SourceEvents,
)
from community_calendar.services.date_resolver import get_calendar_timezone
from community_calendar.services.source_cache import SourceCache
from community_calendar.services.tag_classifier import (
    TagClassifier,
    default_tag_classifier,
)
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.text_processing import unique_preserving_order

logger = setup_logger("event_sources")

PayloadT = TypeVar("PayloadT", bound=BaseModel)

UNTITLED_EVENT = "Untitled Event"


def apply_title_affixes(source: SourceConfig, title: str | None) -> str:
    return f"{source.prefix_title or ''}{title or UNTITLED_EVENT}{source.suffix_title or ''}"


def apply_description_suffix(source: SourceConfig, description: str | None) -> str:
    return f"{description or ''}{source.suffix_description or ''}"


def resolve_location(source: SourceConfig, *candidates: str | None) -> str:
    """First non-blank candidate, then the source default, then the global placeholder."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return source.default_location or DEFAULT_LOCATION


def join_address_parts(*parts: str | None) -> str:
    return ", ".join(part.strip() for part in parts if part and part.strip())


def title_date_event_id(start: datetime, title: str | None) -> str:
    """
    Fallback id for items without a stable upstream id:
    ``YYMMDDHHMM`` in calendar time plus the first three letters of the title.
    """
    local = start.astimezone(get_calendar_timezone())
    letters = "".join(ch for ch in (title or "und") if ch.isascii() and ch.isalpha())
    return f"{local:%y%m%d%H%M}{letters[:3].lower()}"


class EventSourceAdapter(ABC):
    """
    One upstream API.

    Subclasses set ``source_type`` (the route/cache name), ``config_key`` (the
    ``EventSourcesConfig`` attribute holding their sources) and
    ``required_settings`` (credential settings that must be present before a
    sync run starts), and implement ``fetch_events``.
    """

    source_type: str = ""
    config_key: str = ""
    display_name: str = ""
    required_settings: tuple[str, ...] = ()
    failure_returns_none: bool = False

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tag_classifier: TagClassifier | None = None,
        cache: SourceCache | None = None,
        app_settings: Settings | None = None,
    ):
        self.http_client = http_client
        self.tag_classifier = tag_classifier or default_tag_classifier
        self.cache = cache
        self.settings = app_settings or settings

    # ----- configuration -----

    def configured_sources(self, config: EventSourcesConfig) -> list[SourceConfig]:
        return list(getattr(config, self.config_key, []) or [])

    def sources_needing_credentials(self, sources: Sequence[SourceConfig]) -> list[SourceConfig]:
        return list(sources)

    def missing_credentials(self, sources: Sequence[SourceConfig]) -> list[str]:
        """Environment variable names this adapter needs for ``sources`` but lacks."""
        if not self.sources_needing_credentials(sources):
            return []
        missing = []
        for name in self.required_settings:
            if not getattr(self.settings, name, None):
                field = Settings.model_fields[name]
                missing.append(field.alias or name.upper())
        return missing

    def log_prefix(self, source: SourceConfig) -> str:
        return f"[{self.display_name or self.source_type} {source.name}]"

    # ----- fetching -----

    @abstractmethod
    async def fetch_events(self, source: SourceConfig) -> list[Event] | None:
        """Fetch and normalize one source's events. ``None`` marks the source as failed."""

    async def fetch(self, source: SourceConfig) -> SourceEvents | None:
        result, _ = await self.fetch_with_status(source)
        return result

    async def fetch_with_status(self, source: SourceConfig) -> tuple[SourceEvents | None, bool]:
        """
        Fetch one source through the cache. Returns the result and whether the
        upstream fetch failed; failed results are never cached.
        """
        if self.cache is None:
            return await self._fetch_uncached(source)

        async def load() -> tuple[tuple[SourceEvents | None, bool], bool]:
            outcome = await self._fetch_uncached(source)
            return outcome, not outcome[1]

        return await self.cache.get_or_load(SourceCache.key(self.source_type, source.identifier), load)

    async def _fetch_uncached(self, source: SourceConfig) -> tuple[SourceEvents | None, bool]:
        log_prefix = self.log_prefix(source)
        failed = False
        try:
            events = await self.fetch_events(source)
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"{log_prefix} Upstream returned {e.response.status_code}: {e.response.text[:150]}"
            )
            failed = True
            events = self._failure_result()
        except httpx.HTTPError as e:
            logger.warning(f"{log_prefix} Request failed: {type(e).__name__}: {e}")
            failed = True
            events = self._failure_result()
        except ValueError as e:
            logger.warning(f"{log_prefix} Malformed upstream payload: {e}")
            failed = True
            events = self._failure_result()

        if events is None:
            return None, True

        logger.info(f"{log_prefix} Fetched {len(events)} event(s)")
        return SourceEvents(name=source.name, city=source.city, events=events), failed

    async def fetch_all(self, config: EventSourcesConfig) -> list[SourceEvents | None]:
        sources = self.configured_sources(config)
        results = await asyncio.gather(
            *(self.fetch(source) for source in sources), return_exceptions=True
        )
        output: list[SourceEvents | None] = []
        for source, result in zip(sources, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    f"{self.log_prefix(source)} Unexpected error: {result}", exc_info=result
                )
                output.append(None)
            else:
                output.append(result)
        return output

    def _failure_result(self) -> list[Event] | None:
        return None if self.failure_returns_none else []

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = await self.http_client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()

    # ----- normalization -----

    def validate_items(
        self,
        items: Iterable[Any],
        model: type[PayloadT],
        source: SourceConfig,
    ) -> list[PayloadT]:
        """Validate raw upstream items, logging and skipping the ones that don't fit."""
        valid: list[PayloadT] = []
        for index, item in enumerate(items):
            try:
                valid.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    f"{self.log_prefix(source)} Skipping malformed item #{index}: {e.errors()[0].get('msg')}"
                )
        return valid

    def build_event(
        self,
        source: SourceConfig,
        *,
        event_id: str,
        title: str | None,
        start: datetime,
        end: datetime | None = None,
        default_duration: timedelta = timedelta(hours=1),
        description: str | None = None,
        url: str | None = None,
        location: str | None = None,
        images: Iterable[str | None] = (),
        org: str | None = None,
        extra_tag_text: Iterable[str | None] = (),
    ) -> Event | None:
        """
        Apply the source's title/description affixes, location fallback,
        image dedup and tag classification. Returns None (logged) when the
        item cannot form a valid event.
        """
        full_title = apply_title_affixes(source, title)
        full_description = apply_description_suffix(source, description)
        organization = org or source.name
        end = end or start + default_duration

        try:
            return Event(
                id=event_id,
                title=full_title,
                org=organization,
                start=start,
                end=end,
                url=url,
                location=resolve_location(source, location),
                description=full_description,
                images=unique_preserving_order(images),
                tags=self.tag_classifier.classify_for_source(
                    source, full_title, full_description, *extra_tag_text
                ),
            )
        except ValidationError as e:
            logger.warning(
                f"{self.log_prefix(source)} Dropping event '{full_title}' ({event_id}): {e.errors()[0].get('msg')}"
            )
            return None
