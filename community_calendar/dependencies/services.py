"""
FastAPI dependencies handing out the process-wide services created in the
application lifespan (stored on ``app.state``).
"""

import httpx
from fastapi import Depends, HTTPException, Request, status

from community_calendar.schemas import EventSourcesConfig
from community_calendar.services.calendar_sync import CalendarSyncService
from community_calendar.services.event_extractor import EventExtractor
from community_calendar.services.event_sources import build_adapters, load_event_sources
from community_calendar.services.moderation_service import ModerationService
from community_calendar.services.ocr_service import OCRService
from community_calendar.services.snapshot_store import SnapshotStore
from community_calendar.services.source_cache import SourceCache
from community_calendar.utils.logger import setup_logger

logger = setup_logger("dependencies")


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_source_cache(request: Request) -> SourceCache:
    return request.app.state.source_cache


def get_snapshot_store(request: Request) -> SnapshotStore:
    return request.app.state.snapshot_store


def get_event_extractor(request: Request) -> EventExtractor | None:
    return request.app.state.event_extractor


def get_ocr_service(request: Request) -> OCRService:
    return request.app.state.ocr_service


def get_event_sources_config() -> EventSourcesConfig:
    return load_event_sources()


def get_moderation_service(request: Request) -> ModerationService:
    """FastAPI dependency to get the moderation service backed by the document store."""
    store = request.app.state.document_store
    if store is None:
        logger.error(
            "Moderation requested, but no document store is configured. Set GITHUB_TOKEN."
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Submission storage is not configured.",
        )
    return ModerationService(store)


def get_calendar_sync_service(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    extractor: EventExtractor | None = Depends(get_event_extractor),
    ocr: OCRService = Depends(get_ocr_service),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> CalendarSyncService:
    adapters = build_adapters(http_client, extractor=extractor, ocr=ocr)
    return CalendarSyncService(adapters, store)
