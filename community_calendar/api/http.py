"""
HTTP API Routes - the public calendar feed, per-source live feeds, iCalendar
export, calendar submissions and the cron sync trigger.
"""

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from community_calendar.dependencies.auth import verify_cron_secret
from community_calendar.dependencies.services import (
    get_calendar_sync_service,
    get_event_sources_config,
    get_http_client,
    get_moderation_service,
    get_snapshot_store,
    get_source_cache,
)
from community_calendar.exceptions import SubmissionValidationError
from community_calendar.schemas import (
    CalendarFeedResponse,
    CalendarSubmission,
    EventSourcesConfig,
    SourcesResponse,
    SubmitCalendarResponse,
    SyncReport,
)
from community_calendar.services.calendar_sync import CalendarSyncService
from community_calendar.services.event_sources import ADAPTER_TYPES, build_adapters
from community_calendar.services.event_sources.instagram import InstagramAdapter
from community_calendar.services.ics_generator import generate_ics, ics_filename
from community_calendar.services.moderation_service import ModerationService
from community_calendar.services.snapshot_store import SnapshotStore
from community_calendar.services.source_cache import SourceCache
from community_calendar.utils.logger import setup_logger

logger = setup_logger("api")

router = APIRouter(prefix="/api")


@router.get("/")
async def read_root():
    """API health check endpoint."""
    return {"message": "Community Calendar API is running!"}


@router.get("/calendar-data", response_model=CalendarFeedResponse)
async def get_calendar_data(store: SnapshotStore = Depends(get_snapshot_store)):
    """The persisted snapshot, without sources that currently have no events."""
    entries = store.load()
    return CalendarFeedResponse(body=[entry for entry in entries if entry.events])


@router.get("/events/{source_type}", response_model=CalendarFeedResponse)
async def get_source_type_events(
    source_type: str,
    config: EventSourcesConfig = Depends(get_event_sources_config),
    store: SnapshotStore = Depends(get_snapshot_store),
    cache: SourceCache = Depends(get_source_cache),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """
    Live events of every configured source of one type, served through the
    source cache. Instagram extraction is too slow and costly to run per
    request, so ``instagram`` serves the synced snapshot instead.
    """
    if source_type not in ADAPTER_TYPES:
        raise HTTPException(status_code=404, detail=f"Unknown source type: {source_type}")

    if source_type == InstagramAdapter.source_type:
        names = {source.name for source in config.instagram if source.username}
        entries = [entry for entry in store.load() if entry.name in names and entry.events]
        return CalendarFeedResponse(body=entries)

    adapter = build_adapters(http_client, cache=cache, types=[source_type])[0]
    sources = adapter.configured_sources(config)
    missing = adapter.missing_credentials(sources)
    if missing:
        logger.error(f"[{source_type}] Cannot fetch live events; missing {missing}")
        return CalendarFeedResponse(body=[])

    results = await adapter.fetch_all(config)
    return CalendarFeedResponse(body=[result for result in results if result is not None])


@router.get("/events/{event_id}/ics")
async def download_event_ics(
    event_id: str,
    store: SnapshotStore = Depends(get_snapshot_store),
):
    """iCalendar file for one event of the snapshot."""
    for entry in store.load():
        for event in entry.events:
            if event.id == event_id:
                return Response(
                    content=generate_ics(event),
                    media_type="text/calendar; charset=utf-8",
                    headers={
                        "Content-Disposition": f'attachment; filename="{ics_filename(event)}"'
                    },
                )
    raise HTTPException(status_code=404, detail="Event not found")


@router.get("/sources", response_model=SourcesResponse)
async def list_sources(moderation: ModerationService = Depends(get_moderation_service)):
    """All approved sources with their display metadata."""
    return SourcesResponse(sources=await moderation.list_sources())


@router.post("/submit-calendar", response_model=SubmitCalendarResponse)
async def submit_calendar(
    submission: CalendarSubmission,
    moderation: ModerationService = Depends(get_moderation_service),
):
    """Queue a community Google Calendar for admin review."""
    try:
        return await moderation.submit(submission)
    except SubmissionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post(
    "/cron/sync",
    response_model=SyncReport,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_calendar_sync(
    dry_run: bool = Query(False),
    config: EventSourcesConfig = Depends(get_event_sources_config),
    sync_service: CalendarSyncService = Depends(get_calendar_sync_service),
    cache: SourceCache = Depends(get_source_cache),
):
    """Fetch every configured source, merge into the snapshot and save it."""
    report = await sync_service.run(config, dry_run=dry_run)
    if not dry_run:
        cache.clear()
    return report
