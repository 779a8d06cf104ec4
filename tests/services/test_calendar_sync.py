import asyncio

import pytest

from community_calendar.config import settings
from community_calendar.exceptions import ConfigurationError
from community_calendar.schemas import EventSourcesConfig, SourceEvents
from community_calendar.services.calendar_sync import CalendarSyncService
from community_calendar.services.event_sources.base import EventSourceAdapter

SYNC_SETTINGS = settings.model_copy(
    update={"sync_batch_size": 2, "sync_batch_delay_seconds": 0, "source_timeout_seconds": 0.2}
)


class ScriptedAdapter(EventSourceAdapter):
    """Answers each source by name: a list of events, None, an exception or a delay in seconds."""

    source_type = "scripted"
    config_key = "meetup"

    def __init__(self, script, **kwargs):
        super().__init__(None, **kwargs)
        self.script = script

    async def fetch_events(self, source):
        outcome = self.script[source.name]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
            return []
        return outcome


class CredentialedAdapter(ScriptedAdapter):
    source_type = "credentialed"
    required_settings = ("eventbrite_api_key",)


def config_with(*names: str) -> EventSourcesConfig:
    return EventSourcesConfig.model_validate(
        {"meetup": [{"name": name, "groupUrlName": name.lower()} for name in names]}
    )


@pytest.mark.asyncio
async def test_run_merges_and_carries_failures_forward(snapshot_store, make_event):
    snapshot_store.save(
        [
            SourceEvents(name="Failing", events=[make_event("old-f")]),
            SourceEvents(name="Working", events=[make_event("old-w", title="Earlier")]),
        ]
    )
    script = {
        "Working": [make_event("new-w", title="Later")],
        "Failing": None,
        "Crashing": RuntimeError("boom"),
        "Slow": 5.0,
        "Empty": [],
    }
    service = CalendarSyncService(
        [ScriptedAdapter(script, app_settings=SYNC_SETTINGS)], snapshot_store, app_settings=SYNC_SETTINGS
    )

    report = await service.run(config_with("Working", "Failing", "Crashing", "Slow", "Empty"))

    assert report.succeeded == ["Working", "Empty"]
    assert report.failed == ["Failing", "Crashing", "Slow"]
    saved = {entry.name: entry for entry in snapshot_store.load()}
    assert set(saved) == {"Working", "Empty", "Failing"}
    assert {event.id for event in saved["Working"].events} == {"old-w", "new-w"}
    assert [event.id for event in saved["Failing"].events] == ["old-f"]
    assert report.sources_written == 3
    assert report.total_events == 3


@pytest.mark.asyncio
async def test_dry_run_does_not_write(snapshot_store, make_event):
    service = CalendarSyncService(
        [ScriptedAdapter({"A": [make_event()]})], snapshot_store, app_settings=SYNC_SETTINGS
    )
    report = await service.run(config_with("A"), dry_run=True)
    assert report.dry_run is True
    assert report.total_events == 1
    assert not snapshot_store.path.exists()


@pytest.mark.asyncio
async def test_missing_credentials_abort_before_fetching(snapshot_store):
    adapter = CredentialedAdapter({}, app_settings=settings.model_copy(update={"eventbrite_api_key": None}))
    service = CalendarSyncService([adapter], snapshot_store, app_settings=SYNC_SETTINGS)

    with pytest.raises(ConfigurationError, match="EVENTBRITE_API_KEY"):
        await service.run(config_with("A"))
    assert not snapshot_store.path.exists()

    # No configured sources means nothing to authenticate
    await service.run(config_with())


def test_plan_pairs_adapters_with_their_sources(snapshot_store):
    adapter = ScriptedAdapter({})
    service = CalendarSyncService([adapter], snapshot_store)
    plan = service.plan(config_with("A", "B"))
    assert [(a, s.name) for a, s in plan] == [(adapter, "A"), (adapter, "B")]


@pytest.mark.asyncio
async def test_upstream_failures_with_empty_results_are_reported_as_failed(snapshot_store, make_event):
    snapshot_store.save([SourceEvents(name="Malformed", events=[make_event("kept")])])
    script = {"Malformed": ValueError("unexpected payload"), "Fine": [make_event("new")]}
    service = CalendarSyncService(
        [ScriptedAdapter(script, app_settings=SYNC_SETTINGS)], snapshot_store, app_settings=SYNC_SETTINGS
    )

    report = await service.run(config_with("Malformed", "Fine"))

    assert report.failed == ["Malformed"]
    assert report.succeeded == ["Fine"]
    saved = {entry.name: entry for entry in snapshot_store.load()}
    assert [event.id for event in saved["Malformed"].events] == ["kept"]
