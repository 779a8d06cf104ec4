"""
Calendar Sync Service - the batch driver behind the cron job and the CLI.

Enumerates every configured source across the requested adapters, fetches
them in fixed-size concurrent batches with a pause between batches (a crude
throttle for upstream rate limits), merges the results into the previous
snapshot and saves it. Only missing credentials abort a run; every other
failure is scoped to the source it happened in.
"""

import asyncio
import time
from collections.abc import Sequence

from community_calendar.config import Settings, settings
from community_calendar.exceptions import ConfigurationError
from community_calendar.schemas import (
    EventSourcesConfig,
    SourceConfig,
    SourceEvents,
    SyncReport,
)
from community_calendar.services.event_sources.base import EventSourceAdapter
from community_calendar.services.snapshot_merger import merge_snapshots
from community_calendar.services.snapshot_store import SnapshotStore
from community_calendar.utils.logger import setup_logger

logger = setup_logger("calendar_sync")


class CalendarSyncService:
    def __init__(
        self,
        adapters: Sequence[EventSourceAdapter],
        store: SnapshotStore,
        app_settings: Settings | None = None,
    ):
        self.adapters = list(adapters)
        self.store = store
        self.settings = app_settings or settings

    def plan(self, config: EventSourcesConfig) -> list[tuple[EventSourceAdapter, SourceConfig]]:
        return [
            (adapter, source)
            for adapter in self.adapters
            for source in adapter.configured_sources(config)
        ]

    def validate_credentials(self, config: EventSourcesConfig) -> None:
        """Raise before any fetch when a configured source type lacks its credentials."""
        problems: list[str] = []
        for adapter in self.adapters:
            missing = adapter.missing_credentials(adapter.configured_sources(config))
            if missing:
                problems.append(f"{adapter.source_type}: {', '.join(missing)}")
        if problems:
            raise ConfigurationError(
                "Missing required credentials for configured sources - " + "; ".join(problems)
            )

    async def _fetch_bounded(
        self, adapter: EventSourceAdapter, source: SourceConfig
    ) -> tuple[SourceEvents | None, bool]:
        try:
            return await asyncio.wait_for(
                adapter.fetch_with_status(source), timeout=self.settings.source_timeout_seconds
            )
        except TimeoutError:
            logger.error(
                f"{adapter.log_prefix(source)} Timed out after {self.settings.source_timeout_seconds}s"
            )
            return None, True

    async def fetch_in_batches(
        self, work: list[tuple[EventSourceAdapter, SourceConfig]]
    ) -> list[tuple[SourceEvents | None, bool]]:
        """Fetch every planned source; each outcome is the result and whether its fetch failed."""
        batch_size = max(1, self.settings.sync_batch_size)
        results: list[tuple[SourceEvents | None, bool]] = []
        total_batches = (len(work) + batch_size - 1) // batch_size

        for batch_number, offset in enumerate(range(0, len(work), batch_size), start=1):
            batch = work[offset : offset + batch_size]
            logger.info(
                f"Batch {batch_number}/{total_batches}: {[source.name for _, source in batch]}"
            )
            batch_results = await asyncio.gather(
                *(self._fetch_bounded(adapter, source) for adapter, source in batch),
                return_exceptions=True,
            )
            for (adapter, source), result in zip(batch, batch_results, strict=True):
                if isinstance(result, Exception):
                    logger.error(
                        f"{adapter.log_prefix(source)} Unexpected error: {result}",
                        exc_info=result,
                    )
                    results.append((None, True))
                else:
                    results.append(result)

            if batch_number < total_batches and self.settings.sync_batch_delay_seconds > 0:
                await asyncio.sleep(self.settings.sync_batch_delay_seconds)

        return results

    async def run(self, config: EventSourcesConfig, dry_run: bool = False) -> SyncReport:
        self.validate_credentials(config)
        work = self.plan(config)
        logger.info(f"Starting calendar sync for {len(work)} source(s)")
        start_time = time.perf_counter()

        outcomes = await self.fetch_in_batches(work)
        report = SyncReport(dry_run=dry_run)
        for (_, source), (_, failed) in zip(work, outcomes, strict=True):
            (report.failed if failed else report.succeeded).append(source.name)
        fresh = [result for result, _ in outcomes]

        previous = self.store.load()
        merged = merge_snapshots(fresh, previous)
        report.sources_written = len(merged)
        report.total_events = sum(len(entry.events) for entry in merged)

        if dry_run:
            logger.info("Dry run: snapshot not written")
        else:
            self.store.save(merged)

        logger.info(
            f"Calendar sync finished in {time.perf_counter() - start_time:.2f}s. "
            f"Succeeded: {len(report.succeeded)}, failed: {len(report.failed)}, "
            f"total events: {report.total_events}"
        )
        if report.failed:
            logger.warning(f"Sources carried forward after failure: {report.failed}")
        return report
