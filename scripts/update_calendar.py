#!/usr/bin/env python3
"""
Batch calendar sync: fetch every configured source, merge the results into
the previous snapshot and write it back.

Meant for a scheduled job (e.g. a nightly GitHub Action). Exits non-zero only
when required credentials are missing.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from community_calendar.config import settings
from community_calendar.exceptions import ConfigurationError
from community_calendar.services.calendar_sync import CalendarSyncService
from community_calendar.services.event_extractor import LLMEventExtractor
from community_calendar.services.event_sources import (
    ADAPTER_TYPES,
    build_adapters,
    load_event_sources,
)
from community_calendar.services.llm_service import close_all_llm_clients, get_llm_client
from community_calendar.services.ocr_service import create_ocr_service
from community_calendar.services.snapshot_store import SnapshotStore
from community_calendar.utils.http_client import create_http_client
from community_calendar.utils.logger import setup_logger

logger = setup_logger("update_calendar")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync community event sources into the calendar snapshot.")
    parser.add_argument(
        "--sources-file",
        type=Path,
        default=settings.event_sources_file,
        help="event_sources.json to read (default: %(default)s)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.snapshot_file,
        help="Snapshot file to merge into and write (default: %(default)s)",
    )
    parser.add_argument(
        "--types",
        nargs="+",
        choices=list(ADAPTER_TYPES),
        default=None,
        help="Only sync these source types (default: all)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and merge but do not write the snapshot",
    )
    return parser.parse_args(argv)


async def run_sync(args: argparse.Namespace) -> int:
    try:
        config = load_event_sources(args.sources_file)
    except ConfigurationError as e:
        logger.critical(f"Aborting sync: {e}")
        return 1
    llm_client = get_llm_client()
    extractor = LLMEventExtractor(llm_client) if llm_client else None
    ocr = create_ocr_service(settings.enable_ocr)

    async with create_http_client() as http_client:
        adapters = build_adapters(http_client, extractor=extractor, ocr=ocr, types=args.types)
        service = CalendarSyncService(adapters, SnapshotStore(args.output))
        try:
            report = await service.run(config, dry_run=args.dry_run)
        except ConfigurationError as e:
            logger.critical(f"Aborting sync: {e}")
            return 1
        finally:
            await ocr.close()
            await close_all_llm_clients()

    logger.info(
        f"Done. {len(report.succeeded)} source(s) fetched, {len(report.failed)} carried forward, "
        f"{report.total_events} event(s) across {report.sources_written} source(s)."
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(run_sync(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
