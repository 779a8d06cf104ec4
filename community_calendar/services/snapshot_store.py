"""
Snapshot Store - the persisted calendar artifact.

The snapshot is a JSON array of ``{name, city, events}`` entries consumed by
the calendar front-end and the ``/api/calendar-data`` endpoint. It is always
replaced wholesale.
"""

import json
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from community_calendar.schemas import SourceEvents
from community_calendar.utils.logger import setup_logger

logger = setup_logger("snapshot_store")


class SnapshotStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> list[SourceEvents]:
        """
        Read the previous snapshot.

        A missing or unreadable file gives an empty history; a single malformed
        entry is skipped rather than discarding the rest.
        """
        if not self.path.exists():
            logger.info(f"No previous snapshot at {self.path}; starting with empty history")
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read snapshot {self.path}: {e}. Starting with empty history.")
            return []

        if not isinstance(raw, list):
            logger.warning(f"Snapshot {self.path} is not a JSON array. Starting with empty history.")
            return []

        entries: list[SourceEvents] = []
        for index, item in enumerate(raw):
            try:
                entries.append(SourceEvents.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed snapshot entry #{index} ({e.error_count()} errors)"
                )
        logger.info(
            f"Loaded snapshot with {len(entries)} source(s) and {sum(len(e.events) for e in entries)} event(s)"
        )
        return entries

    @staticmethod
    def serialize(entries: list[SourceEvents]) -> str:
        return json.dumps(
            [entry.model_dump(mode="json") for entry in entries],
            indent=2,
            ensure_ascii=False,
        )

    def save(self, entries: list[SourceEvents]) -> None:
        """Write the snapshot atomically (temp file in the same directory, then replace)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.serialize(entries)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Saved snapshot with {len(entries)} source(s) to {self.path}")
