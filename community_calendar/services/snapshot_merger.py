"""
Incremental snapshot merge.

Upstream APIs (Instagram business discovery especially) only return a bounded
window of recent posts. Merging each run into the previous snapshot keeps
events from posts that have scrolled out of that window, and a source that
fails to fetch keeps its previous entry untouched.
"""

from collections.abc import Sequence

from community_calendar.schemas import Event, SourceEvents
from community_calendar.utils.logger import setup_logger

logger = setup_logger("snapshot_merger")


def merge_source_events(previous: SourceEvents, fresh: SourceEvents) -> SourceEvents:
    """Union of both event lists keyed by id, fresh data winning, sorted by start."""
    by_id: dict[str, Event] = {event.id: event for event in previous.events}
    for event in fresh.events:
        by_id[event.id] = event

    return SourceEvents(
        name=fresh.name,
        city=fresh.city if fresh.city is not None else previous.city,
        events=sorted(by_id.values(), key=lambda event: event.start),
    )


def merge_snapshots(
    fresh: Sequence[SourceEvents | None],
    previous: Sequence[SourceEvents],
) -> list[SourceEvents]:
    """
    Merge this run's results into the previous snapshot.

    ``None`` entries in ``fresh`` are sources that failed entirely; they and any
    previous source absent from this run are carried forward unchanged.
    """
    previous_by_name = {entry.name: entry for entry in previous}
    merged: list[SourceEvents] = []
    fetched_names: set[str] = set()

    for entry in fresh:
        if entry is None:
            continue
        if entry.name in fetched_names:
            # Two configured sources sharing a display name fold into one entry
            index = next(i for i, m in enumerate(merged) if m.name == entry.name)
            merged[index] = merge_source_events(merged[index], entry)
            continue
        fetched_names.add(entry.name)

        old = previous_by_name.get(entry.name)
        if old is None:
            merged.append(
                SourceEvents(
                    name=entry.name,
                    city=entry.city,
                    events=sorted(entry.events, key=lambda event: event.start),
                )
            )
        else:
            merged.append(merge_source_events(old, entry))

    carried = [entry for entry in previous if entry.name not in fetched_names]
    if carried:
        logger.info(
            f"Carrying forward {len(carried)} source(s) not fetched this run: {[entry.name for entry in carried]}"
        )
    merged.extend(carried)
    return merged
