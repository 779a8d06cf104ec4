"""
Near-duplicate event reduction for a single source's candidate list.

Overlapping fetches of a still-pinned post, or a caption and its flyer, tend
to yield the same event with slightly different wording. Two candidates are
the same occurrence when they start on the same calendar day, within a short
time window of each other, and one normalized title contains the other.
The first-seen candidate wins. Lists are per source and small, so the
pairwise comparison is fine.
"""

from datetime import timedelta

from community_calendar.schemas import Event
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.text_processing import titles_related

logger = setup_logger("event_deduplicator")

DEFAULT_DUPLICATE_WINDOW = timedelta(hours=1)


def is_duplicate(
    candidate: Event,
    kept: Event,
    window: timedelta | None = DEFAULT_DUPLICATE_WINDOW,
) -> bool:
    if candidate.start.date() != kept.start.astimezone(candidate.start.tzinfo).date():
        return False
    if window is not None and abs(candidate.start - kept.start) > window:
        return False
    return titles_related(candidate.title, kept.title)


def remove_duplicate_events(
    events: list[Event],
    window: timedelta | None = DEFAULT_DUPLICATE_WINDOW,
) -> list[Event]:
    """Drop candidates that duplicate an earlier-accepted event, keeping order."""
    unique: list[Event] = []
    for candidate in events:
        match = next((kept for kept in unique if is_duplicate(candidate, kept, window)), None)
        if match is not None:
            logger.debug(
                f"Dropping duplicate '{candidate.title}' ({candidate.id}); keeping '{match.title}' ({match.id})"
            )
            continue
        unique.append(candidate)

    if len(unique) != len(events):
        logger.info(f"Collapsed {len(events) - len(unique)} duplicate event(s)")
    return unique
