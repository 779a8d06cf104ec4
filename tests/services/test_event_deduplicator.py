from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from community_calendar.services.event_deduplicator import (
    is_duplicate,
    remove_duplicate_events,
)

NY = ZoneInfo("America/New_York")


def test_related_titles_close_in_time_collapse_to_first(make_event):
    first = make_event("a", "Fall Market", start=datetime(2025, 10, 4, 10, 0, tzinfo=NY))
    second = make_event("b", "Fall Market at Main St", start=datetime(2025, 10, 4, 10, 30, tzinfo=NY))
    assert remove_duplicate_events([first, second]) == [first]


def test_different_days_are_kept(make_event):
    first = make_event("a", "Fall Market", start=datetime(2025, 10, 4, 10, 0, tzinfo=NY))
    second = make_event("b", "Fall Market", start=datetime(2025, 10, 5, 10, 0, tzinfo=NY))
    assert remove_duplicate_events([first, second]) == [first, second]


def test_window_bounds_the_start_distance(make_event):
    first = make_event("a", "Fall Market", start=datetime(2025, 10, 4, 10, 0, tzinfo=NY))
    second = make_event("b", "Fall Market", start=datetime(2025, 10, 4, 12, 0, tzinfo=NY))
    assert not is_duplicate(second, first)
    assert is_duplicate(second, first, window=timedelta(hours=3))
    assert is_duplicate(second, first, window=None)


def test_unrelated_titles_are_kept(make_event):
    first = make_event("a", "Fall Market")
    second = make_event("b", "Queer Craft Night")
    assert len(remove_duplicate_events([first, second])) == 2


def test_punctuation_and_case_do_not_matter(make_event):
    first = make_event("a", "DRAG BINGO!!")
    second = make_event("b", "Drag-Bingo")
    assert remove_duplicate_events([first, second]) == [first]
