from datetime import datetime
from zoneinfo import ZoneInfo

from community_calendar.schemas import SourceEvents
from community_calendar.services.snapshot_merger import (
    merge_snapshots,
    merge_source_events,
)

NY = ZoneInfo("America/New_York")


def at(day: int, hour: int = 19) -> datetime:
    return datetime(2025, 6, day, hour, 0, tzinfo=NY)


def test_fresh_events_replace_same_id_and_history_is_kept(make_event):
    previous = [
        SourceEvents(
            name="A",
            city="Durham",
            events=[make_event("e1", "Old Title", start=at(10)), make_event("e2", "Scrolled Away", start=at(5))],
        ),
        SourceEvents(name="B", events=[make_event("b1", start=at(1))]),
    ]
    fresh = [SourceEvents(name="A", events=[make_event("e3", "New", start=at(20)), make_event("e1", "New Title", start=at(10))])]

    merged = merge_snapshots(fresh, previous)

    assert [entry.name for entry in merged] == ["A", "B"]
    assert [event.id for event in merged[0].events] == ["e2", "e1", "e3"]
    assert merged[0].events[1].title == "New Title"
    assert merged[0].city == "Durham"
    assert merged[1] == previous[1]


def test_failed_sources_are_carried_forward(make_event):
    previous = [SourceEvents(name="A", events=[make_event("e1")])]
    assert merge_snapshots([None], previous) == previous


def test_empty_fresh_result_preserves_history(make_event):
    previous_events = [make_event("e1", "Potluck", start=at(3)), make_event("e2", "Open Mic", start=at(8))]
    previous = [SourceEvents(name="X", city="Durham", events=previous_events)]

    merged = merge_snapshots([SourceEvents(name="X", events=[])], previous)

    assert [entry.name for entry in merged] == ["X"]
    assert merged[0].events == previous_events
    assert merged[0].city == "Durham"
    assert merge_source_events(previous[0], SourceEvents(name="X", events=[])).events == previous_events


def test_new_source_events_are_sorted(make_event):
    fresh = [SourceEvents(name="New", events=[make_event("late", start=at(20)), make_event("early", start=at(2))])]
    merged = merge_snapshots(fresh, [])
    assert [event.id for event in merged[0].events] == ["early", "late"]


def test_merging_the_same_run_twice_is_idempotent(make_event):
    previous = [SourceEvents(name="A", events=[make_event("e1", start=at(3))])]
    fresh = [SourceEvents(name="A", events=[make_event("e2", start=at(4))])]
    once = merge_snapshots(fresh, previous)
    assert merge_snapshots(fresh, once) == once


def test_sources_sharing_a_name_fold_together(make_event):
    fresh = [
        SourceEvents(name="A", events=[make_event("e1", start=at(3))]),
        SourceEvents(name="A", events=[make_event("e2", start=at(1))]),
    ]
    merged = merge_snapshots(fresh, [])
    assert len(merged) == 1
    assert [event.id for event in merged[0].events] == ["e2", "e1"]


def test_merge_source_events_prefers_fresh_city():
    merged = merge_source_events(SourceEvents(name="A", city="Old"), SourceEvents(name="A", city="New"))
    assert merged.city == "New"
