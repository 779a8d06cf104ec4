from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from community_calendar.exceptions import InvalidEventDateError, MissingEventDateError
from community_calendar.schemas import RawExtractedEvent
from community_calendar.services.date_resolver import (
    apply_year_rollover,
    parse_caption_date,
    resolve_end,
    resolve_event_times,
    resolve_start,
)

NY = ZoneInfo("America/New_York")


def raw(**fields) -> RawExtractedEvent:
    return RawExtractedEvent.model_validate(fields)


def test_january_date_read_in_december_rolls_into_next_year():
    now = datetime(2025, 12, 20, 10, 0, tzinfo=NY)
    start = resolve_start(raw(startDay=5, startMonth=1, startHourMilitaryTime=19), now=now, tz=NY)
    assert start == datetime(2026, 1, 5, 19, 0, tzinfo=NY)


def test_recent_past_date_is_not_rolled():
    now = datetime(2025, 6, 1, 10, 0, tzinfo=NY)
    start = resolve_start(raw(startDay=5, startMonth=1), now=now, tz=NY)
    assert start.year == 2025


def test_missing_fields_default_to_current_month_and_noon():
    now = datetime(2025, 3, 2, 9, 0, tzinfo=NY)
    start, end = resolve_event_times(raw(startDay=14), now=now, tz=NY)
    assert start == datetime(2025, 3, 14, 12, 0, tzinfo=NY)
    assert end - start == timedelta(hours=1)


def test_missing_start_day_is_rejected():
    with pytest.raises(MissingEventDateError):
        resolve_start(raw(title="Open Mic", startMonth=6), tz=NY)


def test_invalid_month_is_rejected():
    with pytest.raises(InvalidEventDateError):
        resolve_start(raw(startDay=3, startMonth=13), tz=NY)


def test_out_of_range_year_is_rejected():
    with pytest.raises(InvalidEventDateError, match="year 10000"):
        resolve_start(raw(startDay=7, startMonth=5, startYear=10000), tz=NY)
    with pytest.raises(InvalidEventDateError):
        apply_year_rollover(datetime(9998, 1, 5, 19, 0, tzinfo=NY), datetime(9998, 12, 20, tzinfo=NY))


def test_day_past_month_end_is_clamped():
    now = datetime(2025, 2, 1, 9, 0, tzinfo=NY)
    start = resolve_start(raw(startDay=31, startMonth=2), now=now, tz=NY)
    assert start.date().isoformat() == "2025-02-28"


def test_end_time_only_lands_on_start_day():
    start = datetime(2025, 6, 14, 19, 0, tzinfo=NY)
    end = resolve_end(raw(startDay=14, endHourMilitaryTime=21, endMinute=30), start)
    assert end == datetime(2025, 6, 14, 21, 30, tzinfo=NY)


def test_end_time_before_start_is_read_as_after_midnight():
    start = datetime(2025, 6, 14, 22, 0, tzinfo=NY)
    end = resolve_end(raw(startDay=14, endHourMilitaryTime=1), start)
    assert end == datetime(2025, 6, 15, 1, 0, tzinfo=NY)


def test_explicit_end_date_spans_several_days():
    start = datetime(2025, 6, 14, 10, 0, tzinfo=NY)
    end = resolve_end(raw(startDay=14, endDay=16, endHourMilitaryTime=17), start)
    assert end == datetime(2025, 6, 16, 17, 0, tzinfo=NY)


def test_rollover_handles_leap_day():
    now = datetime(2024, 12, 1, tzinfo=NY)
    rolled = apply_year_rollover(datetime(2024, 2, 29, 12, 0, tzinfo=NY), now)
    assert rolled == datetime(2025, 2, 28, 12, 0, tzinfo=NY)


def test_caption_date_and_time_are_parsed():
    upload = datetime(2025, 1, 10, 15, 0, tzinfo=UTC)
    now = datetime(2025, 1, 10, 10, 0, tzinfo=NY)
    start = parse_caption_date("Join us Jan 25 at 7pm!", upload, now=now)
    assert start == datetime(2025, 1, 25, 19, 0, tzinfo=NY)


def test_numeric_caption_date_uses_upload_time_of_day():
    upload = datetime(2025, 10, 1, 16, 30, tzinfo=UTC)
    now = datetime(2025, 10, 1, 12, 0, tzinfo=NY)
    start = parse_caption_date("Market day 10/12", upload, now=now)
    assert (start.month, start.day) == (10, 12)
    assert (start.hour, start.minute) == (12, 30)


def test_caption_without_date_falls_back_to_upload():
    upload = datetime(2025, 1, 10, 15, 0, tzinfo=UTC)
    assert parse_caption_date("See you soon", upload) == upload
    assert parse_caption_date(None, upload) == upload
