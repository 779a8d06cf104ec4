"""
Date Resolver - turns partially specified event dates into concrete instants.

The LLM reports whatever date fragments a caption or flyer contains (often
only a day and a month). Missing fields default to the current wall-clock
year/month and to noon, and a year-rollover rule moves dates that look like
"last January" in a December post into next year.
"""

import calendar
import re
from datetime import MAXYEAR, MINYEAR, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from community_calendar.config import settings
from community_calendar.exceptions import InvalidEventDateError, MissingEventDateError
from community_calendar.schemas import RawExtractedEvent
from community_calendar.utils.logger import setup_logger

logger = setup_logger("date_resolver")

DEFAULT_START_HOUR = 12
DEFAULT_DURATION = timedelta(hours=1)
ROLLOVER_MONTHS = 6

_MONTHS = {
    name: index
    for index, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}
CAPTION_DATE_RE = re.compile(
    r"\b(?P<month>jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s?(?P<day>\d{1,2})(?:st|nd|rd|th)?\b"
    r"|\b(?P<num_month>\d{1,2})/(?P<num_day>\d{1,2})\b",
    re.IGNORECASE,
)
CAPTION_TIME_RE = re.compile(
    r"\b(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s?(?P<meridiem>[ap]\.?m\.?)"
    r"|\b(?P<h24>\d{1,2}):(?P<m24>\d{2})\b",
    re.IGNORECASE,
)


def get_calendar_timezone() -> tzinfo:
    return ZoneInfo(settings.calendar_timezone)


def months_between(later: datetime, earlier: datetime) -> int:
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def apply_year_rollover(candidate: datetime, now: datetime) -> datetime:
    """
    Move ``candidate`` one year forward when it is already past and more than
    six months behind ``now`` ("Jan 5" read in late December means next January).
    """
    if candidate < now and months_between(now, candidate) > ROLLOVER_MONTHS:
        logger.debug(
            f"Rolling {candidate.date().isoformat()} into {candidate.year + 1} (now: {now.date().isoformat()})"
        )
        return _with_year(candidate, candidate.year + 1)
    return candidate


def _check_year(year: int) -> None:
    # Leave a year of headroom at both ends for rollover and timezone shifts
    if not MINYEAR < year < MAXYEAR:
        raise InvalidEventDateError(f"year {year} is outside {MINYEAR + 1}-{MAXYEAR - 1}")


def _with_year(value: datetime, year: int) -> datetime:
    _check_year(year)
    # Feb 29 has no counterpart in a non-leap year
    day = min(value.day, calendar.monthrange(year, value.month)[1])
    return value.replace(year=year, day=day)


def _build_datetime(
    year: int, month: int, day: int, hour: int, minute: int, tz: tzinfo
) -> datetime:
    _check_year(year)
    if not 1 <= month <= 12:
        raise InvalidEventDateError(f"month {month} is outside 1-12")
    if day < 1:
        raise InvalidEventDateError(f"day {day} is not a valid day of the month")
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise InvalidEventDateError(f"time {hour}:{minute:02d} is not a valid time")

    last_day = calendar.monthrange(year, month)[1]
    if day > last_day:
        logger.warning(
            f"Day {day} does not exist in {year}-{month:02d}; clamping to {last_day}"
        )
        day = last_day
    return datetime(year, month, day, hour, minute, tzinfo=tz)


def resolve_start(
    extracted: RawExtractedEvent,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> datetime:
    """Concrete start instant for an extracted event, with year rollover applied."""
    if not extracted.start_day:
        raise MissingEventDateError(
            f"Extracted event '{extracted.title}' has no start day"
        )

    tz = tz or get_calendar_timezone()
    now = (now or datetime.now(tz)).astimezone(tz)

    candidate = _build_datetime(
        extracted.start_year or now.year,
        extracted.start_month or now.month,
        extracted.start_day,
        extracted.start_hour if extracted.start_hour is not None else DEFAULT_START_HOUR,
        extracted.start_minute or 0,
        tz,
    )
    return apply_year_rollover(candidate, now)


def resolve_end(
    extracted: RawExtractedEvent, start: datetime, tz: tzinfo | None = None
) -> datetime:
    """
    End instant for an extracted event.

    Explicit end fields win (a full end date for multi-day events, or only an
    end time on the start day); otherwise the event lasts one hour. An end
    time earlier than the start on the same day is read as past midnight.
    """
    has_end_date = any(
        value is not None
        for value in (extracted.end_day, extracted.end_month, extracted.end_year)
    )
    if not has_end_date and extracted.end_hour is None:
        return start + DEFAULT_DURATION

    tz = tz or start.tzinfo
    if has_end_date:
        end = _build_datetime(
            extracted.end_year or start.year,
            extracted.end_month or start.month,
            extracted.end_day or start.day,
            extracted.end_hour if extracted.end_hour is not None else start.hour,
            extracted.end_minute or 0,
            tz,
        )
    else:
        end_minute = extracted.end_minute or 0
        if not 0 <= extracted.end_hour <= 23 or not 0 <= end_minute <= 59:
            raise InvalidEventDateError(
                f"end time {extracted.end_hour}:{end_minute:02d} is not a valid time"
            )
        end = start.replace(hour=extracted.end_hour, minute=end_minute)

    if end < start:
        end += timedelta(days=1)
    if end < start:
        logger.warning(
            f"End {end.isoformat()} precedes start {start.isoformat()}; using default duration"
        )
        end = start + DEFAULT_DURATION
    return end


def resolve_event_times(
    extracted: RawExtractedEvent,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    start = resolve_start(extracted, now=now, tz=tz)
    return start, resolve_end(extracted, start, tz=tz)


def parse_caption_date(
    caption: str | None,
    upload_date: datetime,
    now: datetime | None = None,
) -> datetime:
    """
    Heuristic date parse for scraped captions ("Jan 25", "10/12", "7pm").

    Falls back to the upload timestamp when the caption has no date, and to
    the upload time of day when it has a date but no time.
    """
    if not caption:
        return upload_date

    date_match = CAPTION_DATE_RE.search(caption)
    if not date_match:
        logger.debug(
            f"No date text found. Using upload date: {upload_date.date().isoformat()}"
        )
        return upload_date

    tz = get_calendar_timezone()
    now = (now or datetime.now(tz)).astimezone(tz)
    local_upload = upload_date.astimezone(tz)

    if date_match.group("month"):
        month = _MONTHS[date_match.group("month").lower()[:3]]
        day = int(date_match.group("day"))
    else:
        month = int(date_match.group("num_month"))
        day = int(date_match.group("num_day"))

    hour, minute = local_upload.hour, local_upload.minute
    time_match = CAPTION_TIME_RE.search(caption)
    if time_match:
        if time_match.group("hour"):
            hour = int(time_match.group("hour"))
            minute = int(time_match.group("minute") or 0)
            is_pm = time_match.group("meridiem").lower().startswith("p")
            if is_pm and hour < 12:
                hour += 12
            if not is_pm and hour == 12:
                hour = 0
        else:
            hour = int(time_match.group("h24"))
            minute = int(time_match.group("m24"))

    try:
        candidate = _build_datetime(now.year, month, day, hour, minute, tz)
    except InvalidEventDateError as e:
        logger.debug(f"Caption date '{date_match.group(0)}' unusable ({e}); using upload date")
        return upload_date

    return apply_year_rollover(candidate, now)
