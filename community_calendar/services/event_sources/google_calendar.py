import calendar
from datetime import UTC, datetime, time, timedelta
from urllib.parse import quote

from community_calendar.schemas import (
    Event,
    GoogleCalendarItem,
    GoogleCalendarSource,
    GoogleCalendarTime,
)
from community_calendar.services.date_resolver import get_calendar_timezone
from community_calendar.services.event_sources.base import EventSourceAdapter
from community_calendar.utils.text_processing import (
    find_image_urls,
    replace_google_tracking_urls,
)

GOOGLE_CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"

LOOKBACK_MONTHS = 2
LOOKAHEAD_YEARS = 1


def shift_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def fetch_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(UTC)
    return shift_months(now, -LOOKBACK_MONTHS), shift_months(now, 12 * LOOKAHEAD_YEARS)


def calendar_time_to_datetime(value: GoogleCalendarTime) -> datetime | None:
    if value.date_time is not None:
        return value.date_time
    if value.all_day is not None:
        return datetime.combine(value.all_day, time.min, tzinfo=get_calendar_timezone())
    return None


class GoogleCalendarAdapter(EventSourceAdapter):
    source_type = "googleCalendar"
    config_key = "google_calendar"
    display_name = "Google Calendar"
    required_settings = ("google_calendar_api_key",)

    async def fetch_events(self, source: GoogleCalendarSource) -> list[Event]:
        time_min, time_max = fetch_window()
        data = await self.get_json(
            GOOGLE_CALENDAR_EVENTS_URL.format(calendar_id=quote(source.google_calendar_id, safe="")),
            params={
                "key": self.settings.google_calendar_api_key,
                "singleEvents": "true",
                "maxResults": "9999",
                "timeMin": time_min.isoformat(),
                "timeMax": time_max.isoformat(),
            },
        )
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ValueError("response has no 'items' list")

        events: list[Event] = []
        for item in self.validate_items(items, GoogleCalendarItem, source):
            event = self.map_item(source, item)
            if event is not None:
                events.append(event)
        return events

    def map_item(self, source: GoogleCalendarSource, item: GoogleCalendarItem) -> Event | None:
        start = calendar_time_to_datetime(item.start)
        end = calendar_time_to_datetime(item.end) if item.end else None
        if item.start.date_time is None and end is None:
            # All-day item without an end: the whole day
            end = start + timedelta(days=1)

        description = replace_google_tracking_urls(item.description or "")
        return self.build_event(
            source,
            event_id=f"gcal-{item.id}",
            title=item.summary,
            start=start,
            end=end,
            description=description,
            url=item.html_link,
            location=item.location,
            images=find_image_urls(description),
        )
