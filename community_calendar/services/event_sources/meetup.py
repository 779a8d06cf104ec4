from datetime import UTC, datetime, timedelta

from community_calendar.schemas import Event, MeetupEvent, MeetupSource
from community_calendar.services.event_sources.base import (
    EventSourceAdapter,
    join_address_parts,
)
from community_calendar.utils.text_processing import find_image_urls

MEETUP_GROUP_EVENTS_URL = "https://api.meetup.com/{group}/events"

MEETUP_DEFAULT_DURATION = timedelta(hours=2)
ONLINE_EVENT_LOCATION = "Online Event"


class MeetupAdapter(EventSourceAdapter):
    source_type = "meetup"
    config_key = "meetup"
    display_name = "Meetup"

    async def fetch_events(self, source: MeetupSource) -> list[Event]:
        data = await self.get_json(
            MEETUP_GROUP_EVENTS_URL.format(group=source.group_url_name),
            params={"status": "upcoming", "desc": "true", "photo-host": "public", "page": "20"},
        )
        items = data.get("results") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ValueError("response is neither an event list nor has 'results'")

        events: list[Event] = []
        for item in self.validate_items(items, MeetupEvent, source):
            event = self.map_item(source, item)
            if event is not None:
                events.append(event)
        return events

    def map_item(self, source: MeetupSource, item: MeetupEvent) -> Event | None:
        start = datetime.fromtimestamp(item.time / 1000, tz=UTC)
        duration = timedelta(milliseconds=item.duration) if item.duration else MEETUP_DEFAULT_DURATION
        description = item.description or ""
        photo = item.featured_photo.photo_link if item.featured_photo else None

        if item.is_online_event:
            location = ONLINE_EVENT_LOCATION
        elif item.venue:
            location = join_address_parts(item.venue.name, item.venue.address_1, item.venue.city)
        else:
            location = None

        return self.build_event(
            source,
            event_id=f"mu-{item.id}",
            title=item.name,
            start=start,
            end=start + duration,
            description=description,
            url=item.link,
            location=location,
            images=[photo, *find_image_urls(description)],
        )
