from community_calendar.schemas import Event, EventbriteEvent, EventbriteSource
from community_calendar.services.event_sources.base import (
    EventSourceAdapter,
    join_address_parts,
)
from community_calendar.utils.text_processing import find_image_urls

EVENTBRITE_ORGANIZER_EVENTS_URL = "https://www.eventbriteapi.com/v3/organizers/{organizer_id}/events/"


class EventbriteAdapter(EventSourceAdapter):
    source_type = "eventbrite"
    config_key = "eventbrite"
    display_name = "Eventbrite"
    required_settings = ("eventbrite_api_key",)

    async def fetch_events(self, source: EventbriteSource) -> list[Event]:
        data = await self.get_json(
            EVENTBRITE_ORGANIZER_EVENTS_URL.format(organizer_id=source.organizer_id),
            params={"status": "live", "expand": "venue", "order_by": "start_asc"},
            headers={"Authorization": f"Bearer {self.settings.eventbrite_api_key}"},
        )
        items = data.get("events") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ValueError("response has no 'events' list")

        events: list[Event] = []
        for item in self.validate_items(items, EventbriteEvent, source):
            event = self.map_item(source, item)
            if event is not None:
                events.append(event)
        return events

    def map_item(self, source: EventbriteSource, item: EventbriteEvent) -> Event | None:
        description = item.description.text if item.description else ""
        logo = item.logo.original.url if item.logo and item.logo.original else None

        location = None
        if item.venue:
            address = item.venue.address
            location = join_address_parts(
                item.venue.name,
                address.address_1 if address else None,
                address.city if address else None,
            )

        return self.build_event(
            source,
            event_id=f"eb-{item.id}",
            title=item.name.text if item.name else None,
            start=item.start.utc,
            end=item.end.utc,
            description=description,
            url=item.url,
            location=location,
            images=[logo, *find_image_urls(description)],
        )
