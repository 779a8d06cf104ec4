"""
Community Calendar Services Package - fetching, normalizing and moderating event sources.

Core Services:
- event_sources: one adapter per upstream API (Google Calendar, Instagram, Eventbrite, Meetup, Apify)
- date_resolver, tag_classifier, event_deduplicator: normalization of extracted events
- event_extractor, ocr_service & llm_service: reading events out of Instagram captions and flyers
- snapshot_merger & snapshot_store: the incrementally merged calendar snapshot
- calendar_sync: the batch driver tying the above together
- document_store & moderation_service: community submission workflow
- ics_generator: iCalendar export
"""
