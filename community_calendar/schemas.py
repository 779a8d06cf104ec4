import re
from datetime import UTC, date, datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

DEFAULT_LOCATION = "Location not specified"

_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def _normalize_offset(value: Any) -> Any:
    # Graph API timestamps look like 2025-01-05T18:00:00+0000
    if isinstance(value, str):
        return _COMPACT_OFFSET_RE.sub(r"\1:\2", value.strip())
    return value


# ===========================================
# CANONICAL EVENT SHAPE
# ===========================================


class Event(BaseModel):
    """
    The single normalized event shape every source adapter produces.

    ``id`` is the merge join key: the same id means the same real-world
    occurrence, and newer data for an id replaces older data.
    """

    id: str
    title: str
    org: str
    start: datetime
    end: datetime
    url: str | None = None
    location: str = DEFAULT_LOCATION
    description: str = ""
    images: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return _normalize_offset(value)

    @field_validator("start", "end")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_sorted_list(cls, value: Any) -> Any:
        # Tags are a set; keep a stable order so snapshots serialize identically
        if isinstance(value, set | frozenset | list | tuple):
            return sorted({str(tag) for tag in value})
        return value

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "Event":
        if self.end < self.start:
            raise ValueError(
                f"Event '{self.id}' ends ({self.end.isoformat()}) before it starts ({self.start.isoformat()})"
            )
        return self

    @field_serializer("start", "end")
    def _serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat()


class SourceEvents(BaseModel):
    """One entry of the persisted snapshot and of every feed response."""

    name: str
    city: str | None = None
    events: list[Event] = Field(default_factory=list)


class CalendarFeedResponse(BaseModel):
    body: list[SourceEvents] = Field(default_factory=list)


# ===========================================
# SOURCE CONFIGURATION
# ===========================================


class SourceConfig(BaseModel):
    """Fields shared by every configured source, whatever its upstream API."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    city: str | None = None
    default_location: str | None = Field(None, alias="defaultLocation")
    filters: list[Any] = Field(default_factory=list)
    prefix_title: str | None = Field(None, alias="prefixTitle")
    suffix_title: str | None = Field(None, alias="suffixTitle")
    suffix_description: str | None = Field(None, alias="suffixDescription")
    instagram_handle: str | None = Field(None, alias="instagramHandle")
    website_url: str | None = Field(None, alias="websiteUrl")
    contact_email: str | None = Field(None, alias="contactEmail")
    description: str | None = None

    @property
    def identifier(self) -> str:
        return self.name


class GoogleCalendarSource(SourceConfig):
    google_calendar_id: str = Field(..., alias="googleCalendarId")

    @property
    def identifier(self) -> str:
        return self.google_calendar_id


class InstagramSource(SourceConfig):
    username: str | None = None
    json_file: str | None = Field(None, alias="jsonFile")
    context_clues: list[str] = Field(default_factory=list)

    @property
    def identifier(self) -> str:
        return self.username or self.json_file or self.name


class EventbriteSource(SourceConfig):
    organizer_id: str = Field(..., alias="organizerId")

    @field_validator("organizer_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def identifier(self) -> str:
        return self.organizer_id


class MeetupSource(SourceConfig):
    group_url_name: str = Field(..., alias="groupUrlName")

    @property
    def identifier(self) -> str:
        return self.group_url_name


class ApifyDatasetSource(SourceConfig):
    """An Apify dataset fetched live (``datasetId``) or a saved export under assets (``jsonFile``)."""

    dataset_id: str | None = Field(None, alias="datasetId")
    json_file: str | None = Field(None, alias="jsonFile")

    @model_validator(mode="after")
    def _has_dataset(self) -> "ApifyDatasetSource":
        if not self.dataset_id and not self.json_file:
            raise ValueError(f"source '{self.name}' needs a datasetId or a jsonFile")
        return self

    @property
    def identifier(self) -> str:
        return self.dataset_id or self.json_file


class EventSourcesConfig(BaseModel):
    """Contents of ``event_sources.json``: one list of sources per upstream API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    google_calendar: list[GoogleCalendarSource] = Field(
        default_factory=list, alias="googleCalendar"
    )
    instagram: list[InstagramSource] = Field(default_factory=list)
    eventbrite: list[EventbriteSource] = Field(default_factory=list)
    meetup: list[MeetupSource] = Field(default_factory=list)
    apify_meetup: list[ApifyDatasetSource] = Field(
        default_factory=list, alias="apifyMeetup"
    )
    apify: list[ApifyDatasetSource] = Field(default_factory=list)


# ===========================================
# LLM EXTRACTION INTERMEDIATES
# ===========================================


class RawExtractedEvent(BaseModel):
    """
    One event as the LLM read it from a caption or flyer. Every field is
    optional because extraction confidence varies; the date resolver decides
    what is usable.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str | None = None
    start_day: int | None = Field(None, alias="startDay")
    start_month: int | None = Field(None, alias="startMonth")
    start_year: int | None = Field(None, alias="startYear")
    start_hour: int | None = Field(None, alias="startHourMilitaryTime")
    start_minute: int | None = Field(None, alias="startMinute")
    end_day: int | None = Field(None, alias="endDay")
    end_month: int | None = Field(None, alias="endMonth")
    end_year: int | None = Field(None, alias="endYear")
    end_hour: int | None = Field(None, alias="endHourMilitaryTime")
    end_minute: int | None = Field(None, alias="endMinute")
    location: str | None = None


class ExtractionResponse(BaseModel):
    events: list[RawExtractedEvent] = Field(default_factory=list)


class ExtractionContext(BaseModel):
    source_name: str
    post_date: datetime
    context_clues: list[str] = Field(default_factory=list)

    @property
    def post_date_text(self) -> str:
        return self.post_date.strftime("%A, %B %d, %Y").replace(" 0", " ")


# ===========================================
# UPSTREAM PAYLOAD VARIANTS
# ===========================================


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GoogleCalendarTime(_Payload):
    date_time: datetime | None = Field(None, alias="dateTime")
    all_day: date | None = Field(None, alias="date")
    time_zone: str | None = Field(None, alias="timeZone")


class GoogleCalendarItem(_Payload):
    id: str
    summary: str | None = None
    description: str | None = None
    location: str | None = None
    html_link: str | None = Field(None, alias="htmlLink")
    start: GoogleCalendarTime
    end: GoogleCalendarTime | None = None

    @model_validator(mode="after")
    def _has_start(self) -> "GoogleCalendarItem":
        if self.start.date_time is None and self.start.all_day is None:
            raise ValueError("calendar item has neither start.dateTime nor start.date")
        return self


class EventbriteText(_Payload):
    text: str | None = None
    html: str | None = None


class EventbriteTime(_Payload):
    utc: datetime
    timezone: str | None = None


class EventbriteAddress(_Payload):
    address_1: str | None = None
    city: str | None = None


class EventbriteVenue(_Payload):
    name: str | None = None
    address: EventbriteAddress | None = None


class EventbriteImage(_Payload):
    url: str | None = None


class EventbriteLogo(_Payload):
    original: EventbriteImage | None = None


class EventbriteEvent(_Payload):
    id: str
    name: EventbriteText | None = None
    description: EventbriteText | None = None
    url: str | None = None
    start: EventbriteTime
    end: EventbriteTime
    venue: EventbriteVenue | None = None
    logo: EventbriteLogo | None = None


class MeetupVenue(_Payload):
    name: str | None = None
    address_1: str | None = None
    city: str | None = None


class MeetupPhoto(_Payload):
    photo_link: str | None = None


class MeetupEvent(_Payload):
    id: str
    name: str | None = None
    description: str | None = None
    link: str | None = None
    time: int
    duration: int | None = None
    venue: MeetupVenue | None = None
    featured_photo: MeetupPhoto | None = None
    is_online_event: bool = False


class ApifyMeetupLocation(_Payload):
    venue: str | None = None
    address: str | None = None


class ApifyMeetupGroup(_Payload):
    name: str | None = None
    image: str | None = None


class ApifyMeetupItem(_Payload):
    id: str | None = None
    title: str | None = None
    description: str | None = None
    url: str | None = None
    date_time: datetime = Field(..., alias="dateTime")
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    location: ApifyMeetupLocation | None = None
    group: ApifyMeetupGroup | None = None


class ApifyEventItem(_Payload):
    id: str | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    utc_start_date: str | None = Field(None, alias="utcStartDate")
    start_time: str | None = Field(None, alias="startTime")
    start: str | None = None
    utc_end_date: str | None = Field(None, alias="utcEndDate")
    end_time: str | None = Field(None, alias="endTime")
    end: str | None = None
    duration: str | None = None
    image_url: str | None = Field(None, alias="imageUrl")
    cover_url: str | None = Field(None, alias="coverUrl")
    event_url: str | None = Field(None, alias="eventUrl")
    url: str | None = None
    location: Any = None

    @property
    def raw_start(self) -> str | None:
        return self.utc_start_date or self.start_time or self.start

    @property
    def raw_end(self) -> str | None:
        return self.utc_end_date or self.end_time or self.end

    @model_validator(mode="after")
    def _has_start(self) -> "ApifyEventItem":
        if not self.raw_start:
            raise ValueError("dataset item has no start date")
        return self


class InstagramChildMedia(_Payload):
    media_url: str | None = None
    media_type: str | None = None
    thumbnail_url: str | None = None

    def display_url(self) -> str | None:
        if self.media_type == "VIDEO" and self.thumbnail_url:
            return self.thumbnail_url
        return self.media_url


class InstagramChildren(_Payload):
    data: list[InstagramChildMedia] = Field(default_factory=list)


class InstagramMedia(_Payload):
    id: str
    caption: str | None = None
    media_type: str | None = None
    media_url: str | None = None
    thumbnail_url: str | None = None
    permalink: str | None = None
    timestamp: datetime
    children: InstagramChildren | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return _normalize_offset(value)

    def media_urls(self) -> list[str]:
        """Image URLs of the post; video thumbnails stand in for videos."""
        if self.media_type == "CAROUSEL_ALBUM" and self.children and self.children.data:
            return [url for url in (c.display_url() for c in self.children.data) if url]
        if self.media_type == "VIDEO" and self.thumbnail_url:
            return [self.thumbnail_url]
        return [self.media_url] if self.media_url else []


class InstagramArchivePost(_Payload):
    id: str | None = None
    short_code: str | None = Field(None, alias="shortCode")
    caption: str | None = None
    timestamp: datetime
    url: str | None = None
    display_url: str | None = Field(None, alias="displayUrl")
    images: list[Any] = Field(default_factory=list)
    child_posts: list[dict[str, Any]] = Field(default_factory=list, alias="childPosts")
    location_name: str | None = Field(None, alias="locationName")
    owner_full_name: str | None = Field(None, alias="ownerFullName")
    hashtags: list[str] = Field(default_factory=list)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return _normalize_offset(value)


# ===========================================
# MODERATION & API MODELS
# ===========================================


class CalendarSubmission(BaseModel):
    """A community-submitted Google Calendar awaiting moderation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    google_calendar_id: str | None = Field(None, alias="googleCalendarId")
    filters: list[Any] = Field(default_factory=list)
    prefix_title: str | None = Field(None, alias="prefixTitle")
    suffix_title: str | None = Field(None, alias="suffixTitle")
    suffix_description: str | None = Field(None, alias="suffixDescription")
    default_location: str | None = Field(None, alias="defaultLocation")


class AdminAuthRequest(BaseModel):
    password: str | None = None


class ModerationRequest(BaseModel):
    password: str | None = None
    ids: list[str] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    success: bool = True


class SubmitCalendarResponse(SuccessResponse):
    message: str


class ApproveResponse(SuccessResponse):
    approved: int
    names: list[str]


class RejectResponse(SuccessResponse):
    rejected: int
    names: list[str]


class PendingSubmissionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submissions: list[dict[str, Any]] = Field(default_factory=list)
    file_sha: str | None = Field(None, alias="fileSha")


class SourcesResponse(BaseModel):
    sources: list[dict[str, Any]] = Field(default_factory=list)


class SyncReport(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    sources_written: int = 0
    total_events: int = 0
    dry_run: bool = False
