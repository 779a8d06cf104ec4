"""
Moderation Service - the community calendar submission workflow.

Two documents live in the document store: the approved sources
(``event_sources.json``) and the pending submissions list. Every mutation is
a read-modify-write that presents the version it read, so concurrent admin
actions fail with a conflict instead of silently overwriting each other.
"""

from datetime import UTC, datetime
from typing import Any

from community_calendar.config import settings
from community_calendar.exceptions import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStoreError,
    NoMatchingSubmissionsError,
    SubmissionValidationError,
)
from community_calendar.schemas import (
    ApproveResponse,
    CalendarSubmission,
    PendingSubmissionsResponse,
    RejectResponse,
    SubmitCalendarResponse,
)
from community_calendar.services.document_store import DocumentStore, StoredDocument
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.retry_utils import async_retry

logger = setup_logger("moderation_service")

VALID_CALENDAR_ID_DOMAINS = ("@group.calendar.google.com", "@gmail.com")
PENDING_WRITE_ATTEMPTS = 3

# Optional submission fields carried into the approved source, in output order
OPTIONAL_SOURCE_FIELDS = (
    "prefixTitle",
    "suffixTitle",
    "suffixDescription",
    "defaultLocation",
    "instagramHandle",
    "websiteUrl",
    "contactEmail",
    "description",
)
SUBMISSION_OPTIONAL_FIELDS = ("prefixTitle", "suffixTitle", "suffixDescription", "defaultLocation")

# Fields listed per source type by list_sources
SOURCE_LISTING_FIELDS = {
    "googleCalendar": ("googleCalendarId",),
    "instagram": (),
    "eventbrite": ("organizerId",),
}
DISPLAY_FIELDS = (
    "instagramHandle",
    "websiteUrl",
    "contactEmail",
    "description",
    "defaultLocation",
    "filters",
)


def submission_id(submission: dict[str, Any], index: int) -> str:
    return submission.get("id") or f"{submission.get('googleCalendarId')}-{index}"


def with_ids(submissions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {"id": submission_id(submission, index), **submission}
        for index, submission in enumerate(submissions)
    ]


def clean_approved_source(submission: dict[str, Any]) -> dict[str, Any]:
    """Strip moderation metadata (id, submittedAt) from a submission."""
    source = {
        "name": submission.get("name"),
        "googleCalendarId": submission.get("googleCalendarId"),
        "filters": submission.get("filters"),
    }
    for field in OPTIONAL_SOURCE_FIELDS:
        if submission.get(field):
            source[field] = submission[field]
    return source


class ModerationService:
    def __init__(
        self,
        store: DocumentStore,
        sources_path: str = settings.approved_sources_document,
        pending_path: str = settings.pending_submissions_document,
    ):
        self.store = store
        self.sources_path = sources_path
        self.pending_path = pending_path

    async def _read_pending(self) -> StoredDocument:
        try:
            document = await self.store.read(self.pending_path)
        except DocumentNotFoundError:
            return StoredDocument(content=[], version=None)
        if not isinstance(document.content, list):
            raise DocumentStoreError(f"{self.pending_path} is not a JSON array")
        return document

    async def _read_sources(self) -> StoredDocument:
        document = await self.store.read(self.sources_path)
        if not isinstance(document.content, dict):
            raise DocumentStoreError(f"{self.sources_path} is not a JSON object")
        return document

    async def list_pending(self) -> PendingSubmissionsResponse:
        document = await self._read_pending()
        return PendingSubmissionsResponse(
            submissions=with_ids(document.content), file_sha=document.version
        )

    async def list_approved(self) -> list[dict[str, Any]]:
        document = await self._read_sources()
        return document.content.get("googleCalendar") or []

    async def list_sources(self) -> list[dict[str, Any]]:
        """Every approved source flattened into one list, tagged with its type."""
        content = (await self._read_sources()).content
        listing: list[dict[str, Any]] = []
        for source_type, id_fields in SOURCE_LISTING_FIELDS.items():
            for source in content.get(source_type) or []:
                entry = {"type": source_type, "name": source.get("name")}
                for field in id_fields:
                    entry[field] = source.get(field)
                for field in DISPLAY_FIELDS:
                    entry[field] = source.get(field)
                if source_type == "instagram" and source.get("username"):
                    entry["instagramHandle"] = f"@{source['username']}"
                listing.append(entry)
        return listing

    @staticmethod
    def validate_submission(submission: CalendarSubmission) -> None:
        if not submission.name or not submission.google_calendar_id or not submission.filters:
            raise SubmissionValidationError(
                "Missing required fields: name, googleCalendarId, and filters are required"
            )
        if not any(domain in submission.google_calendar_id for domain in VALID_CALENDAR_ID_DOMAINS):
            raise SubmissionValidationError("Invalid Google Calendar ID format")

    async def submit(
        self, submission: CalendarSubmission, now: datetime | None = None
    ) -> SubmitCalendarResponse:
        self.validate_submission(submission)

        entry: dict[str, Any] = {
            "name": submission.name,
            "googleCalendarId": submission.google_calendar_id,
            "filters": submission.filters,
            "submittedAt": (now or datetime.now(UTC)).isoformat().replace("+00:00", "Z"),
        }
        submitted = submission.model_dump(by_alias=True)
        for field in SUBMISSION_OPTIONAL_FIELDS:
            if submitted.get(field):
                entry[field] = submitted[field]

        document = await self._read_pending()
        pending = [*document.content, entry]
        await self.store.write(
            self.pending_path,
            pending,
            expected_version=document.version,
            message=f"Add calendar submission: {submission.name}",
        )
        logger.info(f"New calendar submission '{submission.name}' ({len(pending)} pending)")
        return SubmitCalendarResponse(
            message="Calendar submission received and saved successfully"
        )

    @staticmethod
    def _partition(
        submissions: list[dict[str, Any]], ids: list[str]
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        wanted = set(ids)
        selected = [sub for sub in submissions if sub["id"] in wanted]
        remaining = [sub for sub in submissions if sub["id"] not in wanted]
        if not selected:
            raise NoMatchingSubmissionsError("No matching submissions found")
        return selected, remaining

    async def approve(self, ids: list[str]) -> ApproveResponse:
        pending = await self._read_pending()
        to_approve, _ = self._partition(with_ids(pending.content), ids)
        names = [sub.get("name") for sub in to_approve]
        calendar_ids = {sub.get("googleCalendarId") for sub in to_approve}

        sources = await self._read_sources()
        content = dict(sources.content)
        existing = content.get("googleCalendar") or []
        known_ids = {source.get("googleCalendarId") for source in existing}
        new_sources = [
            clean_approved_source(sub)
            for sub in to_approve
            if sub.get("googleCalendarId") not in known_ids
        ]
        if new_sources:
            content["googleCalendar"] = [*existing, *new_sources]
            await self.store.write(
                self.sources_path,
                content,
                expected_version=sources.version,
                message=f"Approve calendar submissions: {', '.join(names)}",
                indent=4,
            )
        else:
            logger.info(f"Submissions already in approved sources, clearing from pending: {names}")

        await self._remove_from_pending(calendar_ids, names)
        logger.info(f"Approved {len(to_approve)} submission(s): {names}")
        return ApproveResponse(approved=len(to_approve), names=names)

    @async_retry(
        max_retries=PENDING_WRITE_ATTEMPTS,
        delay_seconds=0.1,
        is_retryable=lambda e: isinstance(e, DocumentConflictError),
    )
    async def _remove_from_pending(self, calendar_ids: set[str], names: list[str]) -> None:
        # Re-read on every attempt; the sources write has already landed
        pending = await self._read_pending()
        remaining = [
            sub for sub in pending.content if sub.get("googleCalendarId") not in calendar_ids
        ]
        if len(remaining) == len(pending.content):
            return
        await self.store.write(
            self.pending_path,
            remaining,
            expected_version=pending.version,
            message=f"Remove approved submissions from pending: {', '.join(names)}",
        )

    async def reject(self, ids: list[str]) -> RejectResponse:
        pending = await self._read_pending()
        to_reject, remaining = self._partition(with_ids(pending.content), ids)
        names = [sub.get("name") for sub in to_reject]

        await self.store.write(
            self.pending_path,
            remaining,
            expected_version=pending.version,
            message=f"Reject calendar submissions: {', '.join(names)}",
        )
        logger.info(f"Rejected {len(to_reject)} submission(s): {names}")
        return RejectResponse(rejected=len(to_reject), names=names)
