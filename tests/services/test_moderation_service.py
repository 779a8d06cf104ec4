from datetime import UTC, datetime

import pytest

from community_calendar.config import settings
from community_calendar.exceptions import (
    DocumentConflictError,
    NoMatchingSubmissionsError,
    SubmissionValidationError,
)
from community_calendar.schemas import CalendarSubmission
from community_calendar.services.moderation_service import ModerationService

SOURCES = settings.approved_sources_document
PENDING = settings.pending_submissions_document


@pytest.fixture
def moderation(document_store) -> ModerationService:
    return ModerationService(document_store)


def submission(**overrides) -> CalendarSubmission:
    fields = {
        "name": "Garden Club",
        "googleCalendarId": "garden@group.calendar.google.com",
        "filters": [["outdoors"]],
    }
    fields.update(overrides)
    return CalendarSubmission.model_validate(fields)


@pytest.mark.asyncio
async def test_submit_appends_to_pending(moderation, document_store):
    now = datetime(2025, 6, 3, 12, 0, tzinfo=UTC)
    response = await moderation.submit(submission(suffixTitle=" 🌱", prefixTitle=""), now=now)

    assert response.success is True
    entry = document_store.content(PENDING)[-1]
    assert entry == {
        "name": "Garden Club",
        "googleCalendarId": "garden@group.calendar.google.com",
        "filters": [["outdoors"]],
        "submittedAt": "2025-06-03T12:00:00Z",
        "suffixTitle": " 🌱",
    }
    assert len(document_store.content(PENDING)) == 3


@pytest.mark.asyncio
async def test_first_submission_creates_the_pending_document(memory_document_store):
    store = memory_document_store({SOURCES: {"googleCalendar": []}})
    await ModerationService(store).submit(submission())
    assert [entry["name"] for entry in store.content(PENDING)] == ["Garden Club"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"name": ""}, {"googleCalendarId": None}, {"filters": []}, {"googleCalendarId": "garden@example.com"}],
)
async def test_invalid_submissions_are_rejected(moderation, document_store, overrides):
    with pytest.raises(SubmissionValidationError):
        await moderation.submit(submission(**overrides))
    assert document_store.writes == []


@pytest.mark.asyncio
async def test_pending_entries_get_ids(moderation):
    pending = await moderation.list_pending()
    assert [entry["id"] for entry in pending.submissions] == [
        "books@group.calendar.google.com-0",
        "runclub@gmail.com-1",
    ]
    assert pending.file_sha is not None


@pytest.mark.asyncio
async def test_approve_moves_submissions_to_sources(moderation, document_store):
    response = await moderation.approve(["runclub@gmail.com-1"])

    assert response.approved == 1
    assert response.names == ["Cary Run Club"]
    approved = document_store.content(SOURCES)["googleCalendar"][-1]
    assert approved == {
        "name": "Cary Run Club",
        "googleCalendarId": "runclub@gmail.com",
        "filters": [["sports"]],
        "prefixTitle": "[Run] ",
    }
    assert document_store.content(SOURCES)["instagram"][0]["username"] == "trianglequeermakers"
    remaining = document_store.content(PENDING)
    assert [entry["name"] for entry in remaining] == ["Raleigh Book Club"]
    assert [write["indent"] for write in document_store.writes] == [4, 2]


@pytest.mark.asyncio
async def test_reject_only_removes_from_pending(moderation, document_store):
    response = await moderation.reject(["books@group.calendar.google.com-0"])
    assert response.rejected == 1
    assert [entry["name"] for entry in document_store.content(PENDING)] == ["Cary Run Club"]
    assert len(document_store.content(SOURCES)["googleCalendar"]) == 1


@pytest.mark.asyncio
async def test_unknown_ids_change_nothing(moderation, document_store):
    with pytest.raises(NoMatchingSubmissionsError):
        await moderation.approve(["nope"])
    with pytest.raises(NoMatchingSubmissionsError):
        await moderation.reject([])
    assert document_store.writes == []


@pytest.mark.asyncio
async def test_concurrent_change_surfaces_as_conflict(memory_document_store, approved_sources, pending_submissions):
    store = memory_document_store({SOURCES: approved_sources, PENDING: pending_submissions}, conflict=True)
    with pytest.raises(DocumentConflictError):
        await ModerationService(store).reject(["runclub@gmail.com-1"])


@pytest.mark.asyncio
async def test_approve_retries_pending_cleanup_after_a_conflict(memory_document_store, approved_sources, pending_submissions):
    class PendingConflictOnce(memory_document_store):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.pending_conflicts = 1

        async def write(self, path, content, expected_version, message, indent=2):
            if path == PENDING and self.pending_conflicts:
                self.pending_conflicts -= 1
                raise DocumentConflictError(f"{path} changed since it was read; reload and retry")
            return await super().write(path, content, expected_version, message, indent)

    store = PendingConflictOnce({SOURCES: approved_sources, PENDING: pending_submissions})

    response = await ModerationService(store).approve(["books@group.calendar.google.com-0"])

    assert response.names == ["Raleigh Book Club"]
    calendar_ids = [source["googleCalendarId"] for source in store.content(SOURCES)["googleCalendar"]]
    assert calendar_ids.count("books@group.calendar.google.com") == 1
    assert [entry["name"] for entry in store.content(PENDING)] == ["Cary Run Club"]


@pytest.mark.asyncio
async def test_approving_an_already_approved_submission_adds_no_duplicate(memory_document_store, approved_sources, pending_submissions):
    approved_sources["googleCalendar"].append(
        {"name": "Raleigh Book Club", "googleCalendarId": "books@group.calendar.google.com", "filters": [["books"]]}
    )
    store = memory_document_store({SOURCES: approved_sources, PENDING: pending_submissions})

    await ModerationService(store).approve(["books@group.calendar.google.com-0"])

    calendar_ids = [source["googleCalendarId"] for source in store.content(SOURCES)["googleCalendar"]]
    assert calendar_ids.count("books@group.calendar.google.com") == 1
    assert [entry["name"] for entry in store.content(PENDING)] == ["Cary Run Club"]
    assert [write["path"] for write in store.writes] == [PENDING]


@pytest.mark.asyncio
async def test_list_sources_flattens_all_types(moderation):
    listing = await moderation.list_sources()
    assert [(entry["type"], entry["name"]) for entry in listing] == [
        ("googleCalendar", "Durham Community Events"),
        ("instagram", "Triangle Queer Makers"),
        ("eventbrite", "Carrboro Arts Collective"),
    ]
    assert listing[0]["googleCalendarId"] == "durham@group.calendar.google.com"
    assert listing[0]["websiteUrl"] == "https://example.org/durham"
    assert listing[1]["instagramHandle"] == "@trianglequeermakers"
    assert listing[2]["organizerId"] == "123"


@pytest.mark.asyncio
async def test_list_approved(moderation):
    approved = await moderation.list_approved()
    assert [source["name"] for source in approved] == ["Durham Community Events"]
