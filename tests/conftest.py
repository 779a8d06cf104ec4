"""
Shared fixtures for the test suite.

The environment is pinned before anything from ``community_calendar`` is
imported, because the settings object is built at import time.
"""

import copy
import os

for _name in (
    "OPENAI_API_KEY",
    "GOOGLE_CALENDAR_API_KEY",
    "EVENTBRITE_API_KEY",
    "APIFY_API_TOKEN",
    "INSTAGRAM_BUSINESS_USER_ID",
    "INSTAGRAM_USER_ACCESS_TOKEN",
    "GITHUB_TOKEN",
    "EVENT_SOURCES_ENV",
):
    os.environ.pop(_name, None)

os.environ["ADMIN_PASSWORD"] = "test-admin-password"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["ENABLE_OCR"] = "false"
os.environ["CALENDAR_TIMEZONE"] = "America/New_York"
os.environ["SYNC_BATCH_DELAY_SECONDS"] = "0"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable, Iterator  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from typing import Any  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from community_calendar.exceptions import (  # noqa: E402
    DocumentConflictError,
    DocumentNotFoundError,
)
from community_calendar.schemas import (  # noqa: E402
    Event,
    EventSourcesConfig,
    ExtractionContext,
    RawExtractedEvent,
)
from community_calendar.services.document_store import (  # noqa: E402
    DocumentStore,
    StoredDocument,
)
from community_calendar.services.event_extractor import EventExtractor  # noqa: E402
from community_calendar.services.ocr_service import OCRService  # noqa: E402
from community_calendar.services.snapshot_store import SnapshotStore  # noqa: E402

NEW_YORK = ZoneInfo("America/New_York")


class InMemoryDocumentStore(DocumentStore):
    """Versioned documents kept in a dict; versions are ``v1``, ``v2``, ..."""

    def __init__(self, documents: dict[str, Any] | None = None, conflict: bool = False):
        self._counter = 0
        self.documents: dict[str, tuple[Any, str]] = {}
        self.writes: list[dict[str, Any]] = []
        self.conflict = conflict
        for path, content in (documents or {}).items():
            self.documents[path] = (copy.deepcopy(content), self._next_version())

    def _next_version(self) -> str:
        self._counter += 1
        return f"v{self._counter}"

    def content(self, path: str) -> Any:
        return self.documents[path][0]

    async def read(self, path: str) -> StoredDocument:
        if path not in self.documents:
            raise DocumentNotFoundError(f"{path} does not exist")
        content, version = self.documents[path]
        return StoredDocument(content=copy.deepcopy(content), version=version)

    async def write(self, path, content, expected_version, message, indent=2) -> str:
        current_version = self.documents[path][1] if path in self.documents else None
        if self.conflict or current_version != expected_version:
            raise DocumentConflictError(f"{path} changed since it was read; reload and retry")
        version = self._next_version()
        self.documents[path] = (copy.deepcopy(content), version)
        self.writes.append({"path": path, "message": message, "indent": indent})
        return version


class StubExtractor(EventExtractor):
    """Returns canned candidates keyed by caption and records every call."""

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, str, ExtractionContext]] = []

    async def extract(self, caption, ocr_text, context) -> list[RawExtractedEvent]:
        self.calls.append((caption, ocr_text, context))
        result = self.responses.get(caption, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class StubOCR(OCRService):
    def __init__(self, texts: dict[str, str] | None = None):
        self.texts = texts or {}
        self.requested: list[str] = []

    async def extract_text(self, image_url: str) -> str:
        self.requested.append(image_url)
        return self.texts.get(image_url, "")


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events starting at a local New York wall-clock time."""

    def _make(
        event_id: str = "ev-1",
        title: str = "Community Potluck",
        start: datetime | None = None,
        duration: timedelta = timedelta(hours=1),
        **fields: Any,
    ) -> Event:
        start = start or datetime(2025, 6, 14, 19, 0, tzinfo=NEW_YORK)
        fields.setdefault("org", "Test Org")
        return Event(id=event_id, title=title, start=start, end=start + duration, **fields)

    return _make


@pytest.fixture
def mock_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for AsyncClients answering through an ``httpx.MockTransport`` handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def snapshot_store(tmp_path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "public" / "calendar_data.json")


@pytest.fixture
def approved_sources() -> dict[str, Any]:
    return {
        "googleCalendar": [
            {
                "name": "Durham Community Events",
                "googleCalendarId": "durham@group.calendar.google.com",
                "filters": [["social"]],
                "websiteUrl": "https://example.org/durham",
            }
        ],
        "instagram": [
            {
                "name": "Triangle Queer Makers",
                "username": "trianglequeermakers",
                "filters": [["lgbtq"]],
            }
        ],
        "eventbrite": [
            {"name": "Carrboro Arts Collective", "organizerId": "123", "filters": [["art"]]}
        ],
    }


@pytest.fixture
def pending_submissions() -> list[dict[str, Any]]:
    return [
        {
            "name": "Raleigh Book Club",
            "googleCalendarId": "books@group.calendar.google.com",
            "filters": [["books"]],
            "submittedAt": "2025-06-01T12:00:00Z",
        },
        {
            "name": "Cary Run Club",
            "googleCalendarId": "runclub@gmail.com",
            "filters": [["sports"]],
            "prefixTitle": "[Run] ",
            "submittedAt": "2025-06-02T12:00:00Z",
        },
    ]


@pytest.fixture
def document_store(approved_sources, pending_submissions) -> InMemoryDocumentStore:
    from community_calendar.config import settings

    return InMemoryDocumentStore(
        {
            settings.approved_sources_document: approved_sources,
            settings.pending_submissions_document: pending_submissions,
        }
    )


@pytest.fixture
def sources_config() -> EventSourcesConfig:
    return EventSourcesConfig.model_validate(
        {"instagram": [{"name": "Triangle Queer Makers", "username": "trianglequeermakers"}]}
    )


@pytest.fixture
def app(sources_config) -> Iterator[FastAPI]:
    """A fresh application whose source configuration comes from ``sources_config``."""
    from community_calendar.dependencies.services import get_event_sources_config
    from main import create_app

    app_ = create_app()
    app_.dependency_overrides[get_event_sources_config] = lambda: sources_config
    yield app_
    app_.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI, snapshot_store, document_store) -> Iterator[TestClient]:
    """
    Test client with the lifespan running; the snapshot and document stores
    are swapped for test doubles once startup has completed.
    """
    with TestClient(app) as c:
        app.state.snapshot_store = snapshot_store
        app.state.document_store = document_store
        yield c


@pytest.fixture
def stub_extractor() -> type[StubExtractor]:
    return StubExtractor


@pytest.fixture
def stub_ocr() -> type[StubOCR]:
    return StubOCR


@pytest.fixture
def memory_document_store() -> type[InMemoryDocumentStore]:
    return InMemoryDocumentStore
