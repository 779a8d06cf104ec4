"""
Document Store - versioned JSON documents used as the moderation datastore.

Reads return the parsed document together with an opaque version token;
writes must present the token they read and are refused when the document
changed in between (optimistic concurrency).
"""

import base64
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from community_calendar.exceptions import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStoreError,
)
from community_calendar.utils.logger import setup_logger

logger = setup_logger("document_store")


@dataclass
class StoredDocument:
    content: Any
    version: str | None


class DocumentStore(ABC):
    @abstractmethod
    async def read(self, path: str) -> StoredDocument:
        """Return the document at ``path``. Raises DocumentNotFoundError if absent."""

    @abstractmethod
    async def write(
        self,
        path: str,
        content: Any,
        expected_version: str | None,
        message: str,
        indent: int = 2,
    ) -> str:
        """
        Replace the document at ``path`` and return its new version.

        ``expected_version`` None creates the document. Raises
        DocumentConflictError when the stored version differs.
        """


class GitHubDocumentStore(DocumentStore):
    """JSON files in a GitHub repository, via the Contents API (``sha`` is the version)."""

    CONFLICT_STATUS_CODES = {409, 422}

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        user_agent: str = "community-calendar-admin",
    ):
        if not token:
            raise ValueError("GitHub token is required.")
        self.http_client = http_client
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": user_agent,
        }

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{path}"

    async def read(self, path: str) -> StoredDocument:
        try:
            response = await self.http_client.get(self._url(path), headers=self.headers)
        except httpx.HTTPError as e:
            raise DocumentStoreError(f"Failed to fetch {path}: {type(e).__name__}: {e}") from e

        if response.status_code == 404:
            raise DocumentNotFoundError(f"{path} does not exist")
        if response.is_error:
            logger.error(f"[GitHub] GET {path} returned {response.status_code}: {response.text[:200]}")
            raise DocumentStoreError(f"Failed to fetch {path} ({response.status_code})")

        data = response.json()
        try:
            decoded = base64.b64decode(data["content"]).decode("utf-8")
            content = json.loads(decoded)
        except (KeyError, ValueError) as e:
            raise DocumentStoreError(f"{path} does not hold a readable JSON document: {e}") from e

        return StoredDocument(content=content, version=data.get("sha"))

    async def write(
        self,
        path: str,
        content: Any,
        expected_version: str | None,
        message: str,
        indent: int = 2,
    ) -> str:
        encoded = base64.b64encode(
            json.dumps(content, indent=indent, ensure_ascii=False).encode("utf-8")
        ).decode("ascii")
        body = {"message": message, "content": encoded}
        if expected_version:
            body["sha"] = expected_version

        try:
            response = await self.http_client.put(
                self._url(path),
                headers={**self.headers, "Content-Type": "application/json"},
                json=body,
            )
        except httpx.HTTPError as e:
            raise DocumentStoreError(f"Failed to update {path}: {type(e).__name__}: {e}") from e

        if response.status_code in self.CONFLICT_STATUS_CODES:
            logger.warning(f"[GitHub] PUT {path} refused as stale ({response.status_code})")
            raise DocumentConflictError(f"{path} changed since it was read; reload and retry")
        if response.is_error:
            logger.error(f"[GitHub] PUT {path} returned {response.status_code}: {response.text[:200]}")
            raise DocumentStoreError(f"Failed to update {path} ({response.status_code})")

        new_version = (response.json().get("content") or {}).get("sha")
        logger.info(f"[GitHub] Updated {path}: {message.splitlines()[0]}")
        return new_version
