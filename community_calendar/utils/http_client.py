import httpx

from community_calendar.config import settings


def create_http_client() -> httpx.AsyncClient:
    """Shared client for all upstream REST calls; every request is bounded by the HTTP timeout."""
    return httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        headers={"User-Agent": settings.http_user_agent},
        follow_redirects=True,
    )
