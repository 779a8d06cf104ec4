"""
Shared-secret checks for the admin and cron endpoints.
"""

import secrets

from fastapi import HTTPException, Query, status

from community_calendar.config import settings
from community_calendar.utils.logger import setup_logger

logger = setup_logger("auth")


def _matches(provided: str | None, expected: str) -> bool:
    return provided is not None and secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    )


def verify_admin_password(password: str | None) -> None:
    """Raise unless ``password`` equals ``ADMIN_PASSWORD``."""
    if not settings.admin_password:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin password not configured",
        )
    if not _matches(password, settings.admin_password):
        logger.warning("Rejected admin request with an invalid password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )


def verify_cron_secret(auth: str | None = Query(None)) -> None:
    """Dependency guarding the cron trigger with ``?auth=CRON_SECRET``."""
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret not configured",
        )
    if not _matches(auth, settings.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
