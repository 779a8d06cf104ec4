"""
Admin API Routes - moderation of community calendar submissions.

Every route checks the shared admin password: POST routes read it from the
body, GET routes from the ``X-Admin-Password`` header.
"""

from fastapi import APIRouter, Depends, Header, HTTPException

from community_calendar.dependencies.auth import verify_admin_password
from community_calendar.dependencies.services import get_moderation_service
from community_calendar.exceptions import NoMatchingSubmissionsError
from community_calendar.schemas import (
    AdminAuthRequest,
    ApproveResponse,
    ModerationRequest,
    PendingSubmissionsResponse,
    RejectResponse,
    SourcesResponse,
    SuccessResponse,
)
from community_calendar.services.moderation_service import ModerationService

router = APIRouter(prefix="/api/admin", tags=["admin"])


def require_admin_header(x_admin_password: str | None = Header(None)) -> None:
    verify_admin_password(x_admin_password)


@router.post("/auth", response_model=SuccessResponse)
async def admin_auth(request: AdminAuthRequest):
    verify_admin_password(request.password)
    return SuccessResponse()


@router.get(
    "/pending",
    response_model=PendingSubmissionsResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin_header)],
)
async def get_pending_submissions(
    moderation: ModerationService = Depends(get_moderation_service),
):
    return await moderation.list_pending()


@router.get(
    "/approved",
    response_model=SourcesResponse,
    dependencies=[Depends(require_admin_header)],
)
async def get_approved_sources(
    moderation: ModerationService = Depends(get_moderation_service),
):
    return SourcesResponse(sources=await moderation.list_approved())


@router.post("/approve", response_model=ApproveResponse)
async def approve_submissions(
    request: ModerationRequest,
    moderation: ModerationService = Depends(get_moderation_service),
):
    verify_admin_password(request.password)
    try:
        return await moderation.approve(request.ids)
    except NoMatchingSubmissionsError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/reject", response_model=RejectResponse)
async def reject_submissions(
    request: ModerationRequest,
    moderation: ModerationService = Depends(get_moderation_service),
):
    verify_admin_password(request.password)
    try:
        return await moderation.reject(request.ids)
    except NoMatchingSubmissionsError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
