# =============================================================================
# app/routers/protected.py - Protected Page
# =============================================================================
# Signed-in users see their email and the latest captions, and can vote.
# Anonymous visitors to the page are redirected to Google sign-in.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from app.auth import get_current_user, get_current_user_optional, AuthUser
from app.config import settings
from core.models.caption import ProtectedPageResponse, VoteRequest, VoteResponse
from core.services.caption_service import CaptionService

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_PATH = "/api/v1/auth/login"


@router.get("", response_model=ProtectedPageResponse)
async def protected_page(
    user: AuthUser | None = Depends(get_current_user_optional),
):
    """
    Protected page data.

    Redirects to the login flow when there is no valid session.
    """
    if user is None:
        return RedirectResponse(LOGIN_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    # supabase-py is synchronous
    captions = await run_in_threadpool(
        CaptionService.list_captions,
        user.access_token,
        limit=settings.CAPTIONS_PAGE_SIZE,
    )

    return ProtectedPageResponse(
        user_id=str(user.id),
        email=user.email,
        captions=captions,
    )


@router.post("/votes", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def vote_on_caption(
    request: VoteRequest,
    user: AuthUser = Depends(get_current_user),
):
    """
    Up- or down-vote a caption.

    Raises:
        401: If not authenticated
        502: If the database rejects the vote
    """
    return await run_in_threadpool(
        CaptionService.cast_vote, user.access_token, str(user.id), request
    )
