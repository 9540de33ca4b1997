# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Google sign-in through Supabase Auth, session cookies and sign-out.
#
# Flow:
#   GET  /login     -> 307 to Supabase authorize URL
#   GET  /callback  -> exchange code, set cookies, 307 to /protected
#   POST /signout   -> revoke at Supabase, clear cookies
#   GET  /me        -> the signed-in user
# =============================================================================

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse

from app.config import settings
from app.auth.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_current_user,
    get_current_user_optional,
    verify_access_token,
)
from app.auth.models import AuthUser, SessionTokens, UserResponse
from app.auth.oauth import (
    OAuthExchangeError,
    exchange_code_for_session,
    revoke_session,
    start_sign_in,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CODE_VERIFIER_COOKIE = "sb-code-verifier"
CODE_VERIFIER_MAX_AGE = 600  # 10 minutes to finish signing in

# Where to land after a successful sign-in
POST_LOGIN_PATH = "/protected"


def _set_cookie(response, name: str, value: str, max_age: int | None = None) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def _store_session(response, tokens: SessionTokens) -> None:
    _set_cookie(response, ACCESS_TOKEN_COOKIE, tokens.access_token, tokens.expires_in)
    if tokens.refresh_token:
        _set_cookie(response, REFRESH_TOKEN_COOKIE, tokens.refresh_token)


@router.get("/login")
async def login():
    """
    Start Google sign-in.

    Redirects the browser to Supabase Auth, which sends it back to
    /callback with an authorization code.
    """
    url, verifier = await run_in_threadpool(start_sign_in, settings.oauth_redirect_url)

    response = RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    _set_cookie(response, CODE_VERIFIER_COOKIE, verifier, CODE_VERIFIER_MAX_AGE)
    return response


@router.get("/callback")
async def oauth_callback(
    request: Request,
    code: str | None = Query(default=None, description="OAuth authorization code"),
    error_description: str | None = Query(default=None),
):
    """
    Finish Google sign-in.

    Exchanges the code for a session, stores it in HTTP-only cookies and
    redirects to the protected page.

    Raises:
        400: If the code is missing, the sign-in cookie expired, or
             Supabase rejects the exchange
    """
    if error_description:
        raise HTTPException(status_code=400, detail=f"Sign-in failed: {error_description}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    verifier = request.cookies.get(CODE_VERIFIER_COOKIE)
    if not verifier:
        raise HTTPException(
            status_code=400,
            detail="Sign-in session expired, start again from /api/v1/auth/login",
        )

    try:
        tokens = await run_in_threadpool(exchange_code_for_session, code, verifier)
    except OAuthExchangeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = await run_in_threadpool(verify_access_token, tokens.access_token)
    logger.info(f"User signed in: {user.id}")

    response = RedirectResponse(POST_LOGIN_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    _store_session(response, tokens)
    response.delete_cookie(CODE_VERIFIER_COOKIE)
    return response


@router.post("/signout")
async def signout(user: AuthUser | None = Depends(get_current_user_optional)):
    """
    Sign out.

    Revokes the session at Supabase (when there is one) and clears the
    session cookies either way.
    """
    revoked = False
    if user is not None:
        revoked = await run_in_threadpool(revoke_session, user.access_token)
        logger.info(f"User signed out: {user.id}")

    response = JSONResponse({"signed_out": True, "revoked": revoked})
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    return response


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user.

    Raises:
        401: If not authenticated
    """
    return UserResponse(id=user.id, email=user.email)
