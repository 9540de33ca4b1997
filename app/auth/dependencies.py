# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# The access token is read from the Authorization header, falling back to
# the session cookie set by the OAuth callback.
#
# Supports both:
# - ES256 (new Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret), only when SUPABASE_JWT_SECRET is set
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
import time
from typing import Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser

logger = logging.getLogger(__name__)

# Session cookie names
ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"

# HTTP Bearer token extractor; missing header falls through to the cookie
security_optional = HTTPBearer(auto_error=False)

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour
JWKS_ALGORITHMS = ("ES256", "RS256")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Stale keys beat no keys
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple[str | dict, str]:
    """
    Get the appropriate signing key for a token.

    HS256 is only accepted when SUPABASE_JWT_SECRET is configured; any
    other algorithm must match a key in the project's JWKS.

    Returns:
        Tuple of (key, algorithm) to use for verification

    Raises:
        HTTPException: 401 if no trusted key matches the token header
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")

    alg = unverified_header.get("alg")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        if not settings.SUPABASE_JWT_SECRET:
            logger.warning("Rejected HS256 token: SUPABASE_JWT_SECRET is not set")
            raise _unauthorized("Invalid token: unsupported signing algorithm")
        return settings.SUPABASE_JWT_SECRET, "HS256"

    # ES256 / RS256 keys are published in the project's JWKS
    if alg in JWKS_ALGORITHMS and kid:
        jwks = _fetch_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"No signing key for alg={alg}, kid={kid}")
    raise _unauthorized("Invalid token: unknown signing key")


def verify_access_token(token: str) -> AuthUser:
    """
    Verify a Supabase access token and build the AuthUser.

    Checks signature, expiry and the "authenticated" audience.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        signing_key, algorithm = _get_signing_key(token)

        payload = jwt.decode(
            token,
            signing_key,
            algorithms=[algorithm],
            audience="authenticated"
        )

    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise _unauthorized("Token has expired")

    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise _unauthorized(f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT token missing 'sub' claim")
        raise _unauthorized("Invalid token: missing user ID")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {user_id}")
        raise _unauthorized("Invalid token: malformed user ID")

    logger.debug(f"Authenticated user: {user_id}")
    return AuthUser(id=user_uuid, email=payload.get("email"), access_token=token)


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> AuthUser:
    """
    Extract and validate the user from the Bearer header or session cookie.

    Returns:
        AuthUser: The authenticated user

    Raises:
        HTTPException: 401 if no token is present, or it is invalid or expired
    """
    token = _extract_token(request, credentials)
    if not token:
        raise _unauthorized("Not authenticated")

    # JWKS refresh is a blocking fetch
    return await run_in_threadpool(verify_access_token, token)


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> Optional[AuthUser]:
    """
    Optionally get the current user.

    Returns None if no token is provided or it is invalid, instead of
    raising. Used for pages that redirect anonymous visitors to login.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None

    try:
        return await run_in_threadpool(verify_access_token, token)
    except HTTPException:
        return None
