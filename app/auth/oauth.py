# =============================================================================
# app/auth/oauth.py - Supabase Google OAuth (PKCE)
# =============================================================================
# Sign-in is delegated to Supabase Auth through supabase-py:
# 1. /login asks auth.sign_in_with_oauth() for the Google authorize URL;
#    the PKCE verifier it generates is kept in a short-lived cookie
# 2. Supabase sends the browser back to /callback?code=...
# 3. auth.exchange_code_for_session() trades code + verifier for tokens
#
# Every call builds its own client over a VerifierStorage, so no shared
# client ever holds a user's session or verifier. The SDK is synchronous;
# routes call these helpers from a threadpool.
# =============================================================================

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError
from supabase import AuthError, Client, ClientOptions, create_client
from supabase_auth import SyncSupportedStorage
from supabase_auth.constants import STORAGE_KEY

from app.config import settings
from app.auth.models import SessionTokens

logger = logging.getLogger(__name__)

OAUTH_PROVIDER = "google"

# Key supabase-py stores the PKCE verifier under
CODE_VERIFIER_KEY = f"{STORAGE_KEY}-code-verifier"


class OAuthExchangeError(Exception):
    """Raised when Supabase rejects the authorization code."""


class VerifierStorage(SyncSupportedStorage):
    """
    Auth storage scoped to one request.

    Seeded with the verifier from the sign-in cookie on the way back, and
    read after sign_in_with_oauth() on the way out.
    """

    def __init__(self, code_verifier: Optional[str] = None):
        self.items: dict[str, str] = {}
        if code_verifier:
            self.items[CODE_VERIFIER_KEY] = code_verifier

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)

    @property
    def code_verifier(self) -> Optional[str]:
        return self.items.get(CODE_VERIFIER_KEY)


def create_auth_client(
    storage: Optional[VerifierStorage] = None,
    http_client: Optional[httpx.Client] = None,
) -> Client:
    """Build a PKCE Supabase client that never persists or refreshes a session."""
    options = ClientOptions(
        flow_type="pkce",
        auto_refresh_token=False,
        persist_session=False,
        storage=storage or VerifierStorage(),
        httpx_client=http_client,
    )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=options)


def start_sign_in(redirect_to: str, http_client: Optional[httpx.Client] = None) -> tuple[str, str]:
    """
    Begin Google sign-in.

    Returns:
        Tuple of (authorize URL, PKCE code verifier)
    """
    storage = VerifierStorage()
    client = create_auth_client(storage, http_client)
    response = client.auth.sign_in_with_oauth({
        "provider": OAUTH_PROVIDER,
        "options": {"redirect_to": redirect_to},
    })
    return response.url, storage.code_verifier


def exchange_code_for_session(
    auth_code: str,
    code_verifier: str,
    http_client: Optional[httpx.Client] = None,
) -> SessionTokens:
    """
    Trade an OAuth authorization code for session tokens.

    Raises:
        OAuthExchangeError: If Supabase rejects the code or is unreachable
    """
    client = create_auth_client(VerifierStorage(code_verifier), http_client)

    try:
        response = client.auth.exchange_code_for_session({
            "auth_code": auth_code,
            "code_verifier": code_verifier,
        })
    except AuthError as e:
        logger.warning(f"OAuth code exchange rejected: {e.message}")
        raise OAuthExchangeError(f"Code exchange failed: {e.message}") from e
    except httpx.HTTPError as e:
        raise OAuthExchangeError(f"Could not reach Supabase Auth: {e}") from e
    except ValidationError as e:
        raise OAuthExchangeError(f"Unexpected code exchange response: {e}") from e

    session = response.session
    if session is None:
        raise OAuthExchangeError("Code exchange returned no session")

    return SessionTokens(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        token_type=session.token_type,
    )


def revoke_session(access_token: str, http_client: Optional[httpx.Client] = None) -> bool:
    """
    Sign the session out at Supabase.

    Returns:
        True if Supabase accepted the logout
    """
    client = create_auth_client(http_client=http_client)

    try:
        client.auth.admin.sign_out(access_token)
    except AuthError as e:
        logger.warning(f"Supabase logout rejected: {e.message}")
        return False
    except httpx.HTTPError as e:
        logger.warning(f"Supabase logout failed: {e}")
        return False
    return True
