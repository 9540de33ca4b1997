# =============================================================================
# tests/test_auth.py - Authentication Tests
# =============================================================================
# Tests for:
# - Supabase JWT verification (HS256 test tokens)
# - Bearer header and session cookie extraction
# - Google sign-in redirect, OAuth callback and sign-out
# =============================================================================

import base64
import hashlib
import json
import time
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse
from uuid import UUID, uuid4

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from jose import jwt

from app.auth import verify_access_token
from app.config import settings
from app.auth.dependencies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.auth.models import SessionTokens
from app.auth.oauth import (
    OAuthExchangeError,
    VerifierStorage,
    exchange_code_for_session,
    revoke_session,
    start_sign_in,
)
from app.auth.routes import CODE_VERIFIER_COOKIE


# =============================================================================
# Token Verification
# =============================================================================

class TestVerifyAccessToken:
    """Tests for verify_access_token."""

    def test_valid_token(self, token_factory):
        user_id = str(uuid4())
        token = token_factory(sub=user_id, email="a@b.com")

        user = verify_access_token(token)

        assert user.id == UUID(user_id)
        assert user.email == "a@b.com"
        assert user.access_token == token

    def test_expired_token(self, token_factory):
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token_factory(expires_in=-60))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_audience(self, token_factory):
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token_factory(audience="anon"))

        assert exc_info.value.status_code == 401

    def test_missing_sub(self, token_factory):
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token_factory(sub=""))

        assert "missing user ID" in exc_info.value.detail

    def test_malformed_sub(self, token_factory):
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token_factory(sub="not-a-uuid"))

        assert "malformed user ID" in exc_info.value.detail

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            verify_access_token("not.a.jwt")

        assert exc_info.value.status_code == 401

    def test_token_not_in_repr(self, token_factory):
        user = verify_access_token(token_factory())
        assert user.access_token not in repr(user)

    def test_hs256_rejected_without_secret(self, monkeypatch):
        """Test a token signed with an empty key is refused when no secret is configured."""
        monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")
        claims = {
            "sub": str(uuid4()),
            "aud": "authenticated",
            "exp": int(time.time()) + 3600,
        }
        token = jwt.encode(claims, "", algorithm="HS256")

        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token)

        assert exc_info.value.status_code == 401

    def test_unknown_kid_rejected(self, token_factory):
        """Test an asymmetric token whose key is not in the JWKS is refused."""
        token = _with_header(token_factory(), {"alg": "RS256", "kid": "missing", "typ": "JWT"})

        with patch("app.auth.dependencies._fetch_jwks", return_value={"keys": []}):
            with pytest.raises(HTTPException) as exc_info:
                verify_access_token(token)

        assert exc_info.value.status_code == 401
        assert "unknown signing key" in exc_info.value.detail

    def test_unsigned_token_rejected(self, token_factory):
        token = _with_header(token_factory(), {"alg": "none", "typ": "JWT"})

        with pytest.raises(HTTPException) as exc_info:
            verify_access_token(token)

        assert exc_info.value.status_code == 401


def _with_header(token: str, header: dict) -> str:
    """Swap a token's header segment, keeping its payload and signature."""
    segment = base64.urlsafe_b64encode(json.dumps(header).encode()).rstrip(b"=").decode()
    return ".".join([segment, *token.split(".")[1:]])


# =============================================================================
# Endpoints
# =============================================================================

@pytest.fixture
def client(fastapi_app):
    return TestClient(fastapi_app)


class TestMe:
    """Tests for GET /api/v1/auth/me."""

    def test_bearer_header(self, client, token_factory):
        user_id = str(uuid4())
        token = token_factory(sub=user_id, email="me@example.com")

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"id": user_id, "email": "me@example.com"}

    def test_session_cookie(self, client, token_factory):
        client.cookies.set(ACCESS_TOKEN_COOKIE, token_factory(email="cookie@example.com"))

        response = client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == "cookie@example.com"

    def test_not_authenticated(self, client):
        response = client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"


class TestLogin:
    """Tests for GET /api/v1/auth/login."""

    def test_redirects_to_supabase(self, client):
        response = client.get("/api/v1/auth/login", follow_redirects=False)

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        assert location.netloc == "test-project.supabase.co"
        assert location.path == "/auth/v1/authorize"

        query = parse_qs(location.query)
        assert query["provider"] == ["google"]
        assert query["redirect_to"] == ["http://testserver/api/v1/auth/callback"]
        assert query["code_challenge_method"] == ["s256"]

    def test_sets_verifier_cookie_matching_challenge(self, client):
        response = client.get("/api/v1/auth/login", follow_redirects=False)

        verifier = response.cookies[CODE_VERIFIER_COOKIE]
        challenge = parse_qs(urlparse(response.headers["location"]).query)["code_challenge"][0]
        expected = base64.urlsafe_b64encode(
            hashlib.sha256(verifier.encode()).digest()
        ).rstrip(b"=").decode()
        assert challenge == expected


class TestCallback:
    """Tests for GET /api/v1/auth/callback."""

    def test_missing_code(self, client):
        response = client.get("/api/v1/auth/callback", follow_redirects=False)
        assert response.status_code == 400

    def test_provider_error(self, client):
        response = client.get(
            "/api/v1/auth/callback",
            params={"error_description": "access_denied"},
            follow_redirects=False,
        )
        assert response.status_code == 400
        assert "access_denied" in response.json()["detail"]

    def test_missing_verifier_cookie(self, client):
        response = client.get(
            "/api/v1/auth/callback", params={"code": "abc"}, follow_redirects=False
        )

        assert response.status_code == 400
        assert "expired" in response.json()["detail"]

    def test_successful_exchange(self, client, token_factory):
        token = token_factory()
        tokens = SessionTokens(access_token=token, refresh_token="refresh-1", expires_in=3600)
        client.cookies.set(CODE_VERIFIER_COOKIE, "verifier-1")

        with patch(
            "app.auth.routes.exchange_code_for_session", return_value=tokens
        ) as exchange:
            response = client.get(
                "/api/v1/auth/callback", params={"code": "abc"}, follow_redirects=False
            )

        exchange.assert_called_once_with("abc", "verifier-1")
        assert response.status_code == 307
        assert response.headers["location"] == "/protected"
        assert response.cookies[ACCESS_TOKEN_COOKIE] == token
        assert response.cookies[REFRESH_TOKEN_COOKIE] == "refresh-1"

    def test_rejected_exchange(self, client):
        client.cookies.set(CODE_VERIFIER_COOKIE, "verifier-1")

        with patch(
            "app.auth.routes.exchange_code_for_session",
            side_effect=OAuthExchangeError("Code exchange failed: invalid grant"),
        ):
            response = client.get(
                "/api/v1/auth/callback", params={"code": "bad"}, follow_redirects=False
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "Code exchange failed: invalid grant"


class TestSignout:
    """Tests for POST /api/v1/auth/signout."""

    def test_signed_in(self, client, token_factory):
        token = token_factory()

        with patch("app.auth.routes.revoke_session", return_value=True) as revoke:
            response = client.post(
                "/api/v1/auth/signout", headers={"Authorization": f"Bearer {token}"}
            )

        revoke.assert_called_once_with(token)
        assert response.status_code == 200
        assert response.json() == {"signed_out": True, "revoked": True}
        set_cookie = " ".join(response.headers.get_list("set-cookie"))
        assert ACCESS_TOKEN_COOKIE in set_cookie
        assert REFRESH_TOKEN_COOKIE in set_cookie

    def test_anonymous(self, client):
        with patch("app.auth.routes.revoke_session") as revoke:
            response = client.post("/api/v1/auth/signout")

        revoke.assert_not_called()
        assert response.json() == {"signed_out": True, "revoked": False}


# =============================================================================
# supabase-py OAuth Helpers
# =============================================================================

def _gotrue(handler) -> httpx.Client:
    """Sync httpx client that answers Supabase Auth calls with `handler`."""
    return httpx.Client(transport=httpx.MockTransport(handler))


SESSION_BODY = {
    "access_token": "at",
    "refresh_token": "rt",
    "expires_in": 3600,
    "token_type": "bearer",
    "user": {
        "id": "8d0fd2b3-9ca7-4d9e-a95f-9e13dded323e",
        "aud": "authenticated",
        "app_metadata": {"provider": "google"},
        "user_metadata": {},
        "email": "a@b.com",
        "created_at": "2025-01-01T00:00:00Z",
    },
}


class TestOAuthHelpers:
    """Tests for sign-in, code exchange and logout through supabase-py."""

    def test_start_sign_in(self):
        url, verifier = start_sign_in("http://x/cb")

        location = urlparse(url)
        query = parse_qs(location.query)
        assert location.path == "/auth/v1/authorize"
        assert query["provider"] == ["google"]
        assert query["redirect_to"] == ["http://x/cb"]
        assert query["code_challenge_method"] == ["s256"]
        assert len(verifier) >= 43
        assert start_sign_in("http://x/cb")[1] != verifier

    def test_verifier_storage(self):
        storage = VerifierStorage("v-1")
        assert storage.code_verifier == "v-1"

        storage.remove_item(next(iter(storage.items)))
        assert storage.code_verifier is None

    def test_exchange_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=SESSION_BODY)

        tokens = exchange_code_for_session("code-1", "verifier-1", _gotrue(handler))

        assert tokens.access_token == "at"
        assert tokens.refresh_token == "rt"
        assert tokens.expires_in == 3600
        assert seen[0].url.path == "/auth/v1/token"
        assert seen[0].url.params["grant_type"] == "pkce"
        assert seen[0].headers["apikey"] == "test-anon-key"
        assert json.loads(seen[0].content) == {
            "auth_code": "code-1",
            "code_verifier": "verifier-1",
        }

    def test_exchange_rejected(self):
        http_client = _gotrue(
            lambda request: httpx.Response(400, json={"error_description": "invalid grant"})
        )

        with pytest.raises(OAuthExchangeError, match="invalid grant"):
            exchange_code_for_session("code-1", "verifier-1", http_client)

    def test_exchange_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("down")

        with pytest.raises(OAuthExchangeError, match="Could not reach"):
            exchange_code_for_session("code-1", "verifier-1", _gotrue(handler))

    def test_revoke(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        assert revoke_session("user-token", _gotrue(handler)) is True
        assert seen[0].url.path == "/auth/v1/logout"
        assert seen[0].headers["Authorization"] == "Bearer user-token"

    def test_revoke_rejected(self):
        http_client = _gotrue(lambda request: httpx.Response(401, json={"msg": "bad jwt"}))

        assert revoke_session("user-token", http_client) is False
