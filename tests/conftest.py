# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - A fake captioning API served through httpx.MockTransport
# - Helpers for signed test JWTs and FastAPI test clients
# =============================================================================

import os
import time
from typing import Any
from uuid import uuid4

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-for-hs256-signing")
os.environ.setdefault("CAPTION_API_BASE_URL", "https://api.test")
os.environ.setdefault("SITE_URL", "http://testserver")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import httpx
import pytest
from jose import jwt

from core.models.pipeline import UploadCandidate
from core.services.caption_pipeline import (
    CAPTIONS_PATH,
    PRESIGN_PATH,
    REGISTER_PATH,
    CaptionPipeline,
)

API_BASE_URL = "https://api.test"
PRESIGNED_URL = "https://storage.test/uploads/abc123?signature=xyz"
CDN_URL = "https://cdn.test/images/abc123.png"
IMAGE_ID = "img_abc123"
TEST_TOKEN = "test-access-token"

UPLOAD = "upload"


# =============================================================================
# Fake Captioning API
# =============================================================================

class FakeCaptionApi:
    """
    Scripted stand-in for the captioning API and the storage bucket.

    Each route maps to (status_code, httpx.Response kwargs) or to an
    exception to raise. Every request is recorded in `requests`.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Any] = {
            PRESIGN_PATH: (200, {"json": {"presignedUrl": PRESIGNED_URL, "cdnUrl": CDN_URL}}),
            UPLOAD: (200, {}),
            REGISTER_PATH: (200, {"json": {"imageId": IMAGE_ID}}),
            CAPTIONS_PATH: (200, {"json": {"captions": [{"caption": "a dog"}]}}),
        }

    def set(self, route: str, status_code: int, **kwargs: Any) -> None:
        self.routes[route] = (status_code, kwargs)

    def fail(self, route: str, exc: Exception) -> None:
        self.routes[route] = exc

    def route_for(self, request: httpx.Request) -> str:
        return UPLOAD if request.method == "PUT" else request.url.path

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[self.route_for(request)]
        if isinstance(route, Exception):
            raise route
        status_code, kwargs = route
        return httpx.Response(status_code, **kwargs)

    @property
    def paths(self) -> list[str]:
        return [self.route_for(r) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api():
    """Captioning API that succeeds at every step by default."""
    return FakeCaptionApi()


@pytest.fixture
def pipeline(fake_api):
    """CaptionPipeline wired to the fake API."""
    return CaptionPipeline(API_BASE_URL, fake_api.client())


@pytest.fixture
def png_candidate():
    return UploadCandidate(filename="dog.png", content_type="image/png", data=b"\x89PNG fake")


@pytest.fixture
def token_provider():
    """Token provider that counts how often it is asked."""

    class _Provider:
        calls = 0

        async def __call__(self):
            self.calls += 1
            return TEST_TOKEN

    return _Provider()


# =============================================================================
# Auth Helpers
# =============================================================================

def make_token(
    sub: str | None = None,
    email: str | None = "user@example.com",
    expires_in: int = 3600,
    audience: str = "authenticated",
) -> str:
    """Sign an HS256 Supabase-style access token with the test secret."""
    claims = {
        "sub": sub if sub is not None else str(uuid4()),
        "aud": audience,
        "exp": int(time.time()) + expires_in,
        "iat": int(time.time()),
        "role": "authenticated",
    }
    if email is not None:
        claims["email"] = email
    return jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def fastapi_app():
    """The FastAPI app, with dependency overrides cleared after each test."""
    from app.main import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def token_factory():
    return make_token
