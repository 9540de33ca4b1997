# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase JWT.

    Keeps the verified access token so downstream calls (captioning API,
    PostgREST) can act on the user's behalf.
    """
    id: UUID
    email: Optional[str] = None
    access_token: str = Field(..., repr=False)

    class Config:
        frozen = True  # Make immutable


class UserResponse(BaseModel):
    """Public view of the signed-in user."""
    id: UUID
    email: Optional[str] = None


class SessionTokens(BaseModel):
    """Tokens returned by Supabase after the OAuth code exchange."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
