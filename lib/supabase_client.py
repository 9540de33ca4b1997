# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
#
# Every query runs on a fresh client from for_user(token), whose PostgREST
# requests carry the user's access token, so row-level security is
# evaluated as that user.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   rows = SupabaseClient.fetch_captions(access_token, limit=20)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

CAPTIONS_TABLE = "captions"
CAPTION_VOTES_TABLE = "caption_votes"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Carries a code and, where possible, a suggestion on how to fix it.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    All methods are class methods for easy access without instantiation.

    Example:
        rows = SupabaseClient.fetch_captions(token, limit=10)
        SupabaseClient.insert_caption_vote(token, caption_id, profile_id, 1)
    """

    @classmethod
    def for_user(cls, access_token: str) -> Client:
        """
        Create a client that queries PostgREST as the given user.

        A new client is built per call, so one user's token can't leak
        into another request.
        """
        try:
            client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file"
            )

        client.postgrest.auth(access_token)
        return client

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Captions
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_captions(
        cls,
        access_token: str,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """
        Fetch the most recent caption rows visible to the user.

        Args:
            access_token: The user's Supabase access token
            limit: Maximum number of rows to return

        Returns:
            List of caption row dicts, newest first

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.for_user(access_token)

        try:
            response = (
                client.table(CAPTIONS_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )

            rows = response.data or []
            logger.debug(f"Fetched {len(rows)} caption rows")
            return rows

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch captions: {e}",
                code="FETCH_CAPTIONS_FAILED",
                suggestion="Check that the captions table exists and its RLS policy allows reads",
                details={"limit": limit}
            )

    # -------------------------------------------------------------------------
    # Votes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_caption_vote(
        cls,
        access_token: str,
        caption_id: str,
        profile_id: str | UUID,
        vote_value: int,
    ) -> dict[str, Any]:
        """
        Insert one vote row for a caption.

        Args:
            access_token: The voting user's access token
            caption_id: ID of the caption being voted on
            profile_id: The voting user's ID
            vote_value: 1 (up) or -1 (down)

        Returns:
            Inserted vote dict

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.for_user(access_token)

        data = {
            "caption_id": caption_id,
            "profile_id": cls._normalize_uuid(profile_id),
            "vote_value": vote_value,
        }

        try:
            response = (
                client.table(CAPTION_VOTES_TABLE)
                .insert(data)
                .execute()
            )

            if response.data:
                return response.data[0]
            raise SupabaseClientError(
                message="Insert returned no data",
                code="INSERT_NO_DATA"
            )

        except SupabaseClientError:
            raise
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert caption vote: {e}",
                code="INSERT_VOTE_FAILED",
                suggestion="Check that the caption exists and the caption_votes RLS policy allows inserts",
                details={"caption_id": caption_id, "vote_value": vote_value}
            )
