# =============================================================================
# core/services/caption_service.py - Stored Caption Business Logic
# =============================================================================
# Reads caption rows and records votes on them for the protected page.
# All queries run as the signed-in user, so RLS decides what is visible.
# =============================================================================

import logging

from app.exceptions import DatabaseError
from core.models.caption import CaptionView, VoteRequest, VoteResponse
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)


class CaptionService:
    """
    Service for caption rows stored in Supabase.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def list_captions(access_token: str, limit: int = 20) -> list[CaptionView]:
        """
        List the most recent captions with their display text.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = SupabaseClient.fetch_captions(access_token, limit=limit)
        except SupabaseClientError as e:
            logger.error(f"Failed to list captions: {e}")
            raise DatabaseError("read", e.message)

        return [CaptionView.from_record(row) for row in rows]

    @staticmethod
    def cast_vote(
        access_token: str,
        profile_id: str,
        request: VoteRequest,
    ) -> VoteResponse:
        """
        Record one vote by the user on a caption.

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            row = SupabaseClient.insert_caption_vote(
                access_token,
                caption_id=request.caption_id,
                profile_id=profile_id,
                vote_value=request.vote_value,
            )
        except SupabaseClientError as e:
            logger.error(f"Failed to record vote on {request.caption_id}: {e}")
            raise DatabaseError("write", e.message)

        logger.info(f"Recorded vote {request.vote_value:+d} on caption {request.caption_id}")
        return VoteResponse(
            caption_id=str(row.get("caption_id", request.caption_id)),
            vote_value=int(row.get("vote_value", request.vote_value)),
            profile_id=str(row.get("profile_id", profile_id)),
            id=str(row["id"]) if row.get("id") is not None else None,
            created_at=row.get("created_at"),
        )
