# =============================================================================
# core/models/caption.py - Caption Schemas
# =============================================================================
# A caption record is an open-ended JSON object produced by the captioning
# API (or stored in the captions table). This module knows how to:
# - Normalize the captioning API's response into a list of records
# - Extract a human-readable display string from a record
# - Describe caption rows and votes for the protected page
# =============================================================================

from typing import Any, Literal

from pydantic import BaseModel, Field

from lib.utils import compact_json

# An open-ended mapping representing a single generated caption
CaptionRecord = dict[str, Any]

# Checked in order; the first non-blank string wins
CAPTION_TEXT_FIELDS = ("caption", "text", "content", "body", "caption_text")


def pick_caption_text(record: CaptionRecord) -> str:
    """
    Extract the display text for a caption record.

    Falls back to the compact JSON rendering of the whole record when
    none of the known text fields hold a non-blank string.

    Example:
        pick_caption_text({"caption": "a dog"})  # "a dog"
        pick_caption_text({"unrelated": 1})      # '{"unrelated":1}'
    """
    for key in CAPTION_TEXT_FIELDS:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value

    return compact_json(record)


def normalize_captions(body: Any) -> list[CaptionRecord]:
    """
    Normalize a caption generation response to a list of records.

    Accepts a bare list or an object with a `captions` list. Any other
    shape becomes an empty list. Entries that are not objects are dropped.
    """
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict) and isinstance(body.get("captions"), list):
        items = body["captions"]
    else:
        return []

    return [item for item in items if isinstance(item, dict)]


# =============================================================================
# API Views
# =============================================================================

class CaptionView(BaseModel):
    """A caption record paired with its display text."""

    text: str = Field(..., description="Human-readable caption")
    record: CaptionRecord = Field(
        default_factory=dict,
        description="Raw record as returned by the captioning API or database"
    )

    @classmethod
    def from_record(cls, record: CaptionRecord) -> "CaptionView":
        return cls(text=pick_caption_text(record), record=record)


class VoteRequest(BaseModel):
    """
    Up/down vote on a stored caption.

    Example:
        {"caption_id": "6f1c...", "vote_value": 1}
    """

    caption_id: str = Field(..., min_length=1, description="ID of the caption row")
    vote_value: Literal[-1, 1] = Field(..., description="1 for upvote, -1 for downvote")


class VoteResponse(BaseModel):
    """Inserted vote row."""

    caption_id: str
    vote_value: int
    profile_id: str
    id: str | None = None
    created_at: str | None = None


class ProtectedPageResponse(BaseModel):
    """Data rendered on the protected page."""

    user_id: str
    email: str | None = Field(default=None, description="Signed-in user's email")
    captions: list[CaptionView] = Field(default_factory=list)
