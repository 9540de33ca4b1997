# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains schemas shared by the API and services:
# - caption.py: Caption records, display-text extraction, votes
# - pipeline.py: Upload-and-caption run state, results and errors
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Caption Models
# -----------------------------------------------------------------------------
from .caption import (
    CAPTION_TEXT_FIELDS,
    CaptionRecord,
    CaptionView,
    ProtectedPageResponse,
    VoteRequest,
    VoteResponse,
    normalize_captions,
    pick_caption_text,
)

# -----------------------------------------------------------------------------
# Pipeline Models
# -----------------------------------------------------------------------------
from .pipeline import (
    PipelineError,
    PipelineErrorKind,
    PipelineResult,
    PipelineRunResponse,
    PresignResponse,
    RunState,
    RunStatus,
    UploadCandidate,
)

__all__ = [
    # Caption
    "CAPTION_TEXT_FIELDS",
    "CaptionRecord",
    "CaptionView",
    "ProtectedPageResponse",
    "VoteRequest",
    "VoteResponse",
    "normalize_captions",
    "pick_caption_text",
    # Pipeline
    "PipelineError",
    "PipelineErrorKind",
    "PipelineResult",
    "PipelineRunResponse",
    "PresignResponse",
    "RunState",
    "RunStatus",
    "UploadCandidate",
]
