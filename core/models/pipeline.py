# =============================================================================
# core/models/pipeline.py - Caption Pipeline Schemas
# =============================================================================
# These models describe one upload-and-caption run:
# - UploadCandidate: the in-memory image submitted by the user
# - PresignResponse: write/read URLs returned by step 1
# - RunStatus / RunState: the observable state machine of a run
# - PipelineError / PipelineResult: the outcome of a run
#
# Flow: idle -> awaiting_presign -> uploading -> registering_image
#       -> generating_captions -> succeeded | failed
# =============================================================================

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .caption import CaptionRecord, CaptionView, pick_caption_text


class RunStatus(str, Enum):
    """Where a pipeline run currently is. Transitions are linear."""
    IDLE = "idle"
    AWAITING_PRESIGN = "awaiting_presign"
    UPLOADING = "uploading"
    REGISTERING_IMAGE = "registering_image"
    GENERATING_CAPTIONS = "generating_captions"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED)


class PipelineErrorKind(str, Enum):
    """Why a run failed (or was rejected)."""
    UNSUPPORTED_TYPE = "unsupported_type"
    NO_SESSION = "no_session"
    PRESIGN_FAILED = "presign_failed"
    UPLOAD_FAILED = "upload_failed"
    REGISTRATION_FAILED = "registration_failed"
    CAPTION_FAILED = "caption_failed"
    TRANSPORT_ERROR = "transport_error"
    BUSY = "busy"


@dataclass
class UploadCandidate:
    """An image held in memory plus the MIME type the client declared for it."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class PresignResponse(BaseModel):
    """Step 1 result: where to PUT the bytes, and where they will be readable."""

    presigned_url: str = Field(..., min_length=1, description="Write URL")
    cdn_url: str = Field(..., min_length=1, description="Public read URL")

    @classmethod
    def from_body(cls, body: Any) -> "PresignResponse | None":
        """Build from a parsed step 1 body; None unless both URLs are non-empty strings."""
        if not isinstance(body, dict):
            return None

        presigned_url = body.get("presignedUrl")
        cdn_url = body.get("cdnUrl")
        if not (isinstance(presigned_url, str) and presigned_url):
            return None
        if not (isinstance(cdn_url, str) and cdn_url):
            return None

        return cls(presigned_url=presigned_url, cdn_url=cdn_url)


class PipelineError(BaseModel):
    """A terminal run failure, reduced to one displayable message."""

    kind: PipelineErrorKind
    message: str
    status_code: int | None = Field(
        default=None,
        description="HTTP status of the failing step, if a response arrived"
    )


class RunState(BaseModel):
    """
    Observable state of the current (or last) run.

    image_id survives a later failure so the caller can still show it.
    """

    status: RunStatus = RunStatus.IDLE
    filename: str | None = None
    image_id: str | None = None
    captions: list[CaptionRecord] = Field(default_factory=list)
    error: PipelineError | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def caption_texts(self) -> list[str]:
        return [pick_caption_text(record) for record in self.captions]


class PipelineResult(BaseModel):
    """Either the caption list (success) or the error (failure)."""

    captions: list[CaptionRecord] = Field(default_factory=list)
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PipelineRunResponse(BaseModel):
    """
    API view of a run.

    Example:
        {
            "status": "failed",
            "image_id": "img_123",
            "captions": [],
            "error": "Caption generation failed: HTTP 500",
            "error_code": "caption_failed"
        }
    """

    status: RunStatus
    image_id: str | None = None
    captions: list[CaptionView] = Field(default_factory=list)
    error: str | None = None
    error_code: PipelineErrorKind | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def from_state(cls, state: RunState) -> "PipelineRunResponse":
        return cls(
            status=state.status,
            image_id=state.image_id,
            captions=[CaptionView.from_record(record) for record in state.captions],
            error=state.error.message if state.error else None,
            error_code=state.error.kind if state.error else None,
            started_at=state.started_at,
            finished_at=state.finished_at,
        )
