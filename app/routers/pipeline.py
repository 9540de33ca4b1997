# =============================================================================
# app/routers/pipeline.py - Upload-and-Caption Endpoints
# =============================================================================
# Runs the caption pipeline for the signed-in user and exposes its state.
# Each user has one pipeline; a second submission while the first is in
# flight is rejected with 409.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from app.auth import get_current_user, AuthUser
from app.config import settings
from app.dependencies import PipelineRegistryDep
from app.exceptions import FileTooLargeError, InvalidFileTypeError, PipelineBusyError
from core.models.pipeline import PipelineErrorKind, PipelineRunResponse, UploadCandidate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/captions", response_model=PipelineRunResponse)
async def generate_captions(
    file: Annotated[UploadFile, File(description="Image to caption")],
    registry: PipelineRegistryDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Upload an image and generate captions for it.

    Runs presign -> upload -> register -> generate captions against the
    captioning API using the caller's own access token.

    A failure in any step is not an HTTP error: the response has
    status "failed", an error message for display, and whatever progress
    was made (e.g. image_id).

    Raises:
        400: Missing or unsupported image type
        409: Another run for this user is still in progress
        413: Image too large
    """
    user_key = str(user.id)
    pipeline = registry.get(user_key)

    if pipeline.busy:
        raise PipelineBusyError(user_key)

    if not pipeline.is_supported(file.content_type):
        raise InvalidFileTypeError(file.content_type, sorted(pipeline.supported_types))

    data = await file.read()
    if len(data) > settings.max_upload_size_bytes:
        raise FileTooLargeError(len(data) / (1024 * 1024), settings.MAX_UPLOAD_SIZE_MB)

    candidate = UploadCandidate(
        filename=file.filename or "image",
        content_type=file.content_type,
        data=data,
    )

    async def token_provider() -> str | None:
        return user.access_token

    result = await pipeline.run(candidate, token_provider)

    if result.error and result.error.kind == PipelineErrorKind.BUSY:
        raise PipelineBusyError(user_key)

    return PipelineRunResponse.from_state(pipeline.state)


@router.get("/state", response_model=PipelineRunResponse)
async def get_pipeline_state(
    registry: PipelineRegistryDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Get the user's current or most recent run.

    Returns status "idle" if the user has not run the pipeline yet.
    """
    return PipelineRunResponse.from_state(registry.state_for(str(user.id)))


@router.get("/supported-types")
async def get_supported_types():
    """List the image MIME types accepted for captioning."""
    return {
        "supported_types": sorted(settings.supported_image_types),
        "max_upload_size_mb": settings.MAX_UPLOAD_SIZE_MB,
    }
