# =============================================================================
# core/services/caption_pipeline.py - Upload-and-Caption Orchestrator
# =============================================================================
# Drives the four calls against the captioning API for one image:
#   1. POST /pipeline/generate-presigned-url  -> {presignedUrl, cdnUrl}
#   2. PUT  <presignedUrl>                     (raw bytes, no auth)
#   3. POST /pipeline/upload-image-from-url   -> {imageId}
#   4. POST /pipeline/generate-captions       -> [...] or {"captions": [...]}
#
# Steps run strictly in order. The first failure ends the run; nothing is
# retried. Each step hands back (value, error) instead of raising so the run
# state is always consistent at every boundary.
#
# Usage:
#   pipeline = CaptionPipeline(base_url, http_client)
#   result = await pipeline.run(candidate, token_provider)
#   if not result.ok:
#       print(result.error.message)
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

import httpx

from core.models.caption import CaptionRecord, normalize_captions
from core.models.pipeline import (
    PipelineError,
    PipelineErrorKind,
    PipelineResult,
    PresignResponse,
    RunState,
    RunStatus,
    UploadCandidate,
)
from lib.utils import bearer_headers, describe_body, parse_response_body

logger = logging.getLogger(__name__)

# Returns the caller's current access token, or None when signed out
TokenProvider = Callable[[], Awaitable[str | None]]

StateListener = Callable[[RunState], None]

DEFAULT_SUPPORTED_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
})

PRESIGN_PATH = "/pipeline/generate-presigned-url"
REGISTER_PATH = "/pipeline/upload-image-from-url"
CAPTIONS_PATH = "/pipeline/generate-captions"

# Step names used in failure messages
STEP_NAMES = {
    PipelineErrorKind.PRESIGN_FAILED: "Presign request",
    PipelineErrorKind.UPLOAD_FAILED: "Image upload",
    PipelineErrorKind.REGISTRATION_FAILED: "Image registration",
    PipelineErrorKind.CAPTION_FAILED: "Caption generation",
}

NO_SESSION_MESSAGE = "No valid auth token found. Sign in again."
BUSY_MESSAGE = "A caption run is already in progress."


class AuthError(Exception):
    """Raised by a token provider when there is no usable session."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CaptionPipeline:
    """
    Runs the upload-and-caption sequence, one run at a time.

    The current run is observable through `state` (and through listeners
    added with `add_listener`, which receive a snapshot on every change).
    A `run` call made while another is in flight is rejected with a
    `busy` error and does not touch the in-flight state.
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        supported_types: Iterable[str] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.supported_types = frozenset(
            t.lower() for t in (supported_types or DEFAULT_SUPPORTED_TYPES)
        )
        self.state = RunState()
        self._busy = False
        self._listeners: list[StateListener] = []

    @property
    def busy(self) -> bool:
        return self._busy

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def is_supported(self, content_type: str | None) -> bool:
        return bool(content_type) and content_type.lower() in self.supported_types

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def run(
        self,
        candidate: UploadCandidate | None,
        token_provider: TokenProvider,
    ) -> PipelineResult:
        """
        Upload an image and generate captions for it.

        Args:
            candidate: The image to caption
            token_provider: Coroutine returning the caller's access token;
                called once per run, right before the first API call

        Returns:
            PipelineResult with the caption records, or the error that
            ended the run
        """
        if self._busy:
            logger.warning("Rejected caption run: another run is in flight")
            return PipelineResult(
                error=PipelineError(kind=PipelineErrorKind.BUSY, message=BUSY_MESSAGE)
            )

        self._busy = True
        try:
            return await self._run(candidate, token_provider)
        finally:
            self._busy = False

    async def _run(
        self,
        candidate: UploadCandidate | None,
        token_provider: TokenProvider,
    ) -> PipelineResult:
        self.state = RunState(
            filename=candidate.filename if candidate else None,
            started_at=_now(),
        )
        self._notify()

        if candidate is None:
            return self._fail(PipelineError(
                kind=PipelineErrorKind.UNSUPPORTED_TYPE,
                message="Select an image first.",
            ))

        if not self.is_supported(candidate.content_type):
            return self._fail(PipelineError(
                kind=PipelineErrorKind.UNSUPPORTED_TYPE,
                message=f"Unsupported file type: {candidate.content_type or 'unknown'}",
            ))

        logger.info(
            f"Starting caption run for {candidate.filename} "
            f"({candidate.content_type}, {candidate.size} bytes)"
        )

        # Step 1: presign
        self._transition(RunStatus.AWAITING_PRESIGN)
        token, error = await self._fetch_token(token_provider)
        if error:
            return self._fail(error)

        presign, error = await self._request_presign(token, candidate.content_type)
        if error:
            return self._fail(error)

        # Step 2: upload bytes
        self._transition(RunStatus.UPLOADING)
        error = await self._upload(presign.presigned_url, candidate)
        if error:
            return self._fail(error)

        # Step 3: register the uploaded image
        self._transition(RunStatus.REGISTERING_IMAGE)
        image_id, error = await self._register(token, presign.cdn_url)
        if error:
            return self._fail(error)

        self.state.image_id = image_id
        self._notify()
        logger.info(f"Registered image {image_id}")

        # Step 4: generate captions
        self._transition(RunStatus.GENERATING_CAPTIONS)
        captions, error = await self._generate_captions(token, image_id)
        if error:
            return self._fail(error)

        self.state.captions = captions
        self.state.finished_at = _now()
        self._transition(RunStatus.SUCCEEDED)
        logger.info(f"Caption run succeeded with {len(captions)} caption(s)")
        return PipelineResult(captions=captions)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _fetch_token(
        self, token_provider: TokenProvider
    ) -> tuple[str | None, PipelineError | None]:
        try:
            token = await token_provider()
        except AuthError as e:
            logger.warning(f"Token provider failed: {e}")
            token = None

        if not token:
            return None, PipelineError(
                kind=PipelineErrorKind.NO_SESSION,
                message=NO_SESSION_MESSAGE,
            )
        return token, None

    async def _request_presign(
        self, token: str, content_type: str
    ) -> tuple[PresignResponse | None, PipelineError | None]:
        kind = PipelineErrorKind.PRESIGN_FAILED
        response, error = await self._send(
            kind,
            "POST",
            self.base_url + PRESIGN_PATH,
            json={"contentType": content_type},
            headers=bearer_headers(token),
        )
        if error:
            return None, error

        body = parse_response_body(response)
        presign = PresignResponse.from_body(body) if response.is_success else None
        if presign is None:
            return None, self._http_error(kind, response, body)
        return presign, None

    async def _upload(
        self, presigned_url: str, candidate: UploadCandidate
    ) -> PipelineError | None:
        kind = PipelineErrorKind.UPLOAD_FAILED
        response, error = await self._send(
            kind,
            "PUT",
            presigned_url,
            content=candidate.data,
            headers={"Content-Type": candidate.content_type},
        )
        if error:
            return error

        if not response.is_success:
            return self._http_error(kind, response, parse_response_body(response))
        return None

    async def _register(
        self, token: str, image_url: str
    ) -> tuple[str | None, PipelineError | None]:
        kind = PipelineErrorKind.REGISTRATION_FAILED
        response, error = await self._send(
            kind,
            "POST",
            self.base_url + REGISTER_PATH,
            json={"imageUrl": image_url, "isCommonUse": False},
            headers=bearer_headers(token),
        )
        if error:
            return None, error

        body = parse_response_body(response)
        image_id = body.get("imageId") if isinstance(body, dict) else None
        if not response.is_success or not (isinstance(image_id, str) and image_id):
            return None, self._http_error(kind, response, body)
        return image_id, None

    async def _generate_captions(
        self, token: str, image_id: str
    ) -> tuple[list[CaptionRecord], PipelineError | None]:
        kind = PipelineErrorKind.CAPTION_FAILED
        response, error = await self._send(
            kind,
            "POST",
            self.base_url + CAPTIONS_PATH,
            json={"imageId": image_id},
            headers=bearer_headers(token),
        )
        if error:
            return [], error

        body = parse_response_body(response)
        if not response.is_success:
            return [], self._http_error(kind, response, body)
        return normalize_captions(body), None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _send(
        self,
        kind: PipelineErrorKind,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> tuple[httpx.Response | None, PipelineError | None]:
        """Issue one request; a request that never completes becomes a transport error."""
        try:
            response = await self.http_client.request(method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            step = STEP_NAMES[kind]
            logger.warning(f"{step} did not complete: {e!r}")
            return None, PipelineError(
                kind=PipelineErrorKind.TRANSPORT_ERROR,
                message=f"{step} failed: {str(e) or type(e).__name__}",
            )

        logger.debug(f"{method} {response.request.url.path} -> {response.status_code}")
        return response, None

    @staticmethod
    def _http_error(
        kind: PipelineErrorKind, response: httpx.Response, body: Any
    ) -> PipelineError:
        message = f"{STEP_NAMES[kind]} failed: HTTP {response.status_code}"
        if not response.is_success:
            detail = describe_body(body)
            if detail:
                message += f" ({detail})"

        return PipelineError(
            kind=kind,
            message=message,
            status_code=response.status_code,
        )

    def _transition(self, status: RunStatus) -> None:
        logger.debug(f"Caption run: {self.state.status.value} -> {status.value}")
        self.state.status = status
        self._notify()

    def _fail(self, error: PipelineError) -> PipelineResult:
        logger.warning(f"Caption run failed [{error.kind.value}]: {error.message}")
        self.state.error = error
        self.state.finished_at = _now()
        self._transition(RunStatus.FAILED)
        return PipelineResult(error=error)

    def _notify(self) -> None:
        if not self._listeners:
            return

        snapshot = self.state.model_copy(deep=True)
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Run state listener failed: {e}")
