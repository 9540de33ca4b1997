# =============================================================================
# core/services/pipeline_registry.py - Per-User Pipeline Instances
# =============================================================================
# Keeps one CaptionPipeline per user so that:
# - each user has at most one caption run in flight
# - a user's last run state can be read back (GET /pipeline/state)
#
# Pipelines with nothing in flight are dropped once their last run has been
# finished for longer than idle_ttl seconds (or if they never ran at all).
# All pipelines share a single httpx.AsyncClient, closed on shutdown.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Iterable

import httpx

from core.models.pipeline import RunState, RunStatus
from core.services.caption_pipeline import CaptionPipeline

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TTL = 3600  # seconds


class PipelineRegistry:
    """Lazily creates and caches one CaptionPipeline per user ID."""

    def __init__(
        self,
        base_url: str,
        supported_types: Iterable[str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        idle_ttl: float = DEFAULT_IDLE_TTL,
    ):
        self.base_url = base_url
        self.supported_types = frozenset(supported_types) if supported_types else None
        self.http_client = http_client or httpx.AsyncClient()
        self.idle_ttl = idle_ttl
        self._pipelines: dict[str, CaptionPipeline] = {}

    def __len__(self) -> int:
        return len(self._pipelines)

    def get(self, user_id: str) -> CaptionPipeline:
        """Get the user's pipeline, creating it on first use."""
        self.prune()

        pipeline = self._pipelines.get(user_id)
        if pipeline is None:
            pipeline = CaptionPipeline(
                self.base_url,
                self.http_client,
                supported_types=self.supported_types,
            )
            self._pipelines[user_id] = pipeline
            logger.debug(f"Created caption pipeline for user {user_id}")
        return pipeline

    def state_for(self, user_id: str) -> RunState:
        """The user's current/last run state; idle if they never ran one."""
        pipeline = self._pipelines.get(user_id)
        return pipeline.state if pipeline else RunState()

    def prune(self, now: datetime | None = None) -> int:
        """
        Drop pipelines that are not running and have gone stale.

        Returns:
            Number of pipelines dropped
        """
        now = now or datetime.now(timezone.utc)
        stale = [
            user_id
            for user_id, pipeline in self._pipelines.items()
            if self._is_stale(pipeline, now)
        ]
        for user_id in stale:
            del self._pipelines[user_id]

        if stale:
            logger.debug(f"Dropped {len(stale)} idle caption pipelines")
        return len(stale)

    def _is_stale(self, pipeline: CaptionPipeline, now: datetime) -> bool:
        if pipeline.busy:
            return False

        finished_at = pipeline.state.finished_at
        if finished_at is None:
            return pipeline.state.status == RunStatus.IDLE
        return (now - finished_at).total_seconds() > self.idle_ttl

    async def aclose(self) -> None:
        await self.http_client.aclose()
        logger.info("Closed caption pipeline HTTP client")
