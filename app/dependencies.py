# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# =============================================================================

from typing import Annotated

from fastapi import Depends

from app.config import settings
from core.services.pipeline_registry import PipelineRegistry

_registry: PipelineRegistry | None = None


def get_pipeline_registry() -> PipelineRegistry:
    """
    Get the process-wide pipeline registry.

    Created on first use; closed by the app lifespan on shutdown.
    """
    global _registry
    if _registry is None:
        _registry = PipelineRegistry(
            settings.CAPTION_API_BASE_URL,
            supported_types=settings.supported_image_types,
            idle_ttl=settings.PIPELINE_IDLE_TTL_SECONDS,
        )
    return _registry


async def close_pipeline_registry() -> None:
    global _registry
    if _registry is not None:
        await _registry.aclose()
        _registry = None


# Type alias for dependency injection
PipelineRegistryDep = Annotated[PipelineRegistry, Depends(get_pipeline_registry)]
