# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .caption_pipeline import AuthError, CaptionPipeline, TokenProvider
from .caption_service import CaptionService
from .pipeline_registry import PipelineRegistry

__all__ = [
    "AuthError",
    "CaptionPipeline",
    "CaptionService",
    "PipelineRegistry",
    "TokenProvider",
]
