# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - pipeline.py: Upload-and-caption pipeline endpoints
# - protected.py: Signed-in page with stored captions and voting
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import pipeline
from . import protected

__all__ = [
    "health",
    "pipeline",
    "protected",
]
