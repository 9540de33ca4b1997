# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Caption Studio API:
# - test_caption_pipeline.py: The upload-and-caption orchestrator
# - test_captions.py: Caption text extraction and body parsing helpers
# - test_models.py: Pydantic model validation
# - test_pipeline_routes.py: Pipeline API endpoints
# - test_auth.py: JWT verification, sign-in flow, session cookies
# - test_protected.py: Protected page and caption votes
#
# Run tests with: pytest
# =============================================================================
