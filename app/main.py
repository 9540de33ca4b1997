# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Caption Studio API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import close_pipeline_registry
from app.exceptions import (
    CaptionStudioException,
    caption_studio_exception_handler,
)
from app.routers import health, pipeline, protected
from app.auth import routes as auth_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: log configuration
    - Shutdown: close the captioning API HTTP client
    """
    logger.info(f"Starting Caption Studio API in {settings.ENVIRONMENT} mode")
    logger.info(f"Caption API: {settings.CAPTION_API_BASE_URL}")

    yield

    logger.info("Shutting down Caption Studio API")
    await close_pipeline_registry()


# Create FastAPI application
app = FastAPI(
    title="Caption Studio API",
    description="""
## Image Captioning Behind Google Sign-In

### How It Works

1. **Sign in** - `GET /api/v1/auth/login` starts Google OAuth via Supabase
2. **Upload an image** - `POST /api/v1/pipeline/captions` (multipart `file`)
3. **Read captions** - the response lists generated captions, or the step
   that failed and why
4. **Vote** - `POST /protected/votes` on stored captions

Supported types: jpeg, jpg, png, webp, gif, heic.
""",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Google sign-in, session cookies and sign-out",
        },
        {
            "name": "Pipeline",
            "description": "Upload an image and generate captions",
        },
        {
            "name": "Protected",
            "description": "Signed-in page: stored captions and votes",
        },
        {
            "name": "Health",
            "description": "API health checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(CaptionStudioException)
async def handle_caption_studio_exception(request: Request, exc: CaptionStudioException):
    """Handle custom Caption Studio exceptions."""
    return await caption_studio_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

app.include_router(
    pipeline.router,
    prefix="/api/v1/pipeline",
    tags=["Pipeline"]
)

app.include_router(
    protected.router,
    prefix="/protected",
    tags=["Protected"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Caption Studio API",
        "version": health.API_VERSION,
        "docs": "/docs",
        "login": "/api/v1/auth/login",
        "health": "/api/v1/health",
    }
