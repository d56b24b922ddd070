"""FastAPI application for the document classification service."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.config import get_settings
from app.db.supabase_client import get_supabase_client
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from app.routers import classification, keyword_matrix
from app.services.gemini_client import get_gemini_client
from app.services.keyword_matrix import DEFAULT_MATRIX

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # Set by the build process

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate configuration at startup."""
    try:
        settings = get_settings()
    except Exception as e:
        logger.error("Startup validation failed: %s", e)
        raise

    logger.info("Starting Document Classification API v%s", VERSION)
    logger.info("Model: %s", settings.model_name)
    logger.info("Classification strategy: %s", settings.classification_strategy)
    logger.info("Default matrix: %s", ", ".join(p.name for p in DEFAULT_MATRIX))

    yield

    logger.info("Shutting down Document Classification API")


app = FastAPI(
    title="Document Classification API",
    description="Weighted keyword-matrix classification of OCR'd documents "
                "(Resume, ITR, Bank Statement, Invoice, Marksheet)",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Rate limiter on app state (required by slowapi)
app.state.limiter = get_limiter()
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Logging first, so it wraps all other middleware
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict to specific domains in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint that verifies the external services are reachable.

    Status Codes:
        200: All services healthy
        503: One or more services unavailable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    services: Dict[str, str] = {"keyword_matrix": f"healthy ({len(DEFAULT_MATRIX)} default types)"}
    overall_healthy = True

    try:
        client = get_gemini_client()
        if client:
            services["gemini_api"] = "healthy"
        else:
            services["gemini_api"] = "unhealthy: client is None"
            overall_healthy = False
    except Exception as e:
        services["gemini_api"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    try:
        supabase_client = get_supabase_client()
        response = supabase_client.table("documents").select("id").limit(1).execute()
        if response is not None:
            services["supabase"] = "healthy"
        else:
            services["supabase"] = "unhealthy: no response"
            overall_healthy = False
    except Exception as e:
        services["supabase"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "services": services,
    }

    if not overall_healthy:
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json",
        )

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Get version information for the API."""
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(classification.router)
app.include_router(keyword_matrix.router)
