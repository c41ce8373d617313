"""
ReportDesk Occurrence Service
Main FastAPI application for citizen incident reporting
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database.core import init_models
from .health import readiness
from .routers import occurrences
from .utils.errors import (
    ReportDeskError,
    domain_error_handler,
    error_handler,
    request_validation_handler,
)

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables before serving requests"""
    logger.info(f"Starting ReportDesk with {settings.attachment_backend} attachment storage")
    await init_models()
    yield
    logger.info("ReportDesk shutting down")


app = FastAPI(
    title="ReportDesk Occurrence Service",
    description="""
    ## ReportDesk Occurrence Service API

    Citizens report problems in public infrastructure (occurrences), attach
    photos, follow them through their lifecycle and rate the handling once
    staff have resolved them.

    ### Key Features:
    - **Occurrence submission**: location, category, optional asset id and up to 4 JPEG/PNG photos
    - **Lifecycle tracking**: open, in progress, resolved, closed
    - **Evaluation**: one 1-5 rating per resolved occurrence, by its owner
    - **JWT Authentication**: bearer tokens issued by the identity provider
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {
            "name": "occurrences",
            "description": "Submission, listing and evaluation of occurrences",
        },
        {
            "name": "health",
            "description": "System health checks and monitoring endpoints",
        }
    ]
)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with API information"""
    return {
        "service": "ReportDesk Occurrence Service",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "occurrences": "/v1/occurrences",
            "docs": "/docs",
            "openapi": "/openapi.json"
        }
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for the main application"""
    return {
        "status": "ok",
        "service": "reportdesk-backend",
        "attachment_backend": settings.attachment_backend,
    }


# Add exception handlers
app.add_exception_handler(StarletteHTTPException, error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(ReportDeskError, domain_error_handler)

# Include API routers
app.include_router(occurrences.router)  # Occurrences router has its own prefix (/v1/occurrences)
app.include_router(readiness.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5000)
