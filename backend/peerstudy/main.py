"""
PeerStudy FastAPI Application Entry Point.

Run with: uvicorn peerstudy.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from peerstudy.api.routes import (
    auth,
    groups,
    matching,
    messages,
    notes,
    realtime,
    uploads,
    users,
)
from peerstudy.config import get_settings, sanitize_error
from peerstudy.db.session import dispose_engine
from peerstudy.exceptions import AuthenticationRequired, PeerStudyError
from peerstudy.services.storage import get_storage

settings = get_settings()
logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure one stdout handler for the whole process, at LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    setup_logging()
    get_storage().ensure_directories()
    logger.info("%s starting (%s)", settings.app_name, settings.environment)
    yield
    # Shutdown
    await dispose_engine()
    logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every PeerStudyError as ``{"error": code, "message": text}``."""

    @app.exception_handler(PeerStudyError)
    async def handle_peerstudy_error(request: Request, exc: PeerStudyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.context)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)

        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationRequired) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": exc.message},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": sanitize_error(exc)},
        )


app = FastAPI(
    title=settings.app_name,
    description="Study-group matching, group chat, shared tasks and a personal notes library",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(matching.router, prefix="/api")
app.include_router(groups.router, prefix="/api")
app.include_router(messages.router, prefix="/api")
app.include_router(uploads.router, prefix="/api")
app.include_router(notes.router, prefix="/api")
app.include_router(realtime.router)

# Uploaded files; the directory is created at startup
app.mount(
    settings.upload_url_prefix,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
