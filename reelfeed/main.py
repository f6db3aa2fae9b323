"""Application entry point for the reelfeed backend."""
from __future__ import annotations

import logging
import os
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import auth_router, chat_router, feed_router, realtime_router
from .services import StoreError, build_document_store, seed_initial_videos

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

logging.getLogger("reelfeed").setLevel(settings.log_level.upper())

app = FastAPI(title=APP_NAME, version=API_VERSION)

cors_origins = settings.cors_origins or os.getenv("CORS_ORIGINS")
if cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(feed_router)
app.include_router(chat_router)
app.include_router(realtime_router)

app.state.document_store = None
app.state.pending_likes = set()


@app.on_event("startup")
async def _startup() -> None:
    """Create the document store and write the starter reel when it is empty."""

    store = build_document_store(settings)
    app.state.document_store = store
    if store is None:
        logger.warning("Running in read-only demo mode; likes, comments and chat are disabled")
        return

    if not settings.seed_initial_videos:
        return
    try:
        written = await seed_initial_videos(store, settings.app_id)
    except StoreError:
        logger.exception("Seeding starter videos failed")
        return
    if written:
        logger.info("Seeded %d starter videos", written)


@app.on_event("shutdown")
async def _shutdown() -> None:
    app.state.document_store = None


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Report which document store backend is serving requests."""

    store = app.state.document_store
    return {"status": "ok", "store": type(store).__name__ if store is not None else "unavailable"}
