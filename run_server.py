"""Serve the reel feed (HTTP routes plus the ``/ws/feed`` socket) with Uvicorn.

``REELFEED_SERVER_HOST`` and ``REELFEED_SERVER_PORT`` pick the bind address.
Auto-reload is off unless ``UVICORN_RELOAD=true``, because each reloaded
process builds its own document store and drops the in-flight like guard.
The store backend itself comes from ``DOCUMENT_STORE`` in the app settings.
"""
from __future__ import annotations

import os

import uvicorn

from reelfeed.config import get_settings


def main() -> None:
    settings = get_settings()
    host = os.getenv("REELFEED_SERVER_HOST", "127.0.0.1")
    port = int(os.getenv("REELFEED_SERVER_PORT", "8000"))
    reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"
    uvicorn.run(
        "reelfeed.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
