"""Aggregate router exports."""
from .auth import router as auth_router
from .chat import router as chat_router
from .feed import router as feed_router
from .realtime import router as realtime_router

__all__ = [
    "auth_router",
    "chat_router",
    "feed_router",
    "realtime_router",
]
