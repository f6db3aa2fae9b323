"""Convenience exports for ORM models."""
from .base import TimestampMixin
from .document import StoredDocument

__all__ = [
    "StoredDocument",
    "TimestampMixin",
]
