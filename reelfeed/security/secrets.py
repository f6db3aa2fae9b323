"""Read signing secrets from the environment, refusing sample values."""
from __future__ import annotations

import os
from typing import Final

__all__ = ["MissingSecretError", "require_secret", "is_placeholder"]

MIN_SECRET_LENGTH: Final[int] = 8


class MissingSecretError(RuntimeError):
    """Raised when a signing secret is absent, a placeholder, or too short."""


_SAMPLE_SECRETS: Final[frozenset[str]] = frozenset(
    {"changeme", "change-me", "placeholder", "secret", "your-secret-here"}
)


def is_placeholder(value: str | None) -> bool:
    normalized = (value or "").strip().lower()
    return not normalized or normalized in _SAMPLE_SECRETS


def require_secret(name: str) -> str:
    """Return the trimmed value of ``name`` or raise :class:`MissingSecretError`."""

    value = os.getenv(name)
    if is_placeholder(value):
        raise MissingSecretError(f"{name} must be set to a real secret")
    value = value.strip()
    if len(value) < MIN_SECRET_LENGTH:
        raise MissingSecretError(f"{name} must be at least {MIN_SECRET_LENGTH} characters long")
    return value
