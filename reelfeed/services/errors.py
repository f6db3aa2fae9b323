"""Errors surfaced by the engagement and chat services."""
from __future__ import annotations


class EngagementError(RuntimeError):
    """Base class for failures of engagement-mutating operations."""

    detail = "The action could not be completed."

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class NotAuthenticated(EngagementError):
    """Raised when a mutating operation is attempted without a signed-in user."""

    detail = "Please sign in to continue."


class EmptyInput(EngagementError):
    """Raised when comment or chat text is blank after trimming."""

    detail = "Text cannot be empty."


class TransactionFailed(EngagementError):
    """Raised when the document store rejected or aborted a write."""

    detail = "Could not save your change. Please try again."


class StoreUnavailable(EngagementError):
    """Raised when no document store is available (read-only demo mode)."""

    detail = "Data storage is disabled."


class OperationInFlight(EngagementError):
    """Raised when the same action is already running for the same video."""

    detail = "That action is already in progress."


__all__ = [
    "EngagementError",
    "NotAuthenticated",
    "EmptyInput",
    "TransactionFailed",
    "StoreUnavailable",
    "OperationInFlight",
]
