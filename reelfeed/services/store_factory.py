"""Build the process-wide document store from settings."""
from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..database import create_session, init_db
from .document_store import DocumentStore
from .engagement_ledger import PendingLikes
from .errors import EngagementError, EmptyInput, NotAuthenticated, OperationInFlight, StoreUnavailable
from .memory_store import InMemoryDocumentStore
from .sql_store import SqlDocumentStore

logger = logging.getLogger(__name__)


def build_document_store(settings: Settings) -> DocumentStore | None:
    """Return the configured store, or ``None`` when it cannot be initialised."""

    if settings.document_store == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore(max_attempts=settings.transaction_max_attempts)

    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Document store initialisation failed; serving the read-only demo feed")
        return None
    logger.info("Using SQL document store")
    return SqlDocumentStore(create_session, max_attempts=settings.transaction_max_attempts)


def get_document_store(request: Request) -> DocumentStore | None:
    """FastAPI dependency returning the store created at startup."""

    return getattr(request.app.state, "document_store", None)


def get_pending_likes(request: Request) -> PendingLikes:
    """Like toggles in flight across every request of this app."""

    return request.app.state.pending_likes


_STATUS_BY_ERROR: dict[type[EngagementError], int] = {
    NotAuthenticated: status.HTTP_401_UNAUTHORIZED,
    EmptyInput: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OperationInFlight: status.HTTP_409_CONFLICT,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: EngagementError) -> HTTPException:
    """Translate a domain error into the matching HTTP response."""

    code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_409_CONFLICT)
    return HTTPException(status_code=code, detail=exc.detail)


__all__ = ["build_document_store", "get_document_store", "get_pending_likes", "http_error"]
