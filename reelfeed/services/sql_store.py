"""Document store persisted in the ``documents`` table through SQLAlchemy."""
from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Mapping, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import create_session
from ..models import StoredDocument
from .document_store import (
    DEFAULT_MAX_ATTEMPTS,
    BaseDocumentStore,
    DocumentSnapshot,
    Fields,
    PendingWrite,
    StoreConnectionError,
    TransactionConflict,
    split_document_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TIMESTAMP_KEY = "__timestamp__"


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_TIMESTAMP_KEY: value.isoformat()}
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_TIMESTAMP_KEY}:
            return datetime.fromisoformat(value[_TIMESTAMP_KEY])
        return {key: _decode(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_decode(item) for item in value]
    return value


def _snapshot(row: StoredDocument) -> DocumentSnapshot:
    return DocumentSnapshot(path=row.path, fields=_decode(row.fields or {}), version=row.version)


class SqlDocumentStore(BaseDocumentStore):
    """Optimistic-concurrency document store on top of a relational database.

    Each row carries a ``version`` counter. Commits re-check the versions a
    transaction read and update rows with ``WHERE version = :expected`` so a
    concurrent writer turns into :class:`TransactionConflict` and a retry.
    Two transactions inserting the same new path collide on the primary key,
    which is reported the same way.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = create_session,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        super().__init__(max_attempts=max_attempts)
        self._session_factory = session_factory
        self._commit_lock = threading.Lock()

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    def _read(self, path: str) -> DocumentSnapshot:
        try:
            with self._session_factory() as session:
                row = session.get(StoredDocument, path)
                return _snapshot(row) if row is not None else DocumentSnapshot(path=path)
        except SQLAlchemyError as exc:
            raise StoreConnectionError(f"Failed to read {path}") from exc

    def _list(self, collection_path: str) -> list[DocumentSnapshot]:
        stmt = (
            select(StoredDocument)
            .where(StoredDocument.collection == collection_path)
            .order_by(StoredDocument.path.asc())
        )
        try:
            with self._session_factory() as session:
                return [_snapshot(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StoreConnectionError(f"Failed to list {collection_path}") from exc

    def _write(self, reads: Mapping[str, int], writes: list[PendingWrite]) -> None:
        with self._commit_lock, self._session_factory() as session:
            try:
                for path, expected in reads.items():
                    current = session.scalar(select(StoredDocument.version).where(StoredDocument.path == path))
                    if (current or 0) != expected:
                        raise TransactionConflict(f"{path} changed during the transaction")

                versions = dict(reads)
                for write in writes:
                    versions[write.path] = self._apply_write(session, write, versions.get(write.path))

                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise TransactionConflict("Document was created concurrently") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Document commit failed")
                raise StoreConnectionError("Failed to commit documents") from exc

    def _apply_write(self, session: Session, write: PendingWrite, expected: int | None) -> int:
        row = session.get(StoredDocument, write.path)
        if row is None:
            collection, doc_id = split_document_path(write.path)
            session.add(
                StoredDocument(
                    path=write.path,
                    collection=collection,
                    doc_id=doc_id,
                    fields=_encode(write.fields),
                    version=1,
                )
            )
            session.flush()
            return 1

        if expected == 0:
            raise TransactionConflict(f"{write.path} was created during the commit")
        # Blind writes (paths the transaction never read) update whatever version is there.
        if expected is None:
            expected = row.version

        fields: Fields = dict(write.fields)
        if write.merge:
            fields = {**_decode(row.fields or {}), **fields}
        result = session.execute(
            update(StoredDocument)
            .where(StoredDocument.path == write.path, StoredDocument.version == expected)
            .values(fields=_encode(fields), version=expected + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TransactionConflict(f"{write.path} changed during the commit")
        session.expire(row)
        return expected + 1


__all__ = ["SqlDocumentStore"]
