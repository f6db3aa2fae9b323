"""In-process document store used for demos, tests and single-node setups."""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Callable, Mapping, TypeVar

from .document_store import (
    DEFAULT_MAX_ATTEMPTS,
    BaseDocumentStore,
    DocumentSnapshot,
    Fields,
    PendingWrite,
    TransactionConflict,
    split_document_path,
)

T = TypeVar("T")


class InMemoryDocumentStore(BaseDocumentStore):
    """Dict-backed store with per-document versions for optimistic concurrency."""

    def __init__(self, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        super().__init__(max_attempts=max_attempts)
        self._documents: dict[str, tuple[Fields, int]] = {}

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        # Yield first so concurrent transactions interleave the way remote calls would.
        await asyncio.sleep(0)
        return func(*args)

    def _read(self, path: str) -> DocumentSnapshot:
        stored = self._documents.get(path)
        if stored is None:
            return DocumentSnapshot(path=path)
        fields, version = stored
        return DocumentSnapshot(path=path, fields=copy.deepcopy(fields), version=version)

    def _list(self, collection_path: str) -> list[DocumentSnapshot]:
        snapshots = []
        for path in sorted(self._documents):
            if split_document_path(path)[0] == collection_path:
                snapshots.append(self._read(path))
        return snapshots

    def _write(self, reads: Mapping[str, int], writes: list[PendingWrite]) -> None:
        for path, expected in reads.items():
            current = self._documents.get(path)
            if (current[1] if current else 0) != expected:
                raise TransactionConflict(f"{path} changed during the transaction")

        for write in writes:
            current = self._documents.get(write.path)
            fields = copy.deepcopy(write.fields)
            if current is None:
                self._documents[write.path] = (fields, 1)
                continue
            existing, version = current
            if write.merge:
                fields = {**existing, **fields}
            self._documents[write.path] = (fields, version + 1)

    def clear(self) -> None:
        self._documents.clear()


__all__ = ["InMemoryDocumentStore"]
