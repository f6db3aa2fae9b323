"""Document store contract shared by the feed services.

The feed core never talks to a database directly. It reads and writes named
documents (``collection/.../collection/doc_id`` paths), runs atomic
read-modify-write transactions and listens to whole collections. Concrete
stores only provide three blocking primitives (``_read``, ``_list`` and
``_write``); retries, timestamp resolution and change notification live in
:class:`BaseDocumentStore`.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Protocol, TypeVar
from uuid import uuid4

logger = logging.getLogger(__name__)

T = TypeVar("T")

Fields = dict[str, Any]
Unsubscribe = Callable[[], None]
CollectionCallback = Callable[[list["DocumentSnapshot"]], None]
ErrorCallback = Callable[[Exception], None]

DEFAULT_MAX_ATTEMPTS = 5


class _ServerTimestamp:
    """Placeholder resolved to the commit time by the store."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Any = _ServerTimestamp()


class StoreError(RuntimeError):
    """Base class for document store failures."""


class TransactionConflict(StoreError):
    """Raised when a transaction read data that changed before it committed."""


class StoreConnectionError(StoreError):
    """Raised when the backing storage cannot be reached."""


def split_document_path(path: str) -> tuple[str, str]:
    """Return ``(collection_path, doc_id)`` for a document path."""

    segments = [segment for segment in path.strip("/").split("/") if segment]
    if len(segments) < 2 or len(segments) % 2:
        raise ValueError(f"{path!r} is not a document path")
    return "/".join(segments[:-1]), segments[-1]


def normalize_collection_path(path: str) -> str:
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments or len(segments) % 2 == 0:
        raise ValueError(f"{path!r} is not a collection path")
    return "/".join(segments)


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time read of a single document."""

    path: str
    fields: Fields | None = None
    version: int = 0

    @property
    def id(self) -> str:
        return split_document_path(self.path)[1]

    def exists(self) -> bool:
        return self.fields is not None

    def data(self) -> Fields:
        return copy.deepcopy(self.fields) if self.fields is not None else {}


@dataclass
class PendingWrite:
    path: str
    fields: Fields
    merge: bool = False


@dataclass
class Transaction:
    """Reads and buffered writes of one transaction attempt."""

    store: "BaseDocumentStore"
    reads: dict[str, int] = field(default_factory=dict)
    writes: list[PendingWrite] = field(default_factory=list)

    async def get(self, path: str) -> DocumentSnapshot:
        if self.writes:
            raise StoreError("Transactions must perform all reads before any writes")
        split_document_path(path)
        snapshot = await self.store._call(self.store._read, path)
        self.reads[path] = snapshot.version
        return snapshot

    def set(self, path: str, fields: Mapping[str, Any], *, merge: bool = False) -> None:
        split_document_path(path)
        self.writes.append(PendingWrite(path=path, fields=dict(fields), merge=merge))


class DocumentStore(Protocol):
    async def get_document(self, path: str) -> DocumentSnapshot: ...

    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]: ...

    async def set_document(self, path: str, fields: Mapping[str, Any], *, merge: bool = False) -> None: ...

    async def add_document(self, collection_path: str, fields: Mapping[str, Any]) -> str: ...

    def new_document_path(self, collection_path: str) -> str: ...

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T: ...

    def subscribe_collection(
        self,
        path: str,
        callback: CollectionCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe: ...

    async def watch_collection(
        self,
        path: str,
        callback: CollectionCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe: ...


@dataclass(eq=False)
class _Listener:
    callback: CollectionCallback
    on_error: ErrorCallback | None = None
    delivered: bool = False


def _coalesce(writes: list[PendingWrite]) -> list[PendingWrite]:
    """Fold repeated writes to the same path into one write."""

    merged: dict[str, PendingWrite] = {}
    for write in writes:
        previous = merged.get(write.path)
        if previous is None or not write.merge:
            merged[write.path] = PendingWrite(write.path, dict(write.fields), write.merge)
        else:
            previous.fields.update(write.fields)
    return list(merged.values())


def _resolve_timestamps(fields: Fields, now: datetime) -> Fields:
    return {key: (now if value is SERVER_TIMESTAMP else value) for key, value in fields.items()}


class BaseDocumentStore:
    """Shared transaction loop and change notification for concrete stores."""

    def __init__(self, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.max_attempts = max(1, max_attempts)
        self._listeners: dict[str, list[_Listener]] = {}

    # -- primitives provided by subclasses --------------------------------

    def _read(self, path: str) -> DocumentSnapshot:
        raise NotImplementedError

    def _list(self, collection_path: str) -> list[DocumentSnapshot]:
        raise NotImplementedError

    def _write(self, reads: Mapping[str, int], writes: list[PendingWrite]) -> None:
        """Apply ``writes`` atomically if every read version is still current."""

        raise NotImplementedError

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        raise NotImplementedError

    # -- public API --------------------------------------------------------

    async def get_document(self, path: str) -> DocumentSnapshot:
        split_document_path(path)
        return await self._call(self._read, path)

    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        return await self._call(self._list, normalize_collection_path(collection_path))

    async def set_document(self, path: str, fields: Mapping[str, Any], *, merge: bool = False) -> None:
        split_document_path(path)
        await self._commit({}, [PendingWrite(path, dict(fields), merge)])

    async def add_document(self, collection_path: str, fields: Mapping[str, Any]) -> str:
        path = self.new_document_path(collection_path)
        await self.set_document(path, fields)
        return split_document_path(path)[1]

    def new_document_path(self, collection_path: str) -> str:
        return f"{normalize_collection_path(collection_path)}/{uuid4().hex}"

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``fn`` until its writes commit without conflicts."""

        for attempt in range(1, self.max_attempts + 1):
            tx = Transaction(self)
            result = await fn(tx)
            try:
                await self._commit(tx.reads, tx.writes)
            except TransactionConflict:
                logger.debug("Transaction conflict on attempt %d/%d", attempt, self.max_attempts)
                continue
            return result
        raise TransactionConflict(f"Transaction aborted after {self.max_attempts} attempts")

    def subscribe_collection(
        self,
        path: str,
        callback: CollectionCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Deliver the collection now and after every committed change to it.

        The first read runs on the calling thread. Stores whose reads block
        (SQL) should be subscribed from the event loop via
        :meth:`watch_collection` instead.
        """

        collection = normalize_collection_path(path)
        listener = _Listener(callback, on_error)
        unsubscribe = self._register(collection, listener)

        try:
            documents = self._list(collection)
        except StoreError as exc:
            self._report(collection, listener, exc)
        else:
            self._dispatch(collection, listener, documents)
        return unsubscribe

    async def watch_collection(
        self,
        path: str,
        callback: CollectionCallback,
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Like :meth:`subscribe_collection`, with the first read awaited through ``_call``."""

        collection = normalize_collection_path(path)
        listener = _Listener(callback, on_error)
        unsubscribe = self._register(collection, listener)

        try:
            documents = await self._call(self._list, collection)
        except StoreError as exc:
            self._report(collection, listener, exc)
            return unsubscribe
        # A commit notified while the first read was running already delivered newer data.
        if not listener.delivered and listener in self._listeners.get(collection, ()):
            self._dispatch(collection, listener, documents)
        return unsubscribe

    # -- internals ---------------------------------------------------------

    def _register(self, collection: str, listener: _Listener) -> Unsubscribe:
        self._listeners.setdefault(collection, []).append(listener)

        def _unsubscribe() -> None:
            group = self._listeners.get(collection)
            if group is None:
                return
            if listener in group:
                group.remove(listener)
            if not group:
                self._listeners.pop(collection, None)

        return _unsubscribe

    async def _commit(self, reads: Mapping[str, int], writes: list[PendingWrite]) -> None:
        now = datetime.now(timezone.utc)
        resolved = [
            PendingWrite(write.path, _resolve_timestamps(write.fields, now), write.merge)
            for write in _coalesce(writes)
        ]
        if resolved or reads:
            await self._call(self._write, dict(reads), resolved)
        touched = {split_document_path(write.path)[0] for write in resolved}
        for collection in sorted(touched):
            await self._notify(collection)

    async def _notify(self, collection: str) -> None:
        listeners = list(self._listeners.get(collection, ()))
        if not listeners:
            return
        try:
            documents = await self._call(self._list, collection)
        except StoreError as exc:
            for listener in listeners:
                self._report(collection, listener, exc)
            return
        for listener in listeners:
            self._dispatch(collection, listener, documents)

    def _dispatch(self, collection: str, listener: _Listener, documents: list[DocumentSnapshot]) -> None:
        listener.delivered = True
        try:
            listener.callback(list(documents))
        except Exception as exc:
            self._report(collection, listener, exc)

    def _report(self, collection: str, listener: _Listener, exc: Exception) -> None:
        logger.warning("Listener on %s failed: %s", collection, exc)
        if listener.on_error is None:
            return
        try:
            listener.on_error(exc)
        except Exception:
            logger.exception("Error handler for %s raised", collection)


__all__ = [
    "SERVER_TIMESTAMP",
    "BaseDocumentStore",
    "CollectionCallback",
    "DocumentSnapshot",
    "DocumentStore",
    "ErrorCallback",
    "Fields",
    "PendingWrite",
    "StoreConnectionError",
    "StoreError",
    "Transaction",
    "TransactionConflict",
    "Unsubscribe",
    "normalize_collection_path",
    "split_document_path",
]
