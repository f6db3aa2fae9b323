"""Like and comment counters kept consistent through store transactions."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..schemas import Comment, EngagementStats
from .document_store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, StoreError, Transaction, Unsubscribe
from .errors import EmptyInput, NotAuthenticated, OperationInFlight, StoreUnavailable, TransactionFailed
from .identity import IdentityProvider
from .paths import FeedPaths

logger = logging.getLogger(__name__)

WarningCallback = Callable[[str], None]
PendingLikes = set[tuple[str, str]]

_PENDING = datetime.max.replace(tzinfo=timezone.utc)


def _noop() -> None:
    return None


def _count(snapshot: DocumentSnapshot, key: str) -> int:
    try:
        return max(0, int(snapshot.data().get(key) or 0))
    except (TypeError, ValueError):
        return 0


def _is_active(snapshot: DocumentSnapshot) -> bool:
    return snapshot.exists() and snapshot.data().get("active", True) is not False


def sort_key_oldest_first(record: Any) -> datetime:
    """Sort key placing records without a resolved timestamp last."""

    created_at = getattr(record, "created_at", None)
    if created_at is None:
        return _PENDING
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


class EngagementLedger:
    """Per-video like/comment counts and the viewer's like flags.

    Updates are pessimistic: nothing local changes until the store commits.
    After a successful commit the committed values are copied into the local
    caches; the collection subscriptions reconcile them again on the next
    snapshot.
    """

    def __init__(
        self,
        store: DocumentStore | None,
        identity: IdentityProvider,
        *,
        app_id: str,
        on_warning: WarningCallback | None = None,
        pending_likes: PendingLikes | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.paths = FeedPaths(app_id)
        self.on_warning = on_warning
        self.stats: dict[str, EngagementStats] = {}
        self.likes: dict[str, bool] = {}
        self.comments: dict[str, list[Comment]] = {}
        # (user_id, video_id) pairs with a like transaction running; may be shared by many ledgers.
        self._pending_likes: PendingLikes = pending_likes if pending_likes is not None else set()
        self._subscriptions: list[Unsubscribe] = []
        self._likes_unsubscribe: Unsubscribe | None = None
        self._likes_generation = 0
        self._likes_task: asyncio.Task[None] | None = None
        self._closed = False

    # -- reads -------------------------------------------------------------

    def stats_for(self, video_id: str) -> EngagementStats:
        return self.stats.get(video_id) or EngagementStats(video_id=video_id)

    def is_liked(self, video_id: str) -> bool:
        return self.likes.get(video_id, False)

    def comments_for(self, video_id: str) -> list[Comment]:
        return list(self.comments.get(video_id, ()))

    # -- mutations ---------------------------------------------------------

    async def toggle_like(self, video_id: str) -> bool:
        """Flip the viewer's like on ``video_id`` and return the new state."""

        store = self._require_store()
        user_id = self.identity.current_user_id()
        if not user_id:
            raise NotAuthenticated("Please sign in to like videos.")
        stats_path = self.paths.video_stats(video_id)
        like_path = self.paths.user_like(user_id, video_id)
        pending_key = (user_id, video_id)
        if pending_key in self._pending_likes:
            raise OperationInFlight("Your previous like is still being saved.")

        async def _flip(tx: Transaction) -> tuple[bool, int]:
            stats_doc = await tx.get(stats_path)
            like_doc = await tx.get(like_path)
            current = _count(stats_doc, "likes")
            liked = not _is_active(like_doc)
            like_count = current + 1 if liked else max(0, current - 1)
            tx.set(like_path, {"active": liked, "timestamp": SERVER_TIMESTAMP}, merge=True)
            tx.set(stats_path, {"likes": like_count}, merge=True)
            return liked, like_count

        self._pending_likes.add(pending_key)
        try:
            liked, like_count = await store.run_transaction(_flip)
        except StoreError as exc:
            logger.warning("Like transaction for %s failed: %s", video_id, exc)
            raise TransactionFailed("Could not process like. Please try again.") from exc
        finally:
            self._pending_likes.discard(pending_key)

        if not self._closed:
            self.likes[video_id] = liked
            self.stats[video_id] = self.stats_for(video_id).model_copy(update={"like_count": like_count})
        return liked

    async def add_comment(self, video_id: str, author_id: str | None, text: str) -> Comment:
        """Create a comment and bump the video's comment count in one transaction."""

        store = self._require_store()
        if not author_id:
            raise NotAuthenticated("Please sign in to post comments.")
        body = (text or "").strip()
        if not body:
            raise EmptyInput("Comment cannot be empty.")

        stats_path = self.paths.video_stats(video_id)
        comment_path = store.new_document_path(self.paths.comments)

        async def _append(tx: Transaction) -> int:
            stats_doc = await tx.get(stats_path)
            comment_count = _count(stats_doc, "comments") + 1
            tx.set(
                comment_path,
                {"videoId": video_id, "userId": author_id, "text": body, "timestamp": SERVER_TIMESTAMP},
            )
            tx.set(stats_path, {"comments": comment_count}, merge=True)
            return comment_count

        try:
            comment_count = await store.run_transaction(_append)
        except StoreError as exc:
            logger.warning("Comment transaction for %s failed: %s", video_id, exc)
            raise TransactionFailed("Could not post comment.") from exc

        comment = await self._load_comment(store, comment_path, video_id, author_id, body)
        if not self._closed:
            self.stats[video_id] = self.stats_for(video_id).model_copy(update={"comment_count": comment_count})
            thread = [item for item in self.comments.get(video_id, ()) if item.id != comment.id]
            thread.append(comment)
            thread.sort(key=sort_key_oldest_first)
            self.comments[video_id] = thread
        return comment

    # -- subscriptions -----------------------------------------------------

    async def observe_stats(self) -> Unsubscribe:
        if self.store is None:
            return _noop

        def _on_snapshot(documents: list[DocumentSnapshot]) -> None:
            if self._closed:
                return
            self.stats = {doc.id: EngagementStats.from_snapshot(doc) for doc in documents}

        return self._track(await self.store.watch_collection(self.paths.stats, _on_snapshot, self._warn("stats")))

    async def observe_comments(self, video_id: str | None = None) -> Unsubscribe:
        """Keep ``comments`` grouped by video and sorted oldest first."""

        if self.store is None:
            return _noop

        def _on_snapshot(documents: list[DocumentSnapshot]) -> None:
            if self._closed:
                return
            grouped: dict[str, list[Comment]] = {}
            for doc in documents:
                data = doc.data()
                owner = data.get("videoId")
                if not owner or (video_id is not None and owner != video_id):
                    continue
                try:
                    comment = Comment.from_snapshot(doc)
                except ValueError:
                    logger.warning("Skipping malformed comment %s", doc.path)
                    continue
                grouped.setdefault(owner, []).append(comment)
            for thread in grouped.values():
                thread.sort(key=sort_key_oldest_first)
            if video_id is None:
                self.comments = grouped
            else:
                self.comments[video_id] = grouped.get(video_id, [])

        return self._track(
            await self.store.watch_collection(self.paths.comments, _on_snapshot, self._warn("comments"))
        )

    async def observe_my_likes(self) -> Unsubscribe:
        """Follow the signed-in user's like flags across sign-in changes.

        Returns once the current user's likes are loaded. Later sign-in
        changes clear ``likes`` at once and reload them in the background;
        :meth:`likes_settled` waits for that reload.
        """

        store = self.store
        if store is None:
            return _noop

        def _on_auth(user_id: str | None) -> None:
            self._stop_likes()
            self._likes_generation += 1
            self.likes = {}
            self._likes_task = None
            if not user_id or self._closed:
                return
            self._likes_task = asyncio.get_running_loop().create_task(
                self._follow_likes(store, user_id, self._likes_generation)
            )

        stop_auth = self.identity.on_auth_state_change(_on_auth)
        await self.likes_settled()

        def _unsubscribe() -> None:
            stop_auth()
            self._likes_generation += 1
            self._stop_likes()

        return self._track(_unsubscribe)

    async def likes_settled(self) -> None:
        task = self._likes_task
        if task is not None:
            await task

    def close(self) -> None:
        """Stop every subscription; late transaction results are discarded."""

        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for unsubscribe in subscriptions:
            unsubscribe()

    # -- helpers -----------------------------------------------------------

    def _require_store(self) -> DocumentStore:
        if self.store is None:
            raise StoreUnavailable()
        return self.store

    def _track(self, unsubscribe: Unsubscribe) -> Unsubscribe:
        self._subscriptions.append(unsubscribe)
        return unsubscribe

    def _stop_likes(self) -> None:
        if self._likes_unsubscribe is not None:
            self._likes_unsubscribe()
            self._likes_unsubscribe = None

    async def _follow_likes(self, store: DocumentStore, user_id: str, generation: int) -> None:
        def _current() -> bool:
            return generation == self._likes_generation and not self._closed

        def _on_snapshot(documents: list[DocumentSnapshot]) -> None:
            if _current():
                self.likes = {doc.id: True for doc in documents if _is_active(doc)}

        unsubscribe = await store.watch_collection(self.paths.user_likes(user_id), _on_snapshot, self._warn("likes"))
        if _current():
            self._likes_unsubscribe = unsubscribe
        else:
            unsubscribe()

    def _warn(self, name: str) -> Callable[[Exception], None]:
        def _handler(exc: Exception) -> None:
            message = f"Live {name} updates failed: {exc}"
            if self.on_warning is not None:
                self.on_warning(message)

        return _handler

    async def _load_comment(
        self,
        store: DocumentStore,
        path: str,
        video_id: str,
        author_id: str,
        body: str,
    ) -> Comment:
        try:
            snapshot = await store.get_document(path)
        except StoreError:
            logger.warning("Comment %s committed but could not be read back", path)
            snapshot = None
        if snapshot is not None and snapshot.exists():
            return Comment.from_snapshot(snapshot)
        return Comment(id=path.rsplit("/", 1)[-1], video_id=video_id, author_id=author_id, text=body)


__all__ = ["EngagementLedger", "PendingLikes", "sort_key_oldest_first"]
