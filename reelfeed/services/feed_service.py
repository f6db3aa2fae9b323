"""Video catalog subscription and the per-viewer feed session."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from ..config import Settings
from ..constants import INITIAL_VIDEOS, SWIPE_THRESHOLD_PX
from ..schemas import Comment, FeedState, Video
from .chat_service import GlobalChat
from .document_store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, StoreError, Transaction, Unsubscribe
from .engagement_ledger import EngagementLedger, PendingLikes
from .errors import EmptyInput, NotAuthenticated, StoreUnavailable, TransactionFailed
from .feed_navigator import FeedNavigator
from .gesture import GestureRecognizer
from .identity import IdentityProvider
from .paths import FeedPaths

logger = logging.getLogger(__name__)

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def fallback_videos() -> tuple[Video, ...]:
    return tuple(Video.model_validate(item) for item in INITIAL_VIDEOS)


def _newest_first(video: Video) -> datetime:
    created_at = video.created_at
    if created_at is None:
        return _UNDATED
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def sort_newest_first(documents: list[DocumentSnapshot]) -> list[Video]:
    videos = []
    for doc in documents:
        try:
            videos.append(Video.from_snapshot(doc))
        except ValueError:
            logger.warning("Skipping malformed video %s", doc.path)
    # Equal timestamps (one seeding commit) keep ascending id order.
    videos.sort(key=lambda video: video.id)
    videos.sort(key=_newest_first, reverse=True)
    return videos


async def list_videos(store: DocumentStore | None, app_id: str) -> list[Video]:
    """Current reel, newest first; the starter reel when nothing is stored."""

    if store is None:
        return list(fallback_videos())
    try:
        documents = await store.list_documents(FeedPaths(app_id).videos)
    except StoreError as exc:
        logger.warning("Could not list videos, serving starter reel: %s", exc)
        return list(fallback_videos())
    return sort_newest_first(documents) or list(fallback_videos())


async def seed_initial_videos(store: DocumentStore, app_id: str) -> int:
    """Write the starter reel in one commit when the videos collection is empty."""

    paths = FeedPaths(app_id)
    if await store.list_documents(paths.videos):
        return 0
    logger.info("No videos found. Populating initial data...")

    async def _populate(tx: Transaction) -> int:
        for item in INITIAL_VIDEOS:
            if (await tx.get(paths.video(item["id"]))).exists():
                return 0
        for item in INITIAL_VIDEOS:
            fields = {key: value for key, value in item.items() if key != "id"}
            tx.set(paths.video(item["id"]), {**fields, "timestamp": SERVER_TIMESTAMP})
        return len(INITIAL_VIDEOS)

    return await store.run_transaction(_populate)


async def submit_video(
    store: DocumentStore | None,
    identity: IdentityProvider,
    *,
    app_id: str,
    title: str,
    description: str = "",
    media_ref: str,
    category: str | None = None,
) -> str:
    """Add a viewer-submitted video and return its id."""

    if store is None:
        raise StoreUnavailable()
    user_id = identity.current_user_id()
    if not user_id:
        raise NotAuthenticated("Please sign in to share videos.")
    title = (title or "").strip()
    media_ref = (media_ref or "").strip()
    if not title or not media_ref:
        raise EmptyInput("A video needs a title and a media link.")

    payload = {
        "title": title,
        "desc": (description or "").strip(),
        "src": media_ref,
        "category": (category or "").strip() or None,
        "uploaderId": user_id,
        "timestamp": SERVER_TIMESTAMP,
    }
    try:
        return await store.add_document(FeedPaths(app_id).videos, payload)
    except StoreError as exc:
        logger.warning("Video submission from %s failed: %s", user_id, exc)
        raise TransactionFailed("Could not share the video.") from exc


class VideoCatalog:
    """Feeds the videos collection into a navigator, newest first."""

    def __init__(
        self,
        store: DocumentStore | None,
        navigator: FeedNavigator,
        *,
        app_id: str,
        seed_initial: bool = True,
    ) -> None:
        self.store = store
        self.navigator = navigator
        self.app_id = app_id
        self.seed_initial = seed_initial
        self._seed_task: asyncio.Task[int] | None = None
        self._unsubscribe: Unsubscribe | None = None

    async def watch(self) -> Unsubscribe:
        # The starter reel is shown until the first snapshot arrives; without a
        # store (demo mode) it is all navigation ever sees.
        self.navigator.set_videos(fallback_videos())
        if self.store is None:
            return lambda: None
        self._unsubscribe = await self.store.watch_collection(FeedPaths(self.app_id).videos, self._on_snapshot)
        return self._stop

    async def close(self) -> None:
        self._stop()
        if self._seed_task is not None:
            await self._seed_task

    def _stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, documents: list[DocumentSnapshot]) -> None:
        if not documents:
            if self.seed_initial and self._seed_task is None:
                self._schedule_seed()
            return
        videos = sort_newest_first(documents)
        if videos:
            self.navigator.set_videos(videos)

    def _schedule_seed(self) -> None:
        if self.store is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; starter videos were not written")
            return
        self._seed_task = loop.create_task(self._seed(self.store))

    async def _seed(self, store: DocumentStore) -> int:
        try:
            return await seed_initial_videos(store, self.app_id)
        except StoreError as exc:
            logger.warning("Seeding starter videos failed: %s", exc)
            return 0


class FeedSession:
    """Everything one viewer needs: navigation, engagement, chat and gestures."""

    def __init__(
        self,
        store: DocumentStore | None,
        identity: IdentityProvider,
        *,
        app_id: str,
        swipe_threshold: float = SWIPE_THRESHOLD_PX,
        seed_initial: bool = True,
        chat_limit: int | None = None,
        on_change: Callable[[], None] | None = None,
        pending_likes: PendingLikes | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.paths = FeedPaths(app_id)
        self.on_change = on_change
        self.warnings: list[str] = []
        self.navigator = FeedNavigator()
        self.gesture = GestureRecognizer(swipe_threshold, on_navigate=self.navigator.advance)
        self.ledger = EngagementLedger(
            store,
            identity,
            app_id=app_id,
            on_warning=self._warn,
            pending_likes=pending_likes,
        )
        self.chat = GlobalChat(store, identity, app_id=app_id, limit=chat_limit, on_warning=self._warn)
        self.catalog = VideoCatalog(
            store,
            self.navigator,
            app_id=app_id,
            seed_initial=seed_initial,
        )
        self._watchers: list[Unsubscribe] = []

    @classmethod
    def from_settings(
        cls,
        store: DocumentStore | None,
        identity: IdentityProvider,
        settings: Settings,
        *,
        on_change: Callable[[], None] | None = None,
        pending_likes: PendingLikes | None = None,
    ) -> "FeedSession":
        return cls(
            store,
            identity,
            app_id=settings.app_id,
            swipe_threshold=settings.swipe_threshold_px,
            seed_initial=settings.seed_initial_videos,
            chat_limit=settings.chat_history_limit,
            on_change=on_change,
            pending_likes=pending_likes,
        )

    async def start(self) -> None:
        self._watchers.append(await self.catalog.watch())
        await self.ledger.observe_stats()
        await self.ledger.observe_comments()
        await self.ledger.observe_my_likes()
        await self.chat.observe()
        if self.store is not None:
            # Registered after the components so their state is current when on_change fires.
            for collection in (self.paths.videos, self.paths.stats, self.paths.comments, self.paths.chat):
                self._watchers.append(await self.store.watch_collection(collection, self._changed))

    async def close(self) -> None:
        watchers, self._watchers = self._watchers, []
        for unsubscribe in watchers:
            unsubscribe()
        self.ledger.close()
        self.chat.close()
        await self.catalog.close()

    async def toggle_like(self) -> bool | None:
        video = self.navigator.current_video()
        if video is None:
            return None
        return await self.ledger.toggle_like(video.id)

    async def add_comment(self, text: str) -> Comment | None:
        video = self.navigator.current_video()
        if video is None:
            return None
        return await self.ledger.add_comment(video.id, self.identity.current_user_id(), text)

    def snapshot(self) -> FeedState:
        video = self.navigator.current_video()
        if video is None:
            return FeedState(search_term=self.navigator.search_term)
        return FeedState(
            video=video,
            stats=self.ledger.stats_for(video.id),
            viewer_has_liked=self.ledger.is_liked(video.id),
            comments=self.ledger.comments_for(video.id),
            search_term=self.navigator.search_term,
            index=self.navigator.current_index,
            total=len(self.navigator.filtered_videos),
        )

    def _changed(self, _documents: list[DocumentSnapshot]) -> None:
        if self.on_change is not None:
            self.on_change()

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
        if self.on_change is not None:
            self.on_change()


__all__ = [
    "FeedSession",
    "VideoCatalog",
    "fallback_videos",
    "list_videos",
    "seed_initial_videos",
    "sort_newest_first",
    "submit_video",
]
