"""Global chat room shared by every viewer of the feed."""
from __future__ import annotations

import logging

from ..schemas import ChatMessage
from .document_store import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore, StoreError, Unsubscribe
from .engagement_ledger import WarningCallback, sort_key_oldest_first
from .errors import EmptyInput, NotAuthenticated, StoreUnavailable, TransactionFailed
from .identity import IdentityProvider
from .paths import FeedPaths

logger = logging.getLogger(__name__)


class GlobalChat:
    def __init__(
        self,
        store: DocumentStore | None,
        identity: IdentityProvider,
        *,
        app_id: str,
        limit: int | None = None,
        on_warning: WarningCallback | None = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.paths = FeedPaths(app_id)
        self.limit = limit
        self.on_warning = on_warning
        self.messages: list[ChatMessage] = []
        self._unsubscribe: Unsubscribe | None = None

    async def send_message(
        self,
        text: str,
        *,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> str:
        """Post ``text`` to the room and return the new message id."""

        if self.store is None:
            raise StoreUnavailable()
        user_id = self.identity.current_user_id()
        if not user_id:
            raise NotAuthenticated("Please sign in to chat globally.")
        body = (text or "").strip()
        if not body:
            raise EmptyInput("Message cannot be empty.")

        payload = {
            "userId": user_id,
            "userName": display_name or "Anonymous",
            "userPhoto": photo_url,
            "text": body,
            "timestamp": SERVER_TIMESTAMP,
        }
        try:
            return await self.store.add_document(self.paths.chat, payload)
        except StoreError as exc:
            logger.warning("Chat message from %s failed: %s", user_id, exc)
            raise TransactionFailed("Could not send message.") from exc

    async def observe(self) -> Unsubscribe:
        if self.store is None:
            return lambda: None
        self.close()
        self._unsubscribe = await self.store.watch_collection(self.paths.chat, self._on_snapshot, self._on_error)
        return self.close

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, documents: list[DocumentSnapshot]) -> None:
        messages = []
        for doc in documents:
            try:
                messages.append(ChatMessage.from_snapshot(doc))
            except ValueError:
                logger.warning("Skipping malformed chat message %s", doc.path)
        messages.sort(key=sort_key_oldest_first)
        if self.limit is not None and self.limit > 0:
            messages = messages[-self.limit:]
        self.messages = messages

    def _on_error(self, exc: Exception) -> None:
        if self.on_warning is not None:
            self.on_warning(f"Live chat updates failed: {exc}")


__all__ = ["GlobalChat"]
