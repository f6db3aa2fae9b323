"""Identity provider contract and the local implementation used by sessions."""
from __future__ import annotations

import logging
from typing import Callable, Protocol
from uuid import uuid4

from .document_store import Unsubscribe

logger = logging.getLogger(__name__)

AuthCallback = Callable[[str | None], None]


class IdentityProvider(Protocol):
    def current_user_id(self) -> str | None: ...

    def on_auth_state_change(self, callback: AuthCallback) -> Unsubscribe: ...


class LocalIdentityProvider:
    """Holds the signed-in user id and notifies listeners when it changes."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id or None
        self._callbacks: list[AuthCallback] = []
        self.is_ready = user_id is not None

    def current_user_id(self) -> str | None:
        return self._user_id

    def on_auth_state_change(self, callback: AuthCallback) -> Unsubscribe:
        """Register ``callback`` and invoke it with the current user id."""

        self._callbacks.append(callback)
        self._emit(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def sign_in(self, user_id: str) -> str:
        candidate = (user_id or "").strip()
        if not candidate:
            raise ValueError("user_id must not be blank")
        self._set(candidate)
        return candidate

    def sign_in_anonymously(self) -> str:
        return self.sign_in(uuid4().hex)

    def sign_out(self) -> None:
        self._set(None)

    def _set(self, user_id: str | None) -> None:
        changed = user_id != self._user_id or not self.is_ready
        self._user_id = user_id
        self.is_ready = True
        if not changed:
            return
        for callback in list(self._callbacks):
            self._emit(callback)

    def _emit(self, callback: AuthCallback) -> None:
        try:
            callback(self._user_id)
        except Exception:
            logger.exception("Auth state listener failed")


__all__ = ["AuthCallback", "IdentityProvider", "LocalIdentityProvider"]
