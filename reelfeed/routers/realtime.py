"""WebSocket endpoint driving one viewer's reel session."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..config import get_settings
from ..services import EngagementError, FeedSession, identity_from_token

router = APIRouter()
logger = logging.getLogger(__name__)

Frame = dict[str, Any]


def _state_frame(session: FeedSession) -> Frame:
    frame: Frame = {"type": "state", **session.snapshot().model_dump(mode="json", by_alias=True)}
    frame["user_id"] = session.identity.current_user_id()
    if session.warnings:
        frame["warnings"], session.warnings = session.warnings, []
    return frame


def _point(payload: dict[str, Any], key: str) -> float | None:
    value = payload.get(key)
    return None if value is None else float(value)


async def _handle(session: FeedSession, payload: dict[str, Any]) -> list[Frame]:
    kind = str(payload.get("type") or "").lower()
    try:
        if kind == "ping":
            return [{"type": "pong"}]
        if kind == "search":
            session.navigator.set_search(str(payload.get("term") or ""))
        elif kind == "advance":
            session.navigator.advance(int(payload.get("delta", 1)))
        elif kind == "jump":
            session.navigator.jump_to(str(payload.get("video_id") or ""))
        elif kind == "pointer":
            phase = str(payload.get("phase") or "").lower()
            x, y = _point(payload, "x"), _point(payload, "y")
            if phase == "start":
                session.gesture.start(x or 0.0, y or 0.0)
                return []
            if phase == "move":
                session.gesture.move(x or 0.0, y or 0.0)
                return []
            if phase == "cancel":
                session.gesture.cancel()
                return []
            if phase != "end":
                return [{"type": "error", "code": "InvalidMessage", "detail": f"Unknown pointer phase {phase!r}"}]
            if session.gesture.end(x, y) is None:
                return []
        elif kind == "like":
            await session.toggle_like()
        elif kind == "comment":
            await session.add_comment(str(payload.get("text") or ""))
        else:
            return [{"type": "error", "code": "InvalidMessage", "detail": f"Unknown message type {kind!r}"}]
    except EngagementError as exc:
        return [{"type": "error", "code": type(exc).__name__, "detail": exc.detail}]
    except (TypeError, ValueError) as exc:
        return [{"type": "error", "code": "InvalidMessage", "detail": str(exc)}]
    return [_state_frame(session)]


async def _push_updates(websocket: WebSocket, session: FeedSession, changed: asyncio.Event, lock: asyncio.Lock) -> None:
    """Send a fresh state frame whenever the store reports a change."""

    while True:
        await changed.wait()
        async with lock:
            if not changed.is_set():
                continue
            changed.clear()
            try:
                await websocket.send_json(_state_frame(session))
            except Exception:
                logger.info("Feed socket push to %s failed; stopping updates", websocket.client)
                return


@router.websocket("/ws/feed")
async def feed_socket(websocket: WebSocket) -> None:
    """Maintain a reel session: navigation, gestures, likes and comments."""

    await websocket.accept()
    store = getattr(websocket.app.state, "document_store", None)
    identity = identity_from_token(websocket.query_params.get("token"))
    changed = asyncio.Event()
    lock = asyncio.Lock()
    session = FeedSession.from_settings(
        store,
        identity,
        get_settings(),
        on_change=changed.set,
        pending_likes=websocket.app.state.pending_likes,
    )
    await session.start()
    logger.info("Feed socket connected from %s", websocket.client)

    pusher: asyncio.Task[None] | None = None
    try:
        async with lock:
            changed.clear()
            await websocket.send_json(_state_frame(session))
        pusher = asyncio.create_task(_push_updates(websocket, session, changed, lock))

        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"type": raw}
            if not isinstance(payload, dict):
                payload = {"type": str(payload)}

            async with lock:
                frames = await _handle(session, payload)
                changed.clear()
                for frame in frames:
                    await websocket.send_json(frame)
    finally:
        if pusher is not None:
            pusher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pusher
        await session.close()
        logger.info("Feed socket disconnected from %s", websocket.client)


__all__ = ["router"]
