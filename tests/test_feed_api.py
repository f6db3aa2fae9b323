"""HTTP and WebSocket tests against the SQL-backed application."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterator, TypeVar

import httpx
import pytest
from fastapi.testclient import TestClient

from reelfeed.main import app
from reelfeed.services import InMemoryDocumentStore, create_access_token

T = TypeVar("T")


@pytest.fixture
def client(clean_documents) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth(client: TestClient) -> tuple[str, dict[str, str]]:
    response = client.post("/auth/anonymous")
    assert response.status_code == 201
    body = response.json()
    return body["user_id"], {"Authorization": f"Bearer {body['access_token']}"}


def test_health_reports_sql_store(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "store": "SqlDocumentStore"}


def test_starter_videos_are_listed_newest_first(client: TestClient) -> None:
    response = client.get("/feed/videos")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items] == ["v1", "v2", "v3"]
    assert items[0]["title"] == "ASA Global Initiative"
    assert items[0]["desc"] == "Connecting the world"
    assert items[0]["timestamp"] is not None


def test_video_search_filters_listing(client: TestClient) -> None:
    response = client.get("/feed/videos", params={"q": "LEARNING"})

    assert [item["id"] for item in response.json()["items"]] == ["v2"]


def test_submitted_video_appears_first(client: TestClient, auth) -> None:
    _, headers = auth
    payload = {"title": "My reel", "description": "Short clip", "media_ref": "https://cdn/x.mp4"}

    created = client.post("/feed/videos", json=payload, headers=headers)

    assert created.status_code == 201
    assert created.json()["src"] == "https://cdn/x.mp4"
    items = client.get("/feed/videos").json()["items"]
    assert items[0]["id"] == created.json()["id"]


def test_like_toggles_and_requires_token(client: TestClient, auth) -> None:
    _, headers = auth

    assert client.post("/feed/videos/v1/like").status_code == 401

    liked = client.post("/feed/videos/v1/like", headers=headers)
    assert liked.status_code == 200
    assert liked.json() == {"video_id": "v1", "like_count": 1, "comment_count": 0, "viewer_has_liked": True}

    unliked = client.post("/feed/videos/v1/like", headers=headers)
    assert unliked.json()["like_count"] == 0
    assert unliked.json()["viewer_has_liked"] is False

    anonymous_view = client.get("/feed/videos/v1/stats")
    assert anonymous_view.json()["viewer_has_liked"] is False


def test_video_id_is_trimmed_before_use(client: TestClient, auth) -> None:
    _, headers = auth

    liked = client.post("/feed/videos/%20v1%20/like", headers=headers)

    assert liked.status_code == 200
    assert liked.json()["video_id"] == "v1"
    assert client.get("/feed/videos/v1/stats").json()["like_count"] == 1
    assert client.get("/feed/videos/%20/stats").status_code == 422


class _HeldCommitStore(InMemoryDocumentStore):
    """Parks every commit until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.commit_reached = asyncio.Event()
        self.release = asyncio.Event()

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        if func == self._write:
            self.commit_reached.set()
            await self.release.wait()
        return await super()._call(func, *args)


@pytest.mark.asyncio
async def test_second_like_request_while_first_commits_is_conflict(monkeypatch: pytest.MonkeyPatch) -> None:
    store = _HeldCommitStore()
    monkeypatch.setattr(app.state, "document_store", store)
    headers = {"Authorization": f"Bearer {create_access_token('alice')}"}

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        first = asyncio.create_task(http.post("/feed/videos/v1/like", headers=headers))
        await asyncio.wait_for(store.commit_reached.wait(), timeout=5)

        second = await http.post("/feed/videos/v1/like", headers=headers)
        store.release.set()
        first_response = await first

    assert second.status_code == 409
    assert second.json()["detail"] == "Your previous like is still being saved."
    assert first_response.status_code == 200
    assert first_response.json()["like_count"] == 1
    assert first_response.json()["viewer_has_liked"] is True
    assert app.state.pending_likes == set()


def test_comments_are_created_and_listed(client: TestClient, auth) -> None:
    user_id, headers = auth

    first = client.post("/feed/videos/v2/comments", json={"text": "First!"}, headers=headers)
    second = client.post("/feed/videos/v2/comments", json={"text": "Second"}, headers=headers)
    client.post("/feed/videos/v3/comments", json={"text": "Elsewhere"}, headers=headers)

    assert first.status_code == 201
    assert first.json()["userId"] == user_id
    assert first.json()["videoId"] == "v2"
    listed = client.get("/feed/videos/v2/comments").json()["items"]
    assert [item["id"] for item in listed] == [first.json()["id"], second.json()["id"]]
    assert client.get("/feed/videos/v2/stats").json()["comment_count"] == 2


def test_blank_comment_is_rejected(client: TestClient, auth) -> None:
    _, headers = auth

    response = client.post("/feed/videos/v1/comments", json={"text": "    "}, headers=headers)

    assert response.status_code == 422
    assert response.json()["detail"] == "Comment cannot be empty."
    assert client.get("/feed/videos/v1/comments").json()["items"] == []


def test_global_chat_round_trip(client: TestClient, auth) -> None:
    user_id, headers = auth

    sent = client.post("/chat/messages", json={"text": "hello room", "display_name": "Ada"}, headers=headers)

    assert sent.status_code == 201
    assert sent.json()["userName"] == "Ada"
    messages = client.get("/chat/messages").json()["items"]
    assert [(item["userId"], item["text"]) for item in messages] == [(user_id, "hello room")]
    assert client.post("/chat/messages", json={"text": "no token"}).status_code == 401


def test_feed_socket_session(client: TestClient, auth) -> None:
    token = auth[1]["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/feed?token={token}") as websocket:
        state = websocket.receive_json()
        assert state["type"] == "state"
        assert state["video"]["id"] == "v1"
        assert state["user_id"] == auth[0]

        websocket.send_json({"type": "advance", "delta": 1})
        assert websocket.receive_json()["index"] == 1

        websocket.send_json({"type": "pointer", "phase": "start", "x": 100, "y": 200})
        websocket.send_json({"type": "pointer", "phase": "end", "x": 100, "y": 400})
        state = websocket.receive_json()
        assert state["index"] == 0
        assert state["video"]["id"] == "v1"

        websocket.send_json({"type": "like"})
        state = websocket.receive_json()
        assert state["viewer_has_liked"] is True
        assert state["stats"]["likes"] == 1

        websocket.send_json({"type": "comment", "text": "from the socket"})
        state = websocket.receive_json()
        assert [comment["text"] for comment in state["comments"]] == ["from the socket"]

        websocket.send_json({"type": "search", "term": "volunteer"})
        state = websocket.receive_json()
        assert state["video"]["id"] == "v3"
        assert state["total"] == 1

        websocket.send_json({"type": "pointer", "phase": "start", "x": 0, "y": 300})
        websocket.send_json({"type": "pointer", "phase": "end", "x": 0, "y": 280})
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

        websocket.send_json({"type": "dance"})
        assert websocket.receive_json()["code"] == "InvalidMessage"


def test_feed_socket_without_token_cannot_like(client: TestClient) -> None:
    with client.websocket_connect("/ws/feed") as websocket:
        assert websocket.receive_json()["user_id"] is None

        websocket.send_json({"type": "like"})
        error = websocket.receive_json()

        assert error == {"type": "error", "code": "NotAuthenticated", "detail": "Please sign in to like videos."}
