"""Tests for the catalog, video helpers and the per-viewer session."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from reelfeed.config import Settings
from reelfeed.services import (
    FeedPaths,
    FeedSession,
    InMemoryDocumentStore,
    LocalIdentityProvider,
    NotAuthenticated,
    list_videos,
    seed_initial_videos,
    submit_video,
)

APP_ID = "test-app"
PATHS = FeedPaths(APP_ID)


@pytest.mark.asyncio
async def test_seeding_writes_starter_reel_once(store: InMemoryDocumentStore) -> None:
    assert await seed_initial_videos(store, APP_ID) == 3
    assert await seed_initial_videos(store, APP_ID) == 0

    videos = await list_videos(store, APP_ID)
    assert [video.id for video in videos] == ["v1", "v2", "v3"]
    assert videos[0].title == "ASA Global Initiative"
    assert videos[0].media_ref.endswith("mov_bbb.mp4")


@pytest.mark.asyncio
async def test_list_videos_newest_first_with_undated_last(store: InMemoryDocumentStore) -> None:
    await store.set_document(PATHS.video("old"), {"title": "Old", "timestamp": datetime(2023, 1, 1, tzinfo=timezone.utc)})
    await store.set_document(PATHS.video("new"), {"title": "New", "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc)})
    await store.set_document(PATHS.video("draft"), {"title": "Draft"})

    assert [video.id for video in await list_videos(store, APP_ID)] == ["new", "old", "draft"]


@pytest.mark.asyncio
async def test_list_videos_without_store_serves_starter_reel() -> None:
    assert [video.id for video in await list_videos(None, APP_ID)] == ["v1", "v2", "v3"]


@pytest.mark.asyncio
async def test_submit_video_requires_sign_in(store: InMemoryDocumentStore) -> None:
    with pytest.raises(NotAuthenticated):
        await submit_video(store, LocalIdentityProvider(), app_id=APP_ID, title="Mine", media_ref="https://v/1.mp4")

    video_id = await submit_video(
        store,
        LocalIdentityProvider("alice"),
        app_id=APP_ID,
        title=" Mine ",
        description="My first reel",
        media_ref="https://v/1.mp4",
        category="Travel",
    )

    stored = (await store.get_document(PATHS.video(video_id))).data()
    assert stored["title"] == "Mine"
    assert stored["desc"] == "My first reel"
    assert stored["src"] == "https://v/1.mp4"
    assert stored["uploaderId"] == "alice"


@pytest.mark.asyncio
async def test_session_seeds_empty_store_and_keeps_first_video(store: InMemoryDocumentStore, identity) -> None:
    session = FeedSession(store, identity, app_id=APP_ID)
    await session.start()

    for _ in range(100):
        if session.snapshot().video.created_at is not None:
            break
        await asyncio.sleep(0)

    state = session.snapshot()
    assert state.video.id == "v1"
    assert state.video.created_at is not None
    assert state.index == 0
    assert len(await store.list_documents(PATHS.videos)) == 3
    await session.close()


@pytest.mark.asyncio
async def test_swipe_moves_session_to_next_video(store: InMemoryDocumentStore, identity) -> None:
    await seed_initial_videos(store, APP_ID)
    session = FeedSession(store, identity, app_id=APP_ID)
    await session.start()

    session.gesture.start(200, 600)
    session.gesture.end(200, 400)
    assert session.snapshot().video.id == "v2"

    session.gesture.start(200, 400)
    session.gesture.end(200, 600)
    assert session.snapshot().index == 0
    await session.close()


@pytest.mark.asyncio
async def test_like_and_comment_target_current_video(store: InMemoryDocumentStore, identity) -> None:
    await seed_initial_videos(store, APP_ID)
    changes: list[int] = []
    session = FeedSession(store, identity, app_id=APP_ID, on_change=lambda: changes.append(1))
    await session.start()
    session.navigator.advance(1)

    assert await session.toggle_like() is True
    await session.add_comment("Great one")

    state = session.snapshot()
    assert state.video.id == "v2"
    assert state.viewer_has_liked is True
    assert state.stats.like_count == 1
    assert state.stats.comment_count == 1
    assert [comment.text for comment in state.comments] == ["Great one"]
    assert changes
    await session.close()


@pytest.mark.asyncio
async def test_search_without_matches_has_no_current_video(store: InMemoryDocumentStore, identity) -> None:
    session = FeedSession(store, identity, app_id=APP_ID, seed_initial=False)
    await session.start()

    session.navigator.set_search("no such reel")

    assert session.snapshot().video is None
    assert await session.toggle_like() is None
    assert await session.add_comment("hello") is None
    await session.close()


@pytest.mark.asyncio
async def test_demo_mode_serves_starter_reel(identity) -> None:
    session = FeedSession(None, identity, app_id=APP_ID)
    await session.start()

    state = session.snapshot()
    assert state.video.id == "v1"
    assert state.total == 3
    assert state.stats.like_count == 0
    await session.close()


def test_session_from_settings_uses_configured_threshold(identity) -> None:
    settings = Settings(REELFEED_APP_ID="configured", SWIPE_THRESHOLD_PX=120, CHAT_HISTORY_LIMIT=7)

    session = FeedSession.from_settings(InMemoryDocumentStore(), identity, settings)

    assert session.gesture.threshold == 120
    assert session.chat.limit == 7
    assert session.paths == FeedPaths("configured")
