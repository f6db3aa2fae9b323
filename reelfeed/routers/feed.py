"""Reel listing, likes and comments."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import get_settings
from ..schemas import (
    Comment,
    CommentCreate,
    CommentListResponse,
    EngagementResponse,
    EngagementStats,
    Video,
    VideoCreate,
    VideoListResponse,
)
from ..services import (
    DocumentStore,
    EngagementError,
    EngagementLedger,
    FeedPaths,
    LocalIdentityProvider,
    StoreError,
    get_current_user_id,
    get_document_store,
    get_optional_user_id,
    get_pending_likes,
    http_error,
    list_videos,
    submit_video,
)
from ..services.engagement_ledger import PendingLikes, sort_key_oldest_first

router = APIRouter(prefix="/feed", tags=["feed"])


def _paths() -> FeedPaths:
    return FeedPaths(get_settings().app_id)


def _require_store(store: DocumentStore | None) -> DocumentStore:
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Data storage is disabled.")
    return store


def _validated_video_id(video_id: str) -> str:
    try:
        _paths().video(video_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return video_id.strip()


async def _engagement(store: DocumentStore, video_id: str, viewer_id: str | None) -> EngagementResponse:
    paths = _paths()
    try:
        stats_doc = await store.get_document(paths.video_stats(video_id))
        liked = False
        if viewer_id is not None:
            like_doc = await store.get_document(paths.user_like(viewer_id, video_id))
            liked = like_doc.exists() and like_doc.data().get("active", True) is not False
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load stats") from exc

    stats = EngagementStats.from_snapshot(stats_doc)
    return EngagementResponse(
        video_id=video_id,
        like_count=stats.like_count,
        comment_count=stats.comment_count,
        viewer_has_liked=liked,
    )


@router.get("/videos", response_model=VideoListResponse)
async def list_videos_endpoint(
    q: str | None = None,
    store: DocumentStore | None = Depends(get_document_store),
) -> VideoListResponse:
    videos = await list_videos(store, get_settings().app_id)
    needle = (q or "").strip().lower()
    return VideoListResponse(items=[video for video in videos if video.matches(needle)])


@router.post("/videos", response_model=Video, status_code=status.HTTP_201_CREATED)
async def submit_video_endpoint(
    payload: VideoCreate,
    store: DocumentStore | None = Depends(get_document_store),
    user_id: str = Depends(get_current_user_id),
) -> Video:
    app_id = get_settings().app_id
    try:
        video_id = await submit_video(
            store,
            LocalIdentityProvider(user_id),
            app_id=app_id,
            title=payload.title,
            description=payload.description,
            media_ref=payload.media_ref,
            category=payload.category,
        )
        snapshot = await _require_store(store).get_document(_paths().video(video_id))
    except EngagementError as exc:
        raise http_error(exc) from exc
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load video") from exc
    return Video.from_snapshot(snapshot)


@router.get("/videos/{video_id}/stats", response_model=EngagementResponse)
async def video_stats_endpoint(
    video_id: str,
    store: DocumentStore | None = Depends(get_document_store),
    viewer_id: str | None = Depends(get_optional_user_id),
) -> EngagementResponse:
    video_id = _validated_video_id(video_id)
    return await _engagement(_require_store(store), video_id, viewer_id)


@router.post("/videos/{video_id}/like", response_model=EngagementResponse)
async def toggle_like_endpoint(
    video_id: str,
    store: DocumentStore | None = Depends(get_document_store),
    user_id: str = Depends(get_current_user_id),
    pending_likes: PendingLikes = Depends(get_pending_likes),
) -> EngagementResponse:
    video_id = _validated_video_id(video_id)
    ledger = EngagementLedger(
        store,
        LocalIdentityProvider(user_id),
        app_id=get_settings().app_id,
        pending_likes=pending_likes,
    )
    try:
        await ledger.toggle_like(video_id)
    except EngagementError as exc:
        raise http_error(exc) from exc
    return await _engagement(_require_store(store), video_id, user_id)


@router.get("/videos/{video_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    video_id: str,
    store: DocumentStore | None = Depends(get_document_store),
) -> CommentListResponse:
    video_id = _validated_video_id(video_id)
    store = _require_store(store)
    try:
        documents = await store.list_documents(_paths().comments)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load comments") from exc

    comments = [Comment.from_snapshot(doc) for doc in documents if doc.data().get("videoId") == video_id]
    comments.sort(key=sort_key_oldest_first)
    return CommentListResponse(items=comments)


@router.post("/videos/{video_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    video_id: str,
    payload: CommentCreate,
    store: DocumentStore | None = Depends(get_document_store),
    user_id: str = Depends(get_current_user_id),
) -> Comment:
    video_id = _validated_video_id(video_id)
    ledger = EngagementLedger(store, LocalIdentityProvider(user_id), app_id=get_settings().app_id)
    try:
        return await ledger.add_comment(video_id, user_id, payload.text)
    except EngagementError as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
