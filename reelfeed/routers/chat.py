"""Global chat routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import get_settings
from ..schemas import ChatMessage, ChatMessageCreate, ChatMessageListResponse
from ..services import (
    DocumentStore,
    EngagementError,
    FeedPaths,
    GlobalChat,
    LocalIdentityProvider,
    StoreError,
    get_current_user_id,
    get_document_store,
    http_error,
)
from ..services.engagement_ledger import sort_key_oldest_first

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/messages", response_model=ChatMessageListResponse)
async def list_messages_endpoint(
    limit: int | None = None,
    store: DocumentStore | None = Depends(get_document_store),
) -> ChatMessageListResponse:
    if store is None:
        return ChatMessageListResponse(items=[])
    settings = get_settings()
    try:
        documents = await store.list_documents(FeedPaths(settings.app_id).chat)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load chat") from exc

    messages = sorted((ChatMessage.from_snapshot(doc) for doc in documents), key=sort_key_oldest_first)
    clamped = max(1, min(limit or settings.chat_history_limit, settings.chat_history_limit))
    return ChatMessageListResponse(items=messages[-clamped:])


@router.post("/messages", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    payload: ChatMessageCreate,
    store: DocumentStore | None = Depends(get_document_store),
    user_id: str = Depends(get_current_user_id),
) -> ChatMessage:
    app_id = get_settings().app_id
    chat = GlobalChat(store, LocalIdentityProvider(user_id), app_id=app_id)
    try:
        message_id = await chat.send_message(
            payload.text,
            display_name=payload.display_name,
            photo_url=payload.photo_url,
        )
    except EngagementError as exc:
        raise http_error(exc) from exc

    try:
        snapshot = await store.get_document(f"{FeedPaths(app_id).chat}/{message_id}")
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load message") from exc
    return ChatMessage.from_snapshot(snapshot)


__all__ = ["router"]
