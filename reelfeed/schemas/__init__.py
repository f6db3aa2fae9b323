"""Convenience exports for schema layer."""
from .auth import AuthResponse
from .feed import (
    ChatMessage,
    ChatMessageCreate,
    ChatMessageListResponse,
    Comment,
    CommentCreate,
    CommentListResponse,
    EngagementResponse,
    EngagementStats,
    FeedState,
    Video,
    VideoCreate,
    VideoListResponse,
)

__all__ = [
    "AuthResponse",
    "ChatMessage",
    "ChatMessageCreate",
    "ChatMessageListResponse",
    "Comment",
    "CommentCreate",
    "CommentListResponse",
    "EngagementResponse",
    "EngagementStats",
    "FeedState",
    "Video",
    "VideoCreate",
    "VideoListResponse",
]
