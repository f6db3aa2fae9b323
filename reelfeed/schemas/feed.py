"""Records read from the document store plus the feed API payloads."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from ..services.document_store import DocumentSnapshot


class _StoredRecord(BaseModel):
    """Base for records whose stored field names differ from attribute names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @classmethod
    def from_snapshot(cls, snapshot: "DocumentSnapshot") -> Any:
        return cls.model_validate({**snapshot.data(), "id": snapshot.id})


class Video(_StoredRecord):
    """Single entry of the vertical reel."""

    id: str
    title: str = ""
    description: str = Field(default="", alias="desc")
    media_ref: str = Field(default="", alias="src")
    category: str | None = None
    created_at: datetime | None = Field(default=None, alias="timestamp")

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title, description and category."""

        if not needle:
            return True
        haystacks = (self.title, self.description, self.category or "")
        return any(needle in value.lower() for value in haystacks)


class EngagementStats(_StoredRecord):
    video_id: str = Field(default="", alias="id")
    like_count: int = Field(default=0, alias="likes")
    comment_count: int = Field(default=0, alias="comments")

    @field_validator("like_count", "comment_count", mode="before")
    @classmethod
    def _clamp_count(cls, value: Any) -> int:
        try:
            return max(0, int(value or 0))
        except (TypeError, ValueError):
            return 0


class Comment(_StoredRecord):
    id: str
    video_id: str = Field(..., alias="videoId")
    author_id: str = Field(..., alias="userId")
    text: str
    created_at: datetime | None = Field(default=None, alias="timestamp")


class ChatMessage(_StoredRecord):
    id: str
    author_id: str = Field(..., alias="userId")
    author_name: str | None = Field(default=None, alias="userName")
    author_photo: str | None = Field(default=None, alias="userPhoto")
    text: str
    created_at: datetime | None = Field(default=None, alias="timestamp")


class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    media_ref: str = Field(..., min_length=1, max_length=2048)
    category: str | None = Field(default=None, max_length=64)


class VideoListResponse(BaseModel):
    items: list[Video]


class EngagementResponse(BaseModel):
    video_id: str
    like_count: int
    comment_count: int
    viewer_has_liked: bool = False


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class CommentListResponse(BaseModel):
    items: list[Comment]


class ChatMessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)
    display_name: str | None = Field(default=None, max_length=64)
    photo_url: str | None = Field(default=None, max_length=2048)


class ChatMessageListResponse(BaseModel):
    items: list[ChatMessage]


class FeedState(BaseModel):
    """Everything a client needs to render the current reel position."""

    video: Video | None = None
    stats: EngagementStats | None = None
    viewer_has_liked: bool = False
    comments: list[Comment] = Field(default_factory=list)
    search_term: str = ""
    index: int = 0
    total: int = 0


__all__ = [
    "Video",
    "EngagementStats",
    "Comment",
    "ChatMessage",
    "VideoCreate",
    "VideoListResponse",
    "EngagementResponse",
    "CommentCreate",
    "CommentListResponse",
    "ChatMessageCreate",
    "ChatMessageListResponse",
    "FeedState",
]
