"""Document paths for one app id."""
from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    CHAT_MESSAGES_COLLECTION,
    USER_LIKES_COLLECTION,
    VIDEO_COMMENTS_COLLECTION,
    VIDEO_STATS_COLLECTION,
    VIDEOS_COLLECTION,
)


def _segment(value: str, name: str) -> str:
    candidate = (value or "").strip()
    if not candidate or "/" in candidate:
        raise ValueError(f"{name} must be a non-empty id without '/'")
    return candidate


@dataclass(frozen=True)
class FeedPaths:
    app_id: str

    @property
    def videos(self) -> str:
        return VIDEOS_COLLECTION.format(app_id=self.app_id)

    @property
    def stats(self) -> str:
        return VIDEO_STATS_COLLECTION.format(app_id=self.app_id)

    @property
    def comments(self) -> str:
        return VIDEO_COMMENTS_COLLECTION.format(app_id=self.app_id)

    @property
    def chat(self) -> str:
        return CHAT_MESSAGES_COLLECTION.format(app_id=self.app_id)

    def user_likes(self, user_id: str) -> str:
        return USER_LIKES_COLLECTION.format(app_id=self.app_id, user_id=_segment(user_id, "user_id"))

    def video(self, video_id: str) -> str:
        return f"{self.videos}/{_segment(video_id, 'video_id')}"

    def video_stats(self, video_id: str) -> str:
        return f"{self.stats}/{_segment(video_id, 'video_id')}"

    def user_like(self, user_id: str, video_id: str) -> str:
        return f"{self.user_likes(user_id)}/{_segment(video_id, 'video_id')}"


__all__ = ["FeedPaths"]
