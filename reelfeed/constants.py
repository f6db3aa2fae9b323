"""Project-wide constant values."""
from __future__ import annotations

SWIPE_THRESHOLD_PX = 50.0

# Document paths shared with the web client.
PUBLIC_DATA_ROOT = "artifacts/{app_id}/public/data"
VIDEOS_COLLECTION = PUBLIC_DATA_ROOT + "/videos"
VIDEO_STATS_COLLECTION = PUBLIC_DATA_ROOT + "/videoStats"
VIDEO_COMMENTS_COLLECTION = PUBLIC_DATA_ROOT + "/videoComments"
CHAT_MESSAGES_COLLECTION = PUBLIC_DATA_ROOT + "/chatMessages"
USER_LIKES_COLLECTION = "artifacts/{app_id}/users/{user_id}/likes"

# Starter reel written when the videos collection is empty, and served as-is
# when no document store is available.
INITIAL_VIDEOS: tuple[dict[str, str], ...] = (
    {
        "id": "v1",
        "src": "https://www.w3schools.com/html/mov_bbb.mp4",
        "title": "ASA Global Initiative",
        "desc": "Connecting the world",
    },
    {
        "id": "v2",
        "src": "https://www.w3schools.com/html/movie.mp4",
        "title": "Future of Digital Learning",
        "desc": "Exploring emerging technologies",
    },
    {
        "id": "v3",
        "src": "https://sample-videos.com/video123/mp4/720/big_buck_bunny_720p_1mb.mp4",
        "title": "Volunteer Spotlight Series",
        "desc": "Making a difference in communities",
    },
)

__all__ = [
    "SWIPE_THRESHOLD_PX",
    "PUBLIC_DATA_ROOT",
    "VIDEOS_COLLECTION",
    "VIDEO_STATS_COLLECTION",
    "VIDEO_COMMENTS_COLLECTION",
    "CHAT_MESSAGES_COLLECTION",
    "USER_LIKES_COLLECTION",
    "INITIAL_VIDEOS",
]
