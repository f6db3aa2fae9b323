"""Current-position state for the vertical video reel."""
from __future__ import annotations

from typing import Iterable

from ..schemas import Video


class FeedNavigator:
    """Ordered videos, a search filter and an index into the filtered view.

    The index is always valid for the filtered view, and ``current_video``
    returns ``None`` only when nothing matches. None of the operations raise.
    """

    def __init__(self, videos: Iterable[Video] = ()) -> None:
        self._videos: tuple[Video, ...] = tuple(videos)
        self._search_term = ""
        self._filtered: tuple[Video, ...] = self._videos
        self._index = 0

    @property
    def videos(self) -> tuple[Video, ...]:
        return self._videos

    @property
    def filtered_videos(self) -> tuple[Video, ...]:
        return self._filtered

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def current_index(self) -> int:
        return self._index

    def set_videos(self, videos: Iterable[Video]) -> None:
        """Replace the whole list, keeping the displayed video when it survives."""

        displayed = self.current_video()
        self._videos = tuple(videos)
        self._refilter()
        self._index = self._position_of(displayed.id) if displayed is not None else 0

    def set_search(self, term: str) -> None:
        """Filter by ``term``; a changed term starts again from the first match."""

        term = term or ""
        if term == self._search_term:
            return
        self._search_term = term
        self._refilter()
        self._index = 0

    def current_video(self) -> Video | None:
        if not self._filtered:
            return None
        return self._filtered[self._index % len(self._filtered)]

    def advance(self, delta: int) -> None:
        count = len(self._filtered)
        if count == 0:
            return
        self._index = (self._index + delta) % count

    def jump_to(self, video_id: str) -> bool:
        for position, video in enumerate(self._filtered):
            if video.id == video_id:
                self._index = position
                return True
        return False

    def _refilter(self) -> None:
        needle = self._search_term.strip().lower()
        self._filtered = tuple(video for video in self._videos if video.matches(needle))

    def _position_of(self, video_id: str) -> int:
        for position, video in enumerate(self._filtered):
            if video.id == video_id:
                return position
        return 0


__all__ = ["FeedNavigator"]
