"""Tests for the swipe recognizer."""
from __future__ import annotations

from reelfeed.services import GestureRecognizer, GestureState, SwipeDirection


def _stroke(recognizer: GestureRecognizer, start: tuple[float, float], end: tuple[float, float]):
    recognizer.start(*start)
    recognizer.move(*end)
    return recognizer.end(*end)


def test_short_upward_stroke_is_ignored() -> None:
    recognizer = GestureRecognizer()

    assert _stroke(recognizer, (100, 300), (100, 251)) is None
    assert recognizer.state is GestureState.IDLE


def test_upward_swipe_past_threshold_means_next() -> None:
    recognizer = GestureRecognizer()

    assert _stroke(recognizer, (100, 300), (100, 249)) is SwipeDirection.NEXT


def test_downward_swipe_means_previous() -> None:
    recognizer = GestureRecognizer()

    assert _stroke(recognizer, (100, 200), (105, 320)) is SwipeDirection.PREVIOUS


def test_travel_equal_to_threshold_is_not_a_swipe() -> None:
    recognizer = GestureRecognizer(threshold=50)

    assert _stroke(recognizer, (0, 100), (0, 50)) is None


def test_mostly_horizontal_stroke_is_ignored() -> None:
    recognizer = GestureRecognizer()

    assert _stroke(recognizer, (0, 300), (200, 200)) is None


def test_end_without_coordinates_uses_last_move() -> None:
    recognizer = GestureRecognizer()
    recognizer.start(50, 400)
    recognizer.move(50, 350)
    recognizer.move(52, 200)

    assert recognizer.end() is SwipeDirection.NEXT


def test_cancel_discards_the_stroke() -> None:
    calls: list[int] = []
    recognizer = GestureRecognizer(on_navigate=calls.append)
    recognizer.start(0, 400)
    recognizer.move(0, 100)

    recognizer.cancel()

    assert recognizer.end(0, 100) is None
    assert calls == []


def test_restart_while_tracking_replaces_origin() -> None:
    recognizer = GestureRecognizer()
    recognizer.start(0, 400)
    recognizer.start(0, 120)

    assert recognizer.end(0, 100) is None


def test_move_outside_a_stroke_is_not_consumed() -> None:
    recognizer = GestureRecognizer()

    assert recognizer.move(10, 10) is False
    recognizer.start(0, 0)
    assert recognizer.move(0, 5) is True


def test_navigation_callback_fires_once_per_stroke() -> None:
    calls: list[int] = []
    recognizer = GestureRecognizer(on_navigate=calls.append)

    _stroke(recognizer, (0, 400), (0, 100))
    assert recognizer.end(0, 100) is None
    _stroke(recognizer, (0, 100), (0, 400))

    assert calls == [1, -1]


def test_custom_threshold() -> None:
    recognizer = GestureRecognizer(threshold=10)

    assert _stroke(recognizer, (0, 100), (0, 89)) is SwipeDirection.NEXT
