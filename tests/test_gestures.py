import pytest

from conftest import hand
from curlcounter.counter.gestures import classify_gesture


@pytest.mark.parametrize("gesture", ["thumbs_up", "peace", "fist", "open"])
def test_classify_static_gestures(gesture):
    assert classify_gesture(hand(gesture)) == gesture


def test_too_few_landmarks_is_none():
    assert classify_gesture(hand("peace")[:20]) == "none"
    assert classify_gesture(None) == "none"
    assert classify_gesture([]) == "none"


def test_missing_point_is_none():
    pts = hand("fist")
    pts[8] = None
    assert classify_gesture(pts) == "none"
