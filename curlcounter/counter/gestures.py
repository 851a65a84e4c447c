from __future__ import annotations
from typing import Any, Literal, Optional, Sequence

from curlcounter.counter.pose_core import to_landmark

Gesture = Literal["none", "thumbs_up", "peace", "fist", "open"]

# MediaPipe hand numbering
THUMB_IP, THUMB_TIP = 3, 4
INDEX_PIP, INDEX_TIP = 6, 8
MIDDLE_PIP, MIDDLE_TIP = 10, 12
RING_PIP, RING_TIP = 14, 16
PINKY_PIP, PINKY_TIP = 18, 20

HAND_LANDMARK_COUNT = 21


def classify_gesture(hand: Optional[Sequence[Any]]) -> Gesture:
    """Static gesture from 21 hand landmarks; a fingertip 'up' means above its PIP joint."""
    if not hand or len(hand) < HAND_LANDMARK_COUNT:
        return "none"
    pts = [to_landmark(p) for p in hand[:HAND_LANDMARK_COUNT]]
    if any(p is None for p in pts):
        return "none"

    def up(tip: int, joint: int) -> bool:
        return pts[tip].y < pts[joint].y

    def down(tip: int, joint: int) -> bool:
        return pts[tip].y > pts[joint].y

    fingers_down = (
        down(INDEX_TIP, INDEX_PIP) and down(MIDDLE_TIP, MIDDLE_PIP)
        and down(RING_TIP, RING_PIP) and down(PINKY_TIP, PINKY_PIP)
    )

    if up(THUMB_TIP, THUMB_IP) and fingers_down:
        return "thumbs_up"
    if (up(INDEX_TIP, INDEX_PIP) and up(MIDDLE_TIP, MIDDLE_PIP)
            and down(RING_TIP, RING_PIP) and down(PINKY_TIP, PINKY_PIP)):
        return "peace"
    if fingers_down:
        return "fist"
    return "open"
