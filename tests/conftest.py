import math

import pytest

from curlcounter.common.config import CurlConfig
from curlcounter.counter.pose_core import (
    LEFT_ELBOW, LEFT_SHOULDER, LEFT_WRIST, RIGHT_ELBOW, RIGHT_SHOULDER, RIGHT_WRIST, Landmark,
)

FPS = 30.0
T0 = 1_000.0  # seconds; well past the initial last_rep_ts of 0

UPPER_ARM = 0.2
SHORT_FOREARM = 0.2   # wrist stays below the shoulder for any angle
LONG_FOREARM = 0.4    # wrist rises above the shoulder once the angle is small enough


def arm(angle_deg, elbow_x=0.5, forearm=SHORT_FOREARM, visibility=1.0):
    """(shoulder, elbow, wrist) whose elbow angle is ``angle_deg``; shoulder straight above the elbow."""
    elbow = Landmark(elbow_x, 0.5, visibility)
    shoulder = Landmark(elbow_x, 0.5 - UPPER_ARM, visibility)
    th = math.radians(angle_deg)
    wrist = Landmark(elbow_x + forearm * math.sin(th), 0.5 - forearm * math.cos(th), visibility)
    return shoulder, elbow, wrist


def frame(right=None, left=None, **kw):
    """33-slot pose landmark list with the requested arm angles filled in."""
    lms = [None] * 33
    if right is not None:
        s, e, w = arm(right, elbow_x=0.35, **kw)
        lms[RIGHT_SHOULDER], lms[RIGHT_ELBOW], lms[RIGHT_WRIST] = s, e, w
    if left is not None:
        s, e, w = arm(left, elbow_x=0.65, **kw)
        lms[LEFT_SHOULDER], lms[LEFT_ELBOW], lms[LEFT_WRIST] = s, e, w
    return lms


class FakeTTS:
    def __init__(self):
        self.spoken = []
        self.stopped = False

    def speak_count(self, count):
        self.spoken.append(count)

    def shutdown(self):
        self.stopped = True


class Clock:
    def __init__(self, start=T0, fps=FPS):
        self.t = start
        self.dt = 1.0 / fps

    def tick(self):
        self.t += self.dt
        return self.t


@pytest.fixture
def cfg():
    return CurlConfig()


@pytest.fixture
def clock():
    return Clock()


def hand(gesture):
    """21 hand landmarks shaped into a static gesture; fingertips 'up' sit above their PIP joints."""
    pts = [[0.5, 0.8] for _ in range(21)]
    up = {
        "thumbs_up": {"thumb"},
        "peace": {"index", "middle"},
        "fist": set(),
        "open": {"thumb", "index", "middle", "ring", "pinky"},
    }[gesture]
    joints = {"thumb": (3, 4), "index": (6, 8), "middle": (10, 12), "ring": (14, 16), "pinky": (18, 20)}
    for name, (joint, tip) in joints.items():
        pts[joint] = [0.5, 0.6]
        pts[tip] = [0.5, 0.4] if name in up else [0.5, 0.7]
    return [{"x": x, "y": y} for x, y in pts]
