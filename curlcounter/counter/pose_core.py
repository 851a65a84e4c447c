from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Deque, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# MediaPipe pose numbering (only the arm joints are read)
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14
LEFT_WRIST = 15
RIGHT_WRIST = 16

ARM_JOINTS = {
    "right": (RIGHT_SHOULDER, RIGHT_ELBOW, RIGHT_WRIST),
    "left": (LEFT_SHOULDER, LEFT_ELBOW, LEFT_WRIST),
}


@dataclass(frozen=True)
class Landmark:
    """Normalized image point; y grows downward, visibility is in [0, 1].

    Detectors that do not report visibility are taken at full confidence.
    """
    x: float
    y: float
    visibility: float = 1.0
    z: float = 0.0

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.visibility))


def _opt_float(value: Any, default: float) -> float:
    return default if value is None else float(value)


def _coerce(raw: Any) -> Optional[Landmark]:
    if isinstance(raw, dict):
        if raw.get("x") is None or raw.get("y") is None:
            return None
        return Landmark(float(raw["x"]), float(raw["y"]),
                        _opt_float(raw.get("visibility"), 1.0), _opt_float(raw.get("z"), 0.0))
    if isinstance(raw, (tuple, list)):
        if len(raw) < 2:
            return None
        vis = _opt_float(raw[2], 1.0) if len(raw) > 2 else 1.0
        return Landmark(float(raw[0]), float(raw[1]), vis)
    return Landmark(float(raw.x), float(raw.y), _opt_float(getattr(raw, "visibility", None), 1.0),
                    _opt_float(getattr(raw, "z", None), 0.0))


def to_landmark(raw: Any) -> Optional[Landmark]:
    """Coerce a dict, (x, y[, visibility]) tuple or attribute object into a Landmark.

    Anything that does not carry numeric coordinates yields None.
    """
    if raw is None:
        return None
    if isinstance(raw, Landmark):
        return raw
    try:
        return _coerce(raw)
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug("unusable landmark %r: %s", raw, e)
        return None


def arm_landmarks(landmarks: Sequence[Any], side: str) -> Optional[Tuple[Landmark, Landmark, Landmark]]:
    """Return (shoulder, elbow, wrist) for one side.

    None if any joint is absent or non-finite; the caller treats the arm as
    untracked for the frame. Zero visibility still counts as present.
    """
    points = []
    for idx in ARM_JOINTS[side]:
        if idx >= len(landmarks):
            return None
        lm = to_landmark(landmarks[idx])
        if lm is None or not lm.is_finite():
            return None
        points.append(lm)
    return points[0], points[1], points[2]


# Utility math

def angle_3pt(a: Tuple[float, float], b: Tuple[float, float], c: Tuple[float, float]) -> float:
    """Return angle ABC in degrees with B as vertex."""
    ang = math.degrees(
        math.atan2(c[1] - b[1], c[0] - b[0]) - math.atan2(a[1] - b[1], a[0] - b[0])
    )
    ang = abs(ang)
    if ang > 180:
        ang = 360 - ang
    return ang


def smooth_angle(history: Deque[float], new_angle: float) -> float:
    """Append a raw sample and return the recency-weighted mean (weight i+1, oldest first).

    ``history`` is expected to be bounded (``deque(maxlen=window)``) so the
    oldest sample drops out on overflow.
    """
    history.append(new_angle)
    if len(history) == 1:
        return new_angle
    weights = np.arange(1, len(history) + 1, dtype=float)
    return float(np.average(np.fromiter(history, dtype=float), weights=weights))


def wrist_above_shoulder(shoulder: Landmark, wrist: Landmark) -> bool:
    # image y decreases upward
    return wrist.y < shoulder.y
