from __future__ import annotations
from typing import Optional

from curlcounter.common.config import CurlConfig
from curlcounter.common.events import ActiveLimb
from curlcounter.counter.pipeline import LimbState, LimbTrackingState
from curlcounter.counter.pose_core import Landmark

# Weights of the per-frame activity signal
VELOCITY_WEIGHT = 0.4
RANGE_WEIGHT = 0.3
CONFIDENCE_WEIGHT = 10.0
# Exponential smoothing of the score (~5 frame time constant)
SCORE_ALPHA = 0.2
# Per-frame decay while a limb is untracked
MISSING_DECAY = 0.85
# Minimum velocity (deg/frame) for a resting limb to count as active
REST_VELOCITY = 1.0


def update_activity(track: LimbTrackingState, angle: Optional[float],
                    shoulder: Optional[Landmark] = None,
                    elbow: Optional[Landmark] = None,
                    wrist: Optional[Landmark] = None) -> float:
    """Fold one frame into the limb's activity score and return it.

    With ``angle`` None the limb was not tracked this frame and the score just
    decays. Detection confidence is the product of the three joint
    visibilities, so a single occluded joint suppresses the whole signal;
    at zero confidence the score decays like a missing limb while velocity
    and last_angle keep following the arm.
    """
    if angle is None or shoulder is None or elbow is None or wrist is None:
        track.activity_score *= MISSING_DECAY
        return track.activity_score

    velocity = abs(angle - track.last_angle)
    confidence = shoulder.visibility * elbow.visibility * wrist.visibility
    track.velocity = velocity
    track.last_angle = angle
    if confidence <= 0.0:
        track.activity_score *= MISSING_DECAY
        return track.activity_score

    raw = velocity * VELOCITY_WEIGHT + track.range_of_motion * RANGE_WEIGHT + confidence * CONFIDENCE_WEIGHT
    track.activity_score = raw * SCORE_ALPHA + track.activity_score * (1 - SCORE_ALPHA)
    return track.activity_score


def is_active(track: LimbTrackingState, cfg: CurlConfig) -> bool:
    # mid-cycle, or moving fast enough even at rest
    return track.activity_score > cfg.activity_threshold and (
        track.state != LimbState.DOWN or track.velocity > REST_VELOCITY
    )


def arbitrate(right: LimbTrackingState, left: LimbTrackingState, cfg: CurlConfig) -> ActiveLimb:
    right_active = is_active(right, cfg)
    left_active = is_active(left, cfg)
    if right_active and left_active:
        if abs(right.activity_score - left.activity_score) > cfg.both_active_margin:
            return "right" if right.activity_score > left.activity_score else "left"
        return "both"
    if right_active:
        return "right"
    if left_active:
        return "left"
    return "none"
