from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Optional

from curlcounter.common.config import CurlConfig
from curlcounter.common.events import EventType, RepEvent
from curlcounter.counter.pose_core import Landmark, angle_3pt, smooth_angle, wrist_above_shoulder

logger = logging.getLogger(__name__)

# Offsets around the thresholds (degrees)
CURL_FALLBACK_OFFSET = 10.0     # curl accepted without the wrist check this far below min_curl_angle
ABANDON_OFFSET = 15.0           # past max_extend_angle by this much, an invalid cycle is dropped

REST_ANGLE = 180.0


class LimbState(str, Enum):
    DOWN = "down"
    UP = "up"


@dataclass
class LimbTrackingState:
    smoothing_window: int = 3
    state: LimbState = LimbState.DOWN
    angle_history: Deque[float] = field(default_factory=deque)
    min_angle: float = REST_ANGLE
    max_angle: float = REST_ANGLE
    last_rep_ts: float = 0.0
    has_reached_up: bool = False
    has_reached_down: bool = False
    velocity: float = 0.0
    last_angle: float = REST_ANGLE
    activity_score: float = 0.0

    def __post_init__(self):
        self.angle_history = deque(self.angle_history, maxlen=self.smoothing_window)

    @property
    def range_of_motion(self) -> float:
        return self.max_angle - self.min_angle


def status_label_for(track: LimbTrackingState) -> str:
    """Human label for where a limb is in its curl cycle."""
    if track.state == LimbState.UP:
        return "Curl Up"
    if track.has_reached_up:
        return "Extend"
    return "Ready"


class LimbRepStateMachine:
    """
    Down/Up curl tracker for one arm.

    Feed it one frame at a time through step() (landmarks present) or skip()
    (landmarks missing). A rep is reported when the arm extends past
    max_extend_angle after a validated curl, with enough range of motion and
    the per-limb cooldown elapsed.
    """
    def __init__(self, side: str, cfg: CurlConfig, debug_cb: Optional[Callable[[str], None]] = None):
        self.side = side
        self.cfg = cfg
        self._dbg = debug_cb or (lambda *_: None)
        self.track = LimbTrackingState(smoothing_window=cfg.smoothing_window)
        # smoothed angle of the current frame, None when the limb was skipped
        self.angle: Optional[float] = None

    def reset(self):
        self.track = LimbTrackingState(smoothing_window=self.cfg.smoothing_window)
        self.angle = None

    def _enter_state(self, new_state: LimbState):
        if new_state != self.track.state:
            self.track.state = new_state
            self._dbg(f"{self.side}: state→{new_state.name}")

    def _clear_cycle(self):
        self._enter_state(LimbState.DOWN)
        self.track.has_reached_up = False
        self.track.has_reached_down = False

    def skip(self):
        self.angle = None

    def step(self, shoulder: Landmark, elbow: Landmark, wrist: Landmark, t: float) -> Optional[RepEvent]:
        """Advance one frame. ``t`` is in seconds."""
        tr = self.track
        raw = angle_3pt((shoulder.x, shoulder.y), (elbow.x, elbow.y), (wrist.x, wrist.y))
        ang = smooth_angle(tr.angle_history, raw)
        self.angle = ang

        tr.min_angle = min(tr.min_angle, ang)
        tr.max_angle = max(tr.max_angle, ang)

        if tr.state == LimbState.DOWN:
            if ang < self.cfg.min_curl_angle and (
                wrist_above_shoulder(shoulder, wrist) or ang < self.cfg.min_curl_angle - CURL_FALLBACK_OFFSET
            ):
                tr.has_reached_up = True
                self._enter_state(LimbState.UP)
            return None

        if ang <= self.cfg.max_extend_angle:
            return None

        tr.has_reached_down = True
        rom = tr.range_of_motion
        cooled_down = (t - tr.last_rep_ts) * 1000.0 >= self.cfg.rep_cooldown_ms
        if tr.has_reached_up and rom >= self.cfg.min_range_of_motion and cooled_down:
            event = RepEvent(
                type=EventType.REP,
                side=self.side,
                ts=t,
                rom_deg=rom,
                min_angle=tr.min_angle,
                max_angle=tr.max_angle,
            )
            tr.last_rep_ts = t
            self._clear_cycle()
            tr.min_angle = REST_ANGLE
            tr.max_angle = REST_ANGLE
            self._dbg(f"{self.side}: rep ({rom:.1f}°)")
            return event

        if ang > self.cfg.max_extend_angle + ABANDON_OFFSET:
            logger.debug("%s: abandoning cycle (rom=%.1f, cooled_down=%s)", self.side, rom, cooled_down)
            self._clear_cycle()
            self._dbg(f"{self.side}: abandoned")
        return None
