# curlcounter/counter/web_pipeline.py
from __future__ import annotations
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from curlcounter.common.config import CurlConfig
from curlcounter.common.events import ActiveLimb, FrameResult, RepEvent
from curlcounter.counter.activity import arbitrate, update_activity
from curlcounter.counter.pipeline import LimbRepStateMachine, status_label_for
from curlcounter.counter.pose_core import arm_landmarks

logger = logging.getLogger(__name__)

NO_DETECTION = "No Detection"
SIDES = ("right", "left")


class LandmarkFramePipeline:
    """
    Per-frame orchestrator fed with pose landmarks computed in the browser.
    No camera, no threads. Just call process(landmarks, ts) once per frame.
    """
    def __init__(self, cfg: Optional[CurlConfig] = None, debug_cb: Optional[Callable[[str], None]] = None):
        self.cfg = cfg or CurlConfig()
        self.debug_cb = debug_cb
        self.limbs = {side: LimbRepStateMachine(side, self.cfg, debug_cb=debug_cb) for side in SIDES}
        self.active_limb: ActiveLimb = "none"
        self.last_events: List[RepEvent] = []

    @property
    def right(self) -> LimbRepStateMachine:
        return self.limbs["right"]

    @property
    def left(self) -> LimbRepStateMachine:
        return self.limbs["left"]

    def reset(self):
        for limb in self.limbs.values():
            limb.reset()
        self.active_limb = "none"
        self.last_events = []

    def process(self, landmarks: Optional[Sequence[Any]], ts: Optional[float] = None) -> FrameResult:
        """Run one frame (ts in seconds) through both limbs and arbitrate."""
        t = float(ts) if ts is not None else time.time()
        landmarks = landmarks or []

        arms = {side: arm_landmarks(landmarks, side) for side in SIDES}
        events: List[RepEvent] = []
        for side in SIDES:
            limb, arm = self.limbs[side], arms[side]
            if arm is None:
                limb.skip()
                continue
            ev = limb.step(*arm, t)
            if ev is not None:
                events.append(ev)

        for side in SIDES:
            limb, arm = self.limbs[side], arms[side]
            if arm is None:
                update_activity(limb.track, None)
            else:
                update_activity(limb.track, limb.angle, *arm)

        self.active_limb = arbitrate(self.right.track, self.left.track, self.cfg)
        self.last_events = events
        for ev in events:
            logger.info("rep on %s arm (rom=%.1f°)", ev.side, ev.rom_deg)

        preferred = self.right if self.right.angle is not None else self.left
        if preferred.angle is None:
            # nothing tracked: no limb is highlighted regardless of lingering scores
            self.active_limb = "none"
            status = NO_DETECTION
        else:
            status = status_label_for(preferred.track)

        return FrameResult(
            display_angle=preferred.angle,
            status_label=status,
            rep_completed=bool(events),
            active_limb=self.active_limb,
            right_angle=self.right.angle,
            left_angle=self.left.angle,
            completed_limbs=tuple(ev.side for ev in events),
        )
