from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Tuple

ActiveLimb = Literal["none", "right", "left", "both"]


class EventType(str, Enum):
    SESSION_STARTED = "session_started"
    SESSION_STOPPED = "session_stopped"
    SESSION_RESET = "reset"
    REP = "rep"
    FRAME = "frame"
    GESTURE = "gesture"
    TRACE = "trace"


@dataclass
class RepEvent:
    type: EventType
    side: str
    ts: float
    rom_deg: float
    min_angle: float
    max_angle: float


@dataclass
class FrameResult:
    display_angle: Optional[float]
    status_label: str
    rep_completed: bool
    active_limb: ActiveLimb
    right_angle: Optional[float] = None
    left_angle: Optional[float] = None
    completed_limbs: Tuple[str, ...] = field(default_factory=tuple)

    def to_message(self) -> dict:
        return {
            "type": EventType.FRAME.value,
            "display_angle": None if self.display_angle is None else round(self.display_angle, 1),
            "status_label": self.status_label,
            "rep_completed": self.rep_completed,
            "active_limb": self.active_limb,
            "right_angle": None if self.right_angle is None else round(self.right_angle, 1),
            "left_angle": None if self.left_angle is None else round(self.left_angle, 1),
            "completed_limbs": list(self.completed_limbs),
        }
