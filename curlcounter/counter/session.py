from __future__ import annotations
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from curlcounter.audio.tts import TTSEngine
from curlcounter.common.config import CurlConfig
from curlcounter.common.events import ActiveLimb, EventType, FrameResult
from curlcounter.counter.gestures import Gesture, classify_gesture
from curlcounter.counter.web_pipeline import LandmarkFramePipeline

logger = logging.getLogger(__name__)


@dataclass
class SessionStatus:
    session_id: str
    state: str
    count: int
    active_limb: ActiveLimb
    voice_enabled: bool


class RepSessionManager:
    def __init__(self, cfg: Optional[CurlConfig] = None, voice_enabled: bool = False,
                 tts: Optional[TTSEngine] = None):
        self.cfg = cfg or CurlConfig()
        self.session_id: str = str(uuid.uuid4())
        self.pipeline = LandmarkFramePipeline(self.cfg, debug_cb=self._emit_debug)
        self.count = 0
        self.counting = False
        self.voice_enabled = voice_enabled
        self._tts = tts
        self._event_sink: Optional[Callable[[dict], None]] = None

    def set_event_sink(self, sink: Optional[Callable[[dict], None]]):
        self._event_sink = sink

    @property
    def tts(self) -> TTSEngine:
        if self._tts is None:
            self._tts = TTSEngine()
        return self._tts

    def _emit(self, payload: dict):
        if self._event_sink is None:
            return
        try:
            self._event_sink(payload)
        except Exception:
            # a broken listener must not stop frame processing
            logger.exception("event sink failed for %s", payload.get("type"))

    def _emit_debug(self, msg: str):
        self._emit({"type": EventType.TRACE.value, "msg": msg})

    def start(self) -> str:
        if not self.counting:
            self.counting = True
            logger.info("session %s: counting started", self.session_id)
            self._emit({"type": EventType.SESSION_STARTED.value, "session_id": self.session_id})
        return self.session_id

    def stop(self) -> int:
        if self.counting:
            self.counting = False
            logger.info("session %s: counting stopped at %d reps", self.session_id, self.count)
            self._emit({"type": EventType.SESSION_STOPPED.value, "session_id": self.session_id,
                        "count": self.count})
        return self.count

    def reset(self):
        """Zero the rep counter and return both arms to their initial tracking state."""
        self.count = 0
        self.pipeline.reset()
        logger.info("session %s: reset", self.session_id)
        self._emit({"type": EventType.SESSION_RESET.value, "count": 0})

    def set_voice(self, enabled: bool) -> bool:
        self.voice_enabled = bool(enabled)
        return self.voice_enabled

    def toggle_voice(self) -> bool:
        return self.set_voice(not self.voice_enabled)

    def push_landmarks(self, landmarks: Optional[Sequence[Any]], ts: Optional[float] = None) -> Optional[FrameResult]:
        """Feed one pose frame (ts in seconds). Returns None while not counting."""
        if not self.counting:
            return None
        t = float(ts) if ts is not None else time.time()
        result = self.pipeline.process(landmarks, t)
        if result.rep_completed:
            self._on_rep(result)
        return result

    def _on_rep(self, result: FrameResult):
        # one increment per frame even if both arms finish together
        self.count += 1
        if self.voice_enabled:
            self.tts.speak_count(self.count)
        self._emit({"type": EventType.REP.value, "count": self.count,
                    "sides": list(result.completed_limbs)})

    def push_hand_landmarks(self, hand: Optional[Sequence[Any]]) -> Gesture:
        gesture = classify_gesture(hand)
        if gesture == "thumbs_up" and not self.counting:
            self.start()
        elif gesture == "peace":
            self.reset()
        return gesture

    def status(self) -> SessionStatus:
        return SessionStatus(
            session_id=self.session_id,
            state="running" if self.counting else "stopped",
            count=self.count,
            active_limb=self.pipeline.active_limb,
            voice_enabled=self.voice_enabled,
        )

    def close(self):
        if self._tts is not None:
            self._tts.shutdown()
            self._tts = None
