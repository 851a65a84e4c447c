from __future__ import annotations
import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from typing import List, Literal, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from curlcounter.common.config import CurlConfig, env_flag
from curlcounter.common.events import EventType
from curlcounter.counter.pose_core import Landmark
from curlcounter.counter.session import RepSessionManager

logger = logging.getLogger(__name__)


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: float = Field(1.0, description="Detector confidence in [0, 1]")

    def to_landmark(self) -> Landmark:
        return Landmark(self.x, self.y, self.visibility, self.z)


class PoseMessage(BaseModel):
    type: Literal["pose"]
    landmarks: List[Optional[LandmarkIn]] = Field(default_factory=list)
    ts: Optional[float] = Field(None, description="Frame timestamp in seconds")


class HandsMessage(BaseModel):
    type: Literal["hands"]
    landmarks: List[Optional[LandmarkIn]] = Field(default_factory=list)


def _landmarks(items: List[Optional[LandmarkIn]]) -> List[Optional[Landmark]]:
    return [lm.to_landmark() if lm is not None else None for lm in items]


MANAGER = RepSessionManager(cfg=CurlConfig.from_env(), voice_enabled=env_flag("CURL_VOICE"))

WS_CLIENTS: Set[WebSocket] = set()
# broadcasts in flight; the loop only keeps weak references to tasks
_PENDING: Set[asyncio.Task] = set()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    ACTIVE_MANAGER().close()


app = FastAPI(title="curlcounter", lifespan=lifespan)


def ACTIVE_MANAGER() -> RepSessionManager:
    return MANAGER


async def broadcast(obj: dict):
    dead = []
    for ws in list(WS_CLIENTS):
        try:
            await ws.send_text(json.dumps(obj))
        except (RuntimeError, WebSocketDisconnect):
            dead.append(ws)
    for d in dead:
        WS_CLIENTS.discard(d)


# let the manager emit events to all WS clients
def _sink(ev: dict):
    try:
        task = asyncio.get_running_loop().create_task(broadcast(ev))
    except RuntimeError:
        logger.debug("no running loop, dropping event %s", ev.get("type"))
        return
    _PENDING.add(task)
    task.add_done_callback(_PENDING.discard)


MANAGER.set_event_sink(_sink)


def _status_payload() -> dict:
    st = ACTIVE_MANAGER().status()
    return {
        "session_id": st.session_id,
        "state": st.state,
        "count": st.count,
        "active_limb": st.active_limb,
        "voice_enabled": st.voice_enabled,
    }


@app.get("/sessions/current")
async def current():
    return JSONResponse(_status_payload())


@app.post("/counter/start")
async def start():
    ACTIVE_MANAGER().start()
    return _status_payload()


@app.post("/counter/stop")
async def stop():
    ACTIVE_MANAGER().stop()
    return _status_payload()


@app.post("/counter/reset")
async def reset():
    ACTIVE_MANAGER().reset()
    return _status_payload()


@app.post("/counter/voice")
async def voice(enabled: Optional[bool] = None):
    m = ACTIVE_MANAGER()
    if enabled is None:
        m.toggle_voice()
    else:
        m.set_voice(enabled)
    return _status_payload()


def handle_message(data: dict) -> Optional[dict]:
    """Dispatch one client message to the session manager and build the reply."""
    m = ACTIVE_MANAGER()
    kind = data.get("type")
    if kind == "pose":
        msg = PoseMessage.model_validate(data)
        result = m.push_landmarks(_landmarks(msg.landmarks), msg.ts)
        if result is None:
            return {"type": "idle", "state": "stopped"}
        out = result.to_message()
        out["count"] = m.count
        return out
    if kind == "hands":
        msg = HandsMessage.model_validate(data)
        gesture = m.push_hand_landmarks(_landmarks(msg.landmarks))
        return {"type": EventType.GESTURE.value, "gesture": gesture}
    if kind == "reset":
        m.reset()
        return None
    return {"type": "error", "msg": f"unknown message type {kind!r}"}


@app.websocket("/ws/landmarks")
async def ws_landmarks(ws: WebSocket):
    await ws.accept()
    WS_CLIENTS.add(ws)
    logger.info("ws: client connected (%d total)", len(WS_CLIENTS))
    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("message must be a JSON object")
                reply = handle_message(data)
            except ValueError as e:  # JSONDecodeError and ValidationError included
                logger.debug("ws: rejected message: %s", e)
                reply = {"type": "error", "msg": str(e)}
            if reply is not None:
                await ws.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        pass
    finally:
        WS_CLIENTS.discard(ws)
        logger.info("ws: client disconnected (%d left)", len(WS_CLIENTS))


def main():
    import uvicorn

    logging.basicConfig(level=os.getenv("CURL_LOG_LEVEL", "INFO"))
    uvicorn.run(app, host=os.getenv("CURL_HOST", "127.0.0.1"), port=int(os.getenv("CURL_PORT", "8000")))


if __name__ == "__main__":
    main()
