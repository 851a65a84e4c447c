import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeTTS, frame, hand
from curlcounter.counter.session import RepSessionManager
from curlcounter.runtime import server


@pytest.fixture
def client(monkeypatch, cfg):
    mgr = RepSessionManager(cfg=cfg)
    mgr.set_event_sink(server._sink)
    monkeypatch.setattr(server, "MANAGER", mgr)
    with TestClient(server.app) as c:
        yield c


def pose_msg(lms, ts):
    wire = [None if lm is None else {"x": lm.x, "y": lm.y, "visibility": lm.visibility} for lm in lms]
    return {"type": "pose", "landmarks": wire, "ts": ts}


def receive_until(ws, kind):
    while True:
        msg = ws.receive_json()
        if msg["type"] == kind:
            return msg


def test_status_and_controls(client):
    body = client.get("/sessions/current").json()
    assert body["state"] == "stopped"
    assert body["count"] == 0

    assert client.post("/counter/start").json()["state"] == "running"
    assert client.post("/counter/voice", params={"enabled": "false"}).json()["voice_enabled"] is False
    assert client.post("/counter/stop").json()["state"] == "stopped"
    assert client.post("/counter/reset").json()["count"] == 0


def test_pose_frames_idle_until_started(client):
    with client.websocket_connect("/ws/landmarks") as ws:
        ws.send_json(pose_msg(frame(right=170.0), 1000.0))
        assert receive_until(ws, "idle")["state"] == "stopped"


def test_websocket_counts_a_rep(client):
    client.post("/counter/start")
    angles = [175.0] * 3 + [40.0] * 3 + [175.0] * 3
    frames = []
    with client.websocket_connect("/ws/landmarks") as ws:
        for i, a in enumerate(angles):
            ws.send_json(pose_msg(frame(right=a), 1000.0 + i / 30.0))
            frames.append(receive_until(ws, "frame"))
    done = [f for f in frames if f["rep_completed"]]
    assert len(done) == 1
    assert done[0]["count"] == 1
    assert done[0]["completed_limbs"] == ["right"]
    assert frames[5]["status_label"] == "Curl Up"
    assert client.get("/sessions/current").json()["count"] == 1


def test_hand_gestures_over_websocket(client):
    with client.websocket_connect("/ws/landmarks") as ws:
        ws.send_json({"type": "hands", "landmarks": hand("thumbs_up")})
        assert receive_until(ws, "gesture")["gesture"] == "thumbs_up"
    assert client.get("/sessions/current").json()["state"] == "running"


def test_malformed_messages_get_errors(client):
    with client.websocket_connect("/ws/landmarks") as ws:
        ws.send_text("not json")
        assert receive_until(ws, "error")
        ws.send_json({"type": "pose", "landmarks": [{"x": "left"}]})
        assert receive_until(ws, "error")
        ws.send_json({"type": "dance"})
        assert "unknown" in receive_until(ws, "error")["msg"]
        # connection still usable
        ws.send_json({"type": "hands", "landmarks": []})
        assert receive_until(ws, "gesture")["gesture"] == "none"


def test_sink_holds_broadcast_tasks_until_done():
    async def go():
        before = set(server._PENDING)
        server._sink({"type": "trace", "msg": "right: state→UP"})
        new = server._PENDING - before
        assert len(new) == 1
        await asyncio.gather(*new)
        await asyncio.sleep(0)
        return new & server._PENDING

    assert asyncio.run(go()) == set()


def test_app_shutdown_closes_manager(monkeypatch, cfg):
    tts = FakeTTS()
    monkeypatch.setattr(server, "MANAGER", RepSessionManager(cfg=cfg, tts=tts))
    with TestClient(server.app) as c:
        assert c.get("/sessions/current").status_code == 200
        assert not tts.stopped
    assert tts.stopped
