from __future__ import annotations

import asyncio
import json
import math

from fastapi.testclient import TestClient

from biometrics.service import make_app, send_to_clients
from biometrics.types import ColorSample


def _eye(t: float, x: float = 0.0) -> dict:
    state = {"center": [x, 0.0, 0.0], "iris": [x, 0.0, 0.0], "openness": 1.0}
    return {"t": t, "left_eye": state, "right_eye": state}


def test_ingest_color_batch_and_metrics() -> None:
    client = TestClient(make_app())
    rgb = [[90.0, 128.0 + 10.0 * math.sin(2 * math.pi * 1.2 * i / 30), 70.0] for i in range(60)]
    r = client.post("/ingest/color", json={"t0": 0.0, "dt": 1000.0 / 30, "mean_rgb": rgb})
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "count": 60}
    m = client.get("/metrics").json()
    assert m["buffered"]["color"] == 60
    assert m["running"] is True
    assert m["heart_rate"] is None  # measured only on the background cadence


def test_ingest_eye_scores_and_exposes_metrics() -> None:
    client = TestClient(make_app())
    samples = [_eye(i * 40.0, 0.0 if i < 20 else 0.5) for i in range(40)]
    samples.insert(5, None)
    r = client.post("/ingest/eye", json={"samples": samples})
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 41
    assert body["scored"] == 11
    m = client.get("/metrics").json()
    assert m["buffered"]["eye"] == 40
    assert 0 <= m["attention"]["attentionScore"] <= 100
    assert m["gaze"]["gazeDirection"] == {"x": 0.0, "y": 0.0, "z": 0.0}


def test_control_validates_and_applies() -> None:
    client = TestClient(make_app())
    r = client.post("/control", json={"filter": "butterworth", "blink_threshold": 0.25})
    assert r.status_code == 200
    body = r.json()
    assert body["heart_rate"]["filter"] == "butterworth"
    assert body["attention"]["blink_threshold"] == 0.25
    assert client.post("/control", json={"filter": "fft"}).status_code == 422


def test_reset_clears_buffers() -> None:
    client = TestClient(make_app())
    client.post("/ingest/eye", json={"samples": [_eye(0.0), _eye(40.0)]})
    client.post("/ingest/color", json={"t0": 0.0, "dt": 33.3, "mean_rgb": [[1.0, 2.0, 3.0]]})
    assert client.post("/reset").json() == {"status": "ok"}
    m = client.get("/metrics").json()
    assert m["buffered"] == {"color": 0, "eye": 0}
    assert m["attention"] is None and m["gaze"] is None


def test_ingest_color_rejects_short_rows() -> None:
    client = TestClient(make_app())
    r = client.post("/ingest/color", json={"t0": 0.0, "dt": 33.3, "mean_rgb": [[1.0, 2.0]]})
    assert r.status_code == 422
    assert client.get("/metrics").json()["buffered"]["color"] == 0


def test_latest_color_sample_is_polled_once() -> None:
    app = make_app()
    client = TestClient(app)
    r = client.post("/ingest/color/latest", json={"r": 90.0, "g": 128.0, "b": 70.0, "t": 1000.0})
    assert r.json() == {"status": "ok"}
    heart = app.state.biometrics.heart
    assert heart.poll(1000.0) == ColorSample(r=90.0, g=128.0, b=70.0, t=1000.0)
    # slot is emptied by the poll
    assert heart.poll(2000.0) is None
    assert client.get("/metrics").json()["buffered"]["color"] == 1


def test_reset_discards_pending_color_sample() -> None:
    app = make_app()
    client = TestClient(app)
    client.post("/ingest/color/latest", json={"r": 1.0, "g": 2.0, "b": 3.0, "t": 500.0})
    client.post("/reset")
    heart = app.state.biometrics.heart
    assert heart.poll(1000.0) is None
    assert len(heart.buffer) == 0


class _Client:
    def __init__(self, on_send=None) -> None:
        self.sent: list[dict] = []
        self.on_send = on_send

    async def send_text(self, msg: str) -> None:
        self.sent.append(json.loads(msg))
        if self.on_send is not None:
            self.on_send()
            self.on_send = None
        await asyncio.sleep(0)


class _BrokenClient:
    async def send_text(self, msg: str) -> None:
        raise ConnectionError("closed")


def test_clients_joining_mid_send_do_not_break_delivery() -> None:
    late = _Client()
    clients: set = set()
    first = _Client(on_send=lambda: clients.add(late))
    second = _Client()
    broken = _BrokenClient()
    clients.update({first, second, broken})
    items = [("heart_rate", {"bpm": 72.0}), ("attention", {"attentionScore": 60})]

    asyncio.run(send_to_clients(clients, items))

    assert [m["topic"] for m in first.sent] == ["heart_rate", "attention"]
    assert [m["topic"] for m in second.sent] == ["heart_rate", "attention"]
    assert first.sent[0] == {"topic": "heart_rate", "bpm": 72.0}
    # joined while the first message was going out
    assert [m["topic"] for m in late.sent] == ["attention"]
    assert clients == {first, second, late}
