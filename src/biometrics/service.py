"""FastAPI service wiring the estimators to HTTP ingestion and a WebSocket feed.

This is the composition root: it owns one estimator of each kind, reads the
clock, and drives the heart-rate cadence from a background loop. Samples
arrive either as batches (`/ingest/color`, `/ingest/eye`) or as single
latest-frame color samples (`/ingest/color/latest`) that the loop polls at
the processing interval. Every emitted metric is pushed to WebSocket
clients as JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Annotated, Iterable, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .attention import AttentionEstimator
from .buffers import LatestSample
from .config import AttentionConfig, HeartRateConfig
from .emitter import Emitter, MetricQueue
from .heart_rate import HeartRateEstimator
from .types import ColorSample, EyeSample, EyeState, Point3

logger = logging.getLogger(__name__)


def configure_logging(logs_dir: Path = Path("logs"), level: int = logging.INFO) -> None:
    """Log to ``logs/service.log`` and stderr; dump fatal tracebacks via faulthandler."""
    try:
        logs_dir.mkdir(exist_ok=True)
    except OSError:
        logger.warning("cannot create %s, logging to stderr only", logs_dir)
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
        return
    import faulthandler

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "service.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    fh = (logs_dir / "faulthandler.log").open("w")
    faulthandler.enable(fh)


def _now_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class State:
    heart: HeartRateEstimator
    attention: AttentionEstimator
    emitter: Emitter
    outbox: MetricQueue
    pending_color: LatestSample[ColorSample]
    metrics: dict = field(default_factory=dict)


class ControlModel(BaseModel):
    sampling_frequency_hz: Optional[float] = Field(None, ge=5.0, le=120.0)
    measurement_interval_ms: Optional[float] = Field(None, ge=200.0, le=10000.0)
    processing_interval_ms: Optional[float] = Field(None, ge=10.0, le=1000.0)
    filter: Optional[str] = Field(None, pattern=r"^(moving_average|butterworth)$")
    blink_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    saccade_threshold: Optional[float] = Field(None, gt=0.0, le=1.0)
    scoring_window_ms: Optional[float] = Field(None, ge=1000.0, le=60000.0)


_HEART_FIELDS = {"sampling_frequency_hz", "measurement_interval_ms", "processing_interval_ms", "filter"}


class ColorIngestModel(BaseModel):
    t0: float  # ms
    dt: float = Field(..., gt=0.0)  # ms
    mean_rgb: list[Annotated[list[float], Field(min_length=3, max_length=3)]]


class ColorSampleModel(BaseModel):
    r: float
    g: float
    b: float
    t: float


class EyeStateModel(BaseModel):
    center: Optional[list[float]] = None
    iris: Optional[list[float]] = None
    openness: float = Field(0.0, ge=0.0)


class EyeSampleModel(BaseModel):
    t: float
    left_eye: Optional[EyeStateModel] = None
    right_eye: Optional[EyeStateModel] = None


class EyeIngestModel(BaseModel):
    # null entries mean "no face on this tick"
    samples: list[Optional[EyeSampleModel]]


def _point(values: Optional[list[float]]) -> Optional[Point3]:
    if values is None or len(values) < 2:
        return None
    return Point3(*(float(v) for v in values[:3]))


def _eye_state(m: Optional[EyeStateModel]) -> Optional[EyeState]:
    if m is None:
        return None
    return EyeState(center=_point(m.center), iris=_point(m.iris), openness=float(m.openness))


def to_eye_sample(m: Optional[EyeSampleModel]) -> Optional[EyeSample]:
    if m is None:
        return None
    return EyeSample(left_eye=_eye_state(m.left_eye), right_eye=_eye_state(m.right_eye), t=float(m.t))


async def send_to_clients(clients: set, items: Iterable[tuple[str, dict]]) -> None:
    """Push each (topic, payload) to every client; clients that fail a send are dropped.

    Clients may connect while a send is awaited, so each message goes to a
    snapshot of the set taken when that message starts.
    """
    for topic, payload in items:
        msg = json.dumps({"topic": topic, **payload})
        for w in list(clients):
            try:
                await w.send_text(msg)
            except Exception:
                logger.info("dropping websocket client after send failure")
                clients.discard(w)


def make_app(
    heart_cfg: Optional[HeartRateConfig] = None,
    attention_cfg: Optional[AttentionConfig] = None,
) -> FastAPI:
    app = FastAPI(title="Biometrics Service", version="0.1.0")

    emitter = Emitter()
    outbox = MetricQueue(maxsize=512)
    emitter.subscribe(outbox)
    pending: LatestSample[ColorSample] = LatestSample()
    state = State(
        heart=HeartRateEstimator(heart_cfg, source=pending, emitter=emitter),
        attention=AttentionEstimator(attention_cfg, emitter=emitter),
        emitter=emitter,
        outbox=outbox,
        pending_color=pending,
    )

    def _remember(topic: str, payload: dict) -> None:
        state.metrics[topic] = payload

    emitter.subscribe(_remember)
    state.heart.initialize()
    app.state.biometrics = state

    loop_task: Optional[asyncio.Task] = None
    lock = asyncio.Lock()
    ws_clients: set[WebSocket] = set()

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        loop_task = asyncio.create_task(process_loop())

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        state.heart.stop()
        if loop_task:
            loop_task.cancel()
            try:
                await loop_task
            except asyncio.CancelledError:
                pass

    async def process_loop() -> None:  # pragma: no cover - integration
        while True:
            try:
                await asyncio.sleep(state.heart.cfg.processing_interval_ms / 1000.0)
                async with lock:
                    now = _now_ms()
                    state.heart.poll(now)
                    state.heart.tick(now)
                await broadcast()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("processing loop iteration failed")
                await asyncio.sleep(0.5)

    async def broadcast() -> None:
        items = state.outbox.drain()
        if items and ws_clients:
            await send_to_clients(ws_clients, items)

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.get("/metrics")
    async def get_metrics() -> dict:
        async with lock:
            return {
                "heart_rate": state.metrics.get("heart_rate"),
                "attention": state.metrics.get("attention"),
                "gaze": state.metrics.get("gaze"),
                "buffered": {
                    "color": len(state.heart.buffer),
                    "eye": len(state.attention.buffer),
                },
                "running": state.heart.is_running,
            }

    @app.post("/control")
    async def post_control(cfg: ControlModel) -> dict:
        async with lock:
            data = cfg.model_dump(exclude_none=True)
            for k, v in data.items():
                target = state.heart.cfg if k in _HEART_FIELDS else state.attention.cfg
                setattr(target, k, v)
            logger.info("control update: %s", data)
            return {
                "status": "ok",
                "heart_rate": asdict(state.heart.cfg),
                "attention": asdict(state.attention.cfg),
            }

    @app.post("/ingest/color")
    async def post_ingest_color(payload: ColorIngestModel) -> dict:
        if not payload.mean_rgb:
            return {"status": "empty"}
        t = payload.t0
        async with lock:
            for rgb in payload.mean_rgb:
                r, g, b = (float(v) for v in rgb)
                state.heart.ingest_sample(ColorSample(r=r, g=g, b=b, t=t))
                t += payload.dt
        return {"status": "ok", "count": len(payload.mean_rgb)}

    @app.post("/ingest/color/latest")
    async def post_ingest_color_latest(sample: ColorSampleModel) -> dict:
        state.pending_color.put(ColorSample(r=sample.r, g=sample.g, b=sample.b, t=sample.t))
        return {"status": "ok"}

    @app.post("/ingest/eye")
    async def post_ingest_eye(payload: EyeIngestModel) -> dict:
        scored = 0
        async with lock:
            for m in payload.samples:
                if state.attention.ingest_sample(to_eye_sample(m)) is not None:
                    scored += 1
        await broadcast()
        return {"status": "ok", "count": len(payload.samples), "scored": scored}

    @app.post("/reset")
    async def post_reset() -> dict:
        async with lock:
            state.attention.reset()
            state.heart.initialize()
            state.pending_color()  # discard a sample posted before the reset
            state.metrics.clear()
            state.outbox.drain()
        return {"status": "ok"}

    @app.websocket("/ws")
    async def ws_metrics(ws: WebSocket) -> None:  # pragma: no cover - integration
        await ws.accept()
        ws_clients.add(ws)
        try:
            while True:
                # keep alive; updates are pushed from the loop
                await asyncio.sleep(30)
        except WebSocketDisconnect:
            ws_clients.discard(ws)
        finally:
            ws_clients.discard(ws)

    return app


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    configure_logging()
    uvicorn.run(make_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
