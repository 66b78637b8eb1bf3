from __future__ import annotations

import numpy as np
import pytest

from biometrics.buffers import LatestSample
from biometrics.config import HeartRateConfig
from biometrics.emitter import Emitter, MetricQueue
from biometrics.errors import NotReadyError
from biometrics.heart_rate import HeartRateEstimator
from biometrics.types import ColorSample, HeartRateReading, ReadingStatus


def _pulse(n: int, f: float = 1.2, fs: float = 30.0, dt_ms: float | None = None) -> list[ColorSample]:
    dt = 1000.0 / fs if dt_ms is None else dt_ms
    return [
        ColorSample(r=90.0, g=128.0 + 10.0 * np.sin(2 * np.pi * f * i / fs), b=70.0, t=i * dt)
        for i in range(n)
    ]


def _started(cfg: HeartRateConfig | None = None, emitter: Emitter | None = None) -> HeartRateEstimator:
    est = HeartRateEstimator(cfg, source=lambda: None, emitter=emitter)
    est.initialize()
    return est


def test_heart_rate_on_synthetic_72_bpm() -> None:
    est = _started()
    for s in _pulse(60):
        est.ingest_sample(s)
    reading = est.compute_heart_rate()
    assert reading.status is ReadingStatus.MEASURED
    assert not reading.is_fallback
    assert abs(reading.bpm - 72) <= 10
    assert 0.0 <= reading.confidence <= 1.0


def test_heart_rate_butterworth_filter() -> None:
    est = _started(HeartRateConfig(filter="butterworth"))
    for s in _pulse(150):
        est.ingest_sample(s)
    reading = est.compute_heart_rate()
    assert reading.status is ReadingStatus.MEASURED
    assert abs(reading.bpm - 72) <= 10


def test_unknown_filter_rejected() -> None:
    with pytest.raises(ValueError):
        HeartRateEstimator(HeartRateConfig(filter="fft"))


def test_not_ready_below_min_samples() -> None:
    est = _started()
    for s in _pulse(10):
        est.ingest_sample(s)
    reading = est.compute_heart_rate()
    assert reading.status is ReadingStatus.NOT_READY
    assert reading.bpm == 0
    assert not reading.is_ready


def test_initialize_without_source_raises() -> None:
    est = HeartRateEstimator()
    with pytest.raises(NotReadyError):
        est.initialize()
    assert not est.is_running


def test_ingest_is_noop_until_initialized() -> None:
    est = HeartRateEstimator(source=lambda: None)
    est.ingest_sample(ColorSample(1.0, 2.0, 3.0, 0.0))
    assert len(est.buffer) == 0


def test_zero_variance_falls_back() -> None:
    est = _started()
    for i in range(100):
        est.ingest_sample(ColorSample(r=100.0, g=128.0, b=90.0, t=i * 33.3))
    reading = est.compute_heart_rate()
    assert reading.status is ReadingStatus.FALLBACK
    assert reading.is_fallback
    assert reading.bpm == 75
    assert reading.confidence == 0.0
    assert reading.to_dict()["isFallback"] is True


def test_out_of_range_peaks_fall_back() -> None:
    est = _started()
    # 1 ms spacing makes the peak intervals far too short for a heart beat
    for s in _pulse(60, dt_ms=1.0):
        est.ingest_sample(s)
    reading = est.compute_heart_rate()
    assert reading.status is ReadingStatus.FALLBACK
    assert 60 <= reading.bpm <= 100


def test_non_finite_samples_yield_bounded_reading() -> None:
    est = _started()
    for i, s in enumerate(_pulse(90)):
        g = float("nan") if i % 7 == 0 else s.g
        est.ingest_sample(ColorSample(r=s.r, g=g, b=s.b, t=s.t))
    reading = est.compute_heart_rate()
    assert reading.is_ready
    assert 40 <= reading.bpm <= 200


def test_readings_always_bounded_on_noise() -> None:
    rng = np.random.RandomState(0)
    for trial in range(20):
        est = _started()
        for i in range(150):
            est.ingest_sample(ColorSample(r=0.0, g=float(rng.randn()), b=0.0, t=i * 33.3))
        reading = est.compute_heart_rate()
        assert reading.status in (ReadingStatus.MEASURED, ReadingStatus.FALLBACK)
        assert 40 <= reading.bpm <= 200
        assert np.isfinite(reading.confidence)


def test_buffer_keeps_most_recent_samples() -> None:
    est = _started()
    samples = _pulse(200)
    for s in samples:
        est.ingest_sample(s)
    assert len(est.buffer) == 150
    assert est.buffer.to_list() == samples[-150:]


def test_tick_emits_on_measurement_cadence() -> None:
    emitter = Emitter()
    queue = MetricQueue()
    emitter.subscribe(queue)
    est = _started(emitter=emitter)
    assert est.tick(0.0) is None  # not enough samples yet
    for s in _pulse(60):
        est.ingest_sample(s)
    assert est.tick(1000.0) is None  # inside the interval of the previous tick
    first = est.tick(2000.0)
    assert first is not None and first.status is ReadingStatus.MEASURED
    assert est.tick(3500.0) is None
    assert est.tick(4000.0) is not None
    items = queue.drain()
    assert [topic for topic, _ in items] == ["heart_rate", "heart_rate"]
    assert set(items[0][1]) == {"bpm", "isFallback", "status", "confidence", "t"}


def test_stop_halts_ingestion_and_keeps_buffer() -> None:
    est = _started()
    for s in _pulse(60):
        est.ingest_sample(s)
    est.stop()
    est.ingest_sample(ColorSample(1.0, 2.0, 3.0, 5000.0))
    assert len(est.buffer) == 60
    assert est.tick(10000.0) is None
    # Explicit computation still works on the retained buffer
    assert est.compute_heart_rate().status is ReadingStatus.MEASURED
    est.initialize()
    assert len(est.buffer) == 0


def test_reinitialize_matches_fresh_estimator() -> None:
    est = _started()
    for s in _pulse(80):
        est.ingest_sample(s)
    est.initialize()
    fresh = HeartRateEstimator(source=lambda: None)
    assert est.compute_heart_rate() == fresh.compute_heart_rate() == HeartRateReading.not_ready()


def test_poll_respects_processing_interval() -> None:
    slot: LatestSample[ColorSample] = LatestSample()
    est = HeartRateEstimator(source=slot)
    est.initialize()
    slot.put(ColorSample(1.0, 2.0, 3.0, 0.0))
    assert est.poll(0.0) is not None
    slot.put(ColorSample(1.0, 2.0, 3.0, 100.0))
    assert est.poll(100.0) is None
    assert est.poll(200.0) is not None
    assert est.poll(400.0) is None  # slot empty
    assert len(est.buffer) == 2
