"""Attention and gaze estimation from eye-landmark samples.

Each ingested sample runs, in order: blink detection, fixation/saccade
segmentation on the last few iris positions, windowed attention scoring,
and gaze direction. Movement is tracked on the left-eye iris.

Missing landmarks are not errors. A ``None`` sample (no face this tick) is
ignored entirely. A sample without eye states skips blink detection; a
sample without an iris is still buffered but skips segmentation.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional

import numpy as np

from .buffers import SampleBuffer
from .config import AttentionConfig
from .emitter import ATTENTION, GAZE, Emitter
from .gaze import gaze_direction
from .types import (
    AttentionMetrics,
    AttentionSample,
    BlinkState,
    EyeSample,
    Fixation,
    GazeReading,
    Point3,
    Saccade,
)

logger = logging.getLogger(__name__)


def attention_score(
    fixation_count: int,
    avg_fixation_duration: float,
    saccade_count: int,
    blink_rate: float,
) -> float:
    """Weighted-feature score clamped to [0, 100].

    Starts at 50; fixation count, fixation duration and saccade count each
    add up to 25 (full credit inside their optimal band); an abnormal blink
    rate subtracts up to 25.
    """
    score = 50.0

    # 3-5 fixations per window
    if 3 <= fixation_count <= 5:
        score += 25.0
    else:
        score += 25.0 * (1.0 - min(1.0, abs(4 - fixation_count) / 4.0))

    # 200-400 ms per fixation
    if 200.0 <= avg_fixation_duration <= 400.0:
        score += 25.0
    else:
        score += 25.0 * (1.0 - min(1.0, abs(300.0 - avg_fixation_duration) / 300.0))

    # 2-4 saccades per window
    if 2 <= saccade_count <= 4:
        score += 25.0
    else:
        score += 25.0 * (1.0 - min(1.0, abs(3 - saccade_count) / 3.0))

    # Staring (< 8/min) or fatigue (> 25/min)
    if blink_rate < 8.0:
        score -= 25.0 * (1.0 - blink_rate / 8.0)
    elif blink_rate > 25.0:
        score -= 25.0 * min(1.0, (blink_rate - 25.0) / 15.0)

    return float(max(0.0, min(100.0, score)))


def _iris(sample: EyeSample) -> Optional[Point3]:
    eye = sample.left_eye
    return eye.iris if eye is not None else None


class AttentionEstimator:
    def __init__(self, cfg: AttentionConfig | None = None, emitter: Optional[Emitter] = None) -> None:
        self.cfg = cfg or AttentionConfig()
        self.emitter = emitter
        self.buffer: SampleBuffer[EyeSample] = SampleBuffer(self.cfg.buffer_capacity)
        self.blink = BlinkState()
        self.fixations: Deque[Fixation] = deque(maxlen=self.cfg.history_size)
        self.saccades: Deque[Saccade] = deque(maxlen=self.cfg.history_size)
        self.history: Deque[AttentionSample] = deque(maxlen=self.cfg.attention_history_size)
        self._latest_metrics: Optional[AttentionMetrics] = None
        self._latest_gaze: Optional[GazeReading] = None

    def reset(self) -> None:
        """Drop all buffered samples and derived state; keep the configuration."""
        self.buffer.clear()
        self.blink = BlinkState()
        self.fixations.clear()
        self.saccades.clear()
        self.history.clear()
        self._latest_metrics = None
        self._latest_gaze = None
        logger.info("attention estimator reset")

    def latest_metrics(self) -> Optional[AttentionMetrics]:
        return self._latest_metrics

    def latest_gaze(self) -> Optional[GazeReading]:
        return self._latest_gaze

    def ingest_sample(self, sample: Optional[EyeSample]) -> Optional[AttentionMetrics]:
        """Buffer one sample and run the detectors.

        Returns the emitted metrics when the sample completed a valid scoring
        window, otherwise None.
        """
        if sample is None:
            return None
        self.buffer.append(sample)
        self.detect_blink(sample)
        self.segment()
        metrics = self.score()
        self._update_gaze(sample)
        return metrics

    def detect_blink(self, sample: EyeSample) -> bool:
        """Count a blink when mean openness dips below threshold outside the refractory window."""
        if sample.left_eye is None or sample.right_eye is None:
            return False
        avg_openness = 0.5 * (sample.left_eye.openness + sample.right_eye.openness)
        if avg_openness >= self.cfg.blink_threshold:
            return False
        last = self.blink.last_blink_time
        if last is not None and sample.t - last <= self.cfg.blink_refractory_ms:
            return False
        self.blink.blink_count += 1
        self.blink.last_blink_time = sample.t
        logger.debug("blink #%d at %.0f ms", self.blink.blink_count, sample.t)
        return True

    def segment(self) -> None:
        """Classify the latest movement as a saccade or part of a fixation."""
        recent = self.buffer.latest(self.cfg.movement_samples)
        if len(recent) < self.cfg.movement_samples:
            return
        latest = recent[-1]
        iris = _iris(latest)
        if iris is None:
            return
        distances = []
        for prev, curr in zip(recent, recent[1:]):
            a, b = _iris(prev), _iris(curr)
            if a is None or b is None:
                continue
            distances.append(float(np.linalg.norm(np.subtract(b, a))))
        if not distances:
            return
        movement = float(np.mean(distances))

        if movement > self.cfg.saccade_threshold:
            self.saccades.append(Saccade(timestamp=latest.t, magnitude=movement))
            return

        if self.fixations:
            current = self.fixations[-1]
            if latest.t - current.end_time < self.cfg.fixation_gap_ms:
                current.end_time = latest.t
                current.duration = current.end_time - current.start_time
                current.positions.append(iris)
                return
        self.fixations.append(
            Fixation(start_time=latest.t, end_time=latest.t, duration=0.0, positions=[iris])
        )

    def score(self) -> Optional[AttentionMetrics]:
        cfg = self.cfg
        if len(self.buffer) < cfg.min_samples_to_score or len(self.fixations) < cfg.min_fixations_to_score:
            return None
        latest = self.buffer.last()
        assert latest is not None
        now = latest.t
        cutoff = now - cfg.scoring_window_ms

        window_fixations = [f for f in self.fixations if f.start_time > cutoff]
        fixation_count = len(window_fixations)
        avg_duration = (
            float(np.mean([f.duration for f in window_fixations])) if window_fixations else 0.0
        )
        sustained = sum(1 for f in window_fixations if f.duration >= cfg.min_duration_ms)
        saccade_count = sum(1 for s in self.saccades if s.timestamp > cutoff)
        blink_rate = self.blink.blink_count * (60000.0 / cfg.scoring_window_ms)

        raw = attention_score(fixation_count, avg_duration, saccade_count, blink_rate)
        self.history.append(AttentionSample(timestamp=now, score=raw))
        recent = list(self.history)[-cfg.smoothing_count :]
        smoothed = float(np.mean([h.score for h in recent]))

        metrics = AttentionMetrics(
            attention_score=int(round(min(100.0, max(0.0, smoothed)))),
            fixation_count=fixation_count,
            avg_fixation_duration=avg_duration,
            saccade_count=saccade_count,
            blink_rate=blink_rate,
            raw_score=raw,
            sustained_fixation_count=sustained,
            t=now,
        )
        self._latest_metrics = metrics
        if self.emitter is not None:
            self.emitter.emit(ATTENTION, metrics.to_dict())
        return metrics

    def _update_gaze(self, sample: EyeSample) -> None:
        direction = gaze_direction(sample)
        if direction is None:
            return
        reading = GazeReading(direction=direction, t=sample.t)
        self._latest_gaze = reading
        if self.emitter is not None:
            self.emitter.emit(GAZE, reading.to_dict())
