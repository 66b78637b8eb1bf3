"""rPPG heart-rate estimator.

Buffers per-frame color samples and turns the green channel into a BPM
reading: z-score normalization, drift removal (moving-average high-pass or
Butterworth band-pass), peak picking with an exclusion window, and
peak-interval BPM from the sample timestamps. When the peaks are
inconclusive the estimator returns a smoothed spectral guess inside a
resting range, flagged as a fallback.

The estimator never reads the wall clock: callers pass ``now_ms`` to
:meth:`HeartRateEstimator.poll` and :meth:`HeartRateEstimator.tick`.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from .bpm import SpectralPeak, estimate_bpm
from .buffers import SampleBuffer
from .config import HeartRateConfig
from .emitter import HEART_RATE, Emitter
from .errors import NotReadyError
from .peaks import bpm_from_peak_times, find_peaks
from .preprocess import bandpass, moving_average_highpass, zscore
from .types import ColorSample, HeartRateReading, ReadingStatus

logger = logging.getLogger(__name__)

ColorSource = Callable[[], Optional[ColorSample]]

_FILTERS = ("moving_average", "butterworth")


class HeartRateEstimator:
    def __init__(
        self,
        cfg: HeartRateConfig | None = None,
        source: Optional[ColorSource] = None,
        emitter: Optional[Emitter] = None,
    ) -> None:
        self.cfg = cfg or HeartRateConfig()
        if self.cfg.filter not in _FILTERS:
            raise ValueError(f"unknown filter: {self.cfg.filter!r}")
        self.emitter = emitter
        self.buffer: SampleBuffer[ColorSample] = SampleBuffer(self.cfg.buffer_capacity)
        self.is_running = False
        self.last_processed_time: Optional[float] = None
        self._source = source
        self._last_measurement_time: Optional[float] = None
        self._last_fallback: Optional[float] = None

    def initialize(self, source: Optional[ColorSource] = None) -> None:
        """Clear the buffer and start accepting samples.

        Raises:
            NotReadyError: no sample source was given here or at construction.
        """
        if source is not None:
            self._source = source
        if self._source is None:
            raise NotReadyError("no color sample source attached")
        self.buffer.clear()
        self.last_processed_time = None
        self._last_measurement_time = None
        self._last_fallback = None
        self.is_running = True
        logger.info("heart-rate estimator started (fs=%.1f Hz)", self.cfg.sampling_frequency_hz)

    def stop(self) -> None:
        """Halt ingestion and scheduled scoring; the buffer is kept."""
        if self.is_running:
            logger.info("heart-rate estimator stopped with %d samples", len(self.buffer))
        self.is_running = False

    def ingest_sample(self, sample: ColorSample) -> None:
        if not self.is_running:
            return
        self.buffer.append(sample)

    def poll(self, now_ms: float) -> Optional[ColorSample]:
        """Pull one sample from the source if the processing interval elapsed."""
        if not self.is_running or self._source is None:
            return None
        last = self.last_processed_time
        if last is not None and now_ms - last < self.cfg.processing_interval_ms:
            return None
        self.last_processed_time = now_ms
        sample = self._source()
        if sample is None:
            return None
        self.ingest_sample(sample)
        return sample

    def tick(self, now_ms: float) -> Optional[HeartRateReading]:
        """Compute and emit a reading once per measurement interval."""
        if not self.is_running:
            return None
        last = self._last_measurement_time
        if last is not None and now_ms - last < self.cfg.measurement_interval_ms:
            return None
        self._last_measurement_time = now_ms
        if len(self.buffer) < self.cfg.min_samples_to_score:
            return None
        reading = self.compute_heart_rate()
        if self.emitter is not None:
            self.emitter.emit(HEART_RATE, reading.to_dict())
        return reading

    def condition(self, green: np.ndarray) -> np.ndarray:
        """Normalize and band-limit the green channel."""
        cfg = self.cfg
        x = zscore(green)
        if cfg.filter == "butterworth":
            return bandpass(x, cfg.sampling_frequency_hz, cfg.low_cut_hz, cfg.high_cut_hz)
        return moving_average_highpass(x, cfg.sampling_frequency_hz, cfg.low_cut_hz)

    def compute_heart_rate(self) -> HeartRateReading:
        cfg = self.cfg
        samples = self.buffer.to_list()
        t_last = samples[-1].t if samples else None
        if len(samples) < cfg.min_samples_to_score:
            return HeartRateReading.not_ready(t_last)

        green = np.array([s.g for s in samples], dtype=np.float64)
        times = np.array([s.t for s in samples], dtype=np.float64)
        filtered = self.condition(green)

        min_distance = max(1, int(math.floor(cfg.min_peak_distance_sec * cfg.sampling_frequency_hz)))
        peaks = find_peaks(filtered, min_distance, cfg.peak_amplitude_floor)
        spectral = estimate_bpm(filtered, cfg.sampling_frequency_hz, cfg.low_cut_hz, cfg.high_cut_hz)

        bpm = bpm_from_peak_times(times[peaks]) if len(peaks) >= 2 else None
        if bpm is not None and cfg.bpm_min <= bpm <= cfg.bpm_max:
            return HeartRateReading(
                bpm=int(round(bpm)),
                status=ReadingStatus.MEASURED,
                confidence=spectral.confidence,
                t=t_last,
            )
        if bpm is None:
            logger.debug("only %d peaks in window, using fallback", len(peaks))
        else:
            logger.debug("peak BPM %.1f outside [%.0f, %.0f], using fallback", bpm, cfg.bpm_min, cfg.bpm_max)
        return self._fallback(spectral, t_last)

    def _fallback(self, spectral: SpectralPeak, t: Optional[float]) -> HeartRateReading:
        # Smoothed, range-clamped guess; confidence 0 so it is never mistaken for a measurement
        cfg = self.cfg
        prev = self._last_fallback if self._last_fallback is not None else cfg.fallback_baseline_bpm
        if spectral.bpm > 0:
            target = float(np.clip(spectral.bpm, cfg.fallback_bpm_min, cfg.fallback_bpm_max))
        else:
            target = prev
        value = prev + cfg.fallback_smoothing * (target - prev)
        value = float(np.clip(value, cfg.fallback_bpm_min, cfg.fallback_bpm_max))
        self._last_fallback = value
        return HeartRateReading(
            bpm=int(round(value)),
            status=ReadingStatus.FALLBACK,
            confidence=0.0,
            t=t,
        )
