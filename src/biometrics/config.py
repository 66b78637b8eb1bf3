"""Estimator configuration.

Defaults assume a nominal 30 fps capture cadence; adjust
``sampling_frequency_hz`` when the real cadence differs.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class HeartRateConfig:
    processing_interval_ms: float = 200.0
    measurement_interval_ms: float = 2000.0
    min_samples_to_score: int = 60
    sampling_frequency_hz: float = 30.0
    buffer_capacity: int = 150  # ~5 s at 30 fps
    low_cut_hz: float = 0.75  # 45 BPM
    high_cut_hz: float = 4.0  # 240 BPM
    filter: str = "moving_average"  # moving_average | butterworth
    peak_amplitude_floor: float = 0.1
    min_peak_distance_sec: float = 0.3
    bpm_min: float = 40.0
    bpm_max: float = 200.0
    # Fallback estimate (flagged, never a measurement)
    fallback_bpm_min: float = 60.0
    fallback_bpm_max: float = 100.0
    fallback_baseline_bpm: float = 75.0
    fallback_smoothing: float = 0.3


@dataclass
class AttentionConfig:
    blink_threshold: float = 0.2
    blink_refractory_ms: float = 500.0
    saccade_threshold: float = 0.01
    fixation_gap_ms: float = 100.0
    min_duration_ms: float = 100.0
    scoring_window_ms: float = 5000.0
    min_samples_to_score: int = 30
    min_fixations_to_score: int = 2
    buffer_capacity: int = 300  # ~10 s at 30 fps
    history_size: int = 20  # fixations and saccades
    attention_history_size: int = 30
    smoothing_count: int = 5
    movement_samples: int = 3
