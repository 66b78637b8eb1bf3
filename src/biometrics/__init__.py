"""Streaming biometric estimators: rPPG heart rate and eye-based attention/gaze."""

from .attention import AttentionEstimator, attention_score
from .config import AttentionConfig, HeartRateConfig
from .emitter import Emitter, MetricQueue
from .errors import BiometricsError, NotReadyError
from .heart_rate import HeartRateEstimator
from .types import (
    AttentionMetrics,
    ColorSample,
    EyeSample,
    EyeState,
    GazeReading,
    HeartRateReading,
    Point3,
    ReadingStatus,
)

__all__ = [
    "AttentionConfig",
    "AttentionEstimator",
    "AttentionMetrics",
    "BiometricsError",
    "ColorSample",
    "Emitter",
    "EyeSample",
    "EyeState",
    "GazeReading",
    "HeartRateConfig",
    "HeartRateEstimator",
    "HeartRateReading",
    "MetricQueue",
    "NotReadyError",
    "Point3",
    "ReadingStatus",
    "attention_score",
]

__version__ = "0.1.0"
