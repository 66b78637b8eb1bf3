"""Sample and metric types shared by the estimators.

Timestamps are monotonic capture times in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional


class Point3(NamedTuple):
    x: float
    y: float
    z: float = 0.0


# Gaze vectors share the point layout
Vector3 = Point3


@dataclass(frozen=True)
class ColorSample:
    """Channel-averaged pixel intensities of one processed frame."""

    r: float
    g: float
    b: float
    t: float


@dataclass(frozen=True)
class EyeState:
    center: Optional[Point3] = None
    iris: Optional[Point3] = None
    openness: float = 0.0  # normalized eyelid gap; < 1 means partially closed


@dataclass(frozen=True)
class EyeSample:
    left_eye: Optional[EyeState]
    right_eye: Optional[EyeState]
    t: float
    gaze_direction: Optional[Vector3] = None


@dataclass
class Fixation:
    """A run of low-movement iris positions; extended while open."""

    start_time: float
    end_time: float
    duration: float = 0.0
    positions: list[Point3] = field(default_factory=list)


@dataclass(frozen=True)
class Saccade:
    timestamp: float
    magnitude: float


@dataclass(frozen=True)
class AttentionSample:
    timestamp: float
    score: float


@dataclass
class BlinkState:
    last_blink_time: Optional[float] = None
    blink_count: int = 0


class ReadingStatus(str, Enum):
    MEASURED = "measured"
    FALLBACK = "fallback"
    NOT_READY = "not_ready"


@dataclass(frozen=True)
class HeartRateReading:
    bpm: int
    status: ReadingStatus
    confidence: float = 0.0
    t: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.status is ReadingStatus.FALLBACK

    @property
    def is_ready(self) -> bool:
        return self.status is not ReadingStatus.NOT_READY

    @classmethod
    def not_ready(cls, t: Optional[float] = None) -> "HeartRateReading":
        return cls(bpm=0, status=ReadingStatus.NOT_READY, confidence=0.0, t=t)

    def to_dict(self) -> dict:
        return {
            "bpm": int(self.bpm),
            "isFallback": self.is_fallback,
            "status": self.status.value,
            "confidence": float(self.confidence),
            "t": self.t,
        }


@dataclass(frozen=True)
class AttentionMetrics:
    attention_score: int
    fixation_count: int
    avg_fixation_duration: float
    saccade_count: int
    blink_rate: float
    raw_score: float
    sustained_fixation_count: int
    t: float

    def to_dict(self) -> dict:
        return {
            "attentionScore": int(self.attention_score),
            "fixationCount": int(self.fixation_count),
            "avgFixationDuration": float(self.avg_fixation_duration),
            "saccadeCount": int(self.saccade_count),
            "blinkRate": float(self.blink_rate),
            "rawScore": float(self.raw_score),
            "sustainedFixationCount": int(self.sustained_fixation_count),
            "t": self.t,
        }


@dataclass(frozen=True)
class GazeReading:
    direction: Vector3
    t: float

    def to_dict(self) -> dict:
        x, y, z = self.direction
        return {"gazeDirection": {"x": x, "y": y, "z": z}, "t": self.t}
