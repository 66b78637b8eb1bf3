"""Face-mesh landmarks -> EyeSample.

Expects MediaPipe Face Mesh ordering in normalized image coordinates. Iris
centers are only available from the refined mesh (478 points).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

import numpy as np

from .gaze import gaze_direction
from .types import EyeSample, EyeState, Point3

LEFT_EYE = (33, 133, 160, 159, 158, 144, 145, 153)
RIGHT_EYE = (362, 263, 386, 385, 384, 373, 374, 380)
LEFT_LIDS = (159, 145)  # upper, lower
RIGHT_LIDS = (386, 374)
LEFT_IRIS = (468, 469, 470, 471, 472)
RIGHT_IRIS = (473, 474, 475, 476, 477)
REFINED_MESH_SIZE = 478

# Eyelid gap of an open eye in normalized coordinates
OPEN_EYE_GAP = 0.03


def _as_array(landmarks: Sequence[Sequence[float]]) -> np.ndarray:
    pts = np.asarray(landmarks, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] not in (2, 3):
        raise ValueError("landmarks must be an Nx2 or Nx3 array")
    if pts.shape[1] == 2:
        pts = np.hstack([pts, np.zeros((pts.shape[0], 1))])
    return pts


def centroid(points: np.ndarray) -> Point3:
    c = points.mean(axis=0)
    return Point3(float(c[0]), float(c[1]), float(c[2]))


def eye_openness(upper: np.ndarray, lower: np.ndarray, open_gap: float = OPEN_EYE_GAP) -> float:
    """Vertical upper/lower lid distance normalized by an open-eye gap."""
    if open_gap <= 0:
        return 0.0
    return float(abs(upper[1] - lower[1]) / open_gap)


def _eye_state(
    pts: np.ndarray,
    eye_idx: Sequence[int],
    lid_idx: Sequence[int],
    iris_idx: Sequence[int],
) -> EyeState:
    iris: Optional[Point3] = None
    if pts.shape[0] >= REFINED_MESH_SIZE:
        iris = centroid(pts[list(iris_idx)])
    return EyeState(
        center=centroid(pts[list(eye_idx)]),
        iris=iris,
        openness=eye_openness(pts[lid_idx[0]], pts[lid_idx[1]]),
    )


def eye_sample_from_landmarks(
    landmarks: Optional[Sequence[Sequence[float]]],
    t: float,
) -> Optional[EyeSample]:
    """Build an EyeSample from one face's landmarks; None when no face was found."""
    if landmarks is None:
        return None
    pts = _as_array(landmarks)
    if pts.shape[0] <= max(RIGHT_EYE):
        return None
    left = _eye_state(pts, LEFT_EYE, LEFT_LIDS, LEFT_IRIS)
    right = _eye_state(pts, RIGHT_EYE, RIGHT_LIDS, RIGHT_IRIS)
    sample = EyeSample(left_eye=left, right_eye=right, t=float(t))
    return replace(sample, gaze_direction=gaze_direction(sample))
