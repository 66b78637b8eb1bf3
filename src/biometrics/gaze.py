"""Weak-3D gaze direction from iris offsets."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import EyeSample, EyeState, Point3, Vector3


def _offset(eye: Optional[EyeState]) -> Optional[np.ndarray]:
    if eye is None or eye.iris is None or eye.center is None:
        return None
    return np.asarray(eye.iris, dtype=np.float64) - np.asarray(eye.center, dtype=np.float64)


def gaze_direction(sample: EyeSample) -> Optional[Vector3]:
    """Unit vector of the mean eye-center -> iris offset over both eyes.

    Returns None unless both eyes expose a center and an iris; returns the
    zero vector when the offsets cancel out.
    """
    left = _offset(sample.left_eye)
    right = _offset(sample.right_eye)
    if left is None or right is None:
        return None
    v = 0.5 * (left + right)
    mag = float(np.linalg.norm(v))
    if not np.isfinite(mag) or mag <= 0.0:
        return Point3(0.0, 0.0, 0.0)
    v = v / mag
    return Point3(float(v[0]), float(v[1]), float(v[2]))
