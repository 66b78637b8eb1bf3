"""Peak picking and peak-interval BPM."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def find_peaks(
    signal: np.ndarray,
    min_distance: int,
    amplitude_floor: float = 0.1,
) -> list[int]:
    """Return indices of local maxima separated by ``min_distance`` samples.

    A sample qualifies when it is strictly greater than both neighbours and
    above ``amplitude_floor``. A qualifying sample closer than
    ``min_distance`` to the last accepted peak replaces it only when higher.
    """
    s = np.asarray(signal, dtype=np.float64)
    peaks: list[int] = []
    for i in range(1, s.size - 1):
        if not (s[i] > s[i - 1] and s[i] > s[i + 1]):
            continue
        if s[i] <= amplitude_floor:
            continue
        if not peaks or i - peaks[-1] >= min_distance:
            peaks.append(i)
        elif s[i] > s[peaks[-1]]:
            peaks[-1] = i
    return peaks


def bpm_from_peak_times(times_ms: Sequence[float]) -> Optional[float]:
    """Convert peak timestamps (ms) to BPM via the mean inter-peak interval.

    Returns None with fewer than two peaks or a non-positive mean interval.
    """
    t = np.asarray(times_ms, dtype=np.float64)
    if t.size < 2:
        return None
    mean_interval = float(np.mean(np.diff(t))) / 1000.0
    if not np.isfinite(mean_interval) or mean_interval <= 0:
        return None
    return 60.0 / mean_interval
