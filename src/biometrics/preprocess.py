"""Signal conditioning for rPPG."""

from __future__ import annotations

import numpy as np
from scipy.signal import butter, lfilter


def zscore(x: np.ndarray) -> np.ndarray:
    """Normalize to zero mean and unit variance (population formulas).

    Non-finite entries are replaced by the mean of the finite ones. A signal
    with zero variance normalizes to all zeros.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    finite = np.isfinite(x)
    if not np.all(finite):
        fill = float(np.mean(x[finite])) if np.any(finite) else 0.0
        x = np.where(finite, x, fill)
    mean = float(np.mean(x))
    std = float(np.std(x))
    if not np.isfinite(std) or std <= 0.0:
        return np.zeros_like(x)
    return (x - mean) / std


def moving_average_highpass(x: np.ndarray, fs: float, low_cut: float) -> np.ndarray:
    """Remove slow drift by subtracting a centered moving average.

    The window extends ``round(2 * fs / low_cut)`` samples on each side and is
    clipped at the edges, so boundary samples average over fewer neighbours.
    Subtracting it keeps oscillations faster than ``low_cut``.

    Args:
        x: 1D array.
        fs: sampling rate [Hz].
        low_cut: low cut [Hz].
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    if n == 0 or fs <= 0 or low_cut <= 0:
        return x.copy()
    half = max(1, int(round(2.0 * fs / low_cut)))
    csum = np.concatenate(([0.0], np.cumsum(x)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - half)
    hi = np.minimum(n - 1, idx + half) + 1
    local_mean = (csum[hi] - csum[lo]) / (hi - lo)
    return x - local_mean


def bandpass(
    x: np.ndarray,
    fs: float,
    fmin: float = 0.75,
    fmax: float = 4.0,
    order: int = 3,
) -> np.ndarray:
    """Causal Butterworth band-pass filter (lfilter).

    Args:
        x: 1D array.
        fs: sampling rate [Hz].
        fmin: low cut [Hz].
        fmax: high cut [Hz].
        order: IIR order.
    """
    x = np.asarray(x, dtype=np.float64)
    nyq = 0.5 * fs
    if nyq <= 0:
        return x.copy()
    low = max(1e-6, fmin / nyq)
    high = min(0.999, fmax / nyq)
    if not (0 < low < high < 1):
        return x.copy()
    b, a = butter(order, [low, high], btype="band")
    return lfilter(b, a, x)
