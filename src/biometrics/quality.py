"""Confidence figures for heart-rate readings.

Both metrics look at the magnitude spectrum around the in-band peak: the
SNR compares the peak band with the median of the remaining bins, the
prominence compares the peak with its immediate neighbourhood.
"""

from __future__ import annotations

import numpy as np


def snr_db(mag: np.ndarray, peak_index: int, guard_bins: int = 1, band_bins: int = 1) -> float:
    """SNR of the peak band against the median of bins outside a guard region."""
    p = np.asarray(mag, dtype=np.float64)
    n = p.size
    if n == 0 or not 0 <= peak_index < n:
        return 0.0
    i0 = max(0, peak_index - band_bins)
    i1 = min(n, peak_index + band_bins + 1)
    sig = float(np.mean(p[i0:i1]))
    outside = np.ones(n, dtype=bool)
    outside[max(0, i0 - guard_bins) : min(n, i1 + guard_bins)] = False
    if not np.any(outside):
        return 0.0
    noise = float(np.median(p[outside]))
    if noise <= 0.0 or sig <= 0.0:
        return 0.0
    return 10.0 * float(np.log10(sig / noise))


def peak_confidence(mag: np.ndarray, peak_index: int, neighborhood: int = 2) -> float:
    """0..1 prominence: (peak - local median) / (peak + local median)."""
    p = np.asarray(mag, dtype=np.float64)
    if p.size == 0 or not 0 <= peak_index < p.size:
        return 0.0
    local = p[max(0, peak_index - neighborhood) : min(p.size, peak_index + neighborhood + 1)]
    peak = float(p[peak_index])
    med = float(np.median(local))
    c = max(0.0, peak - med) / max(1e-9, peak + med)
    return float(np.clip(c, 0.0, 1.0))


def reading_confidence(
    snr: float,
    prominence: float,
    snr_scale: float = 15.0,
    ceiling: float = 1.0,
) -> float:
    """Combine SNR and prominence into one 0..``ceiling`` figure."""
    if not (np.isfinite(snr) and np.isfinite(prominence)):
        return 0.0
    value = (max(0.0, snr) / snr_scale) * prominence
    return float(np.clip(value, 0.0, ceiling))
