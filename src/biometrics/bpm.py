"""Spectral BPM estimation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .quality import peak_confidence, reading_confidence, snr_db


@dataclass(frozen=True)
class SpectralPeak:
    bpm: float  # 0.0 when no valid peak
    freq_hz: float
    snr: float
    prominence: float

    @property
    def confidence(self) -> float:
        return reading_confidence(self.snr, self.prominence)


def estimate_bpm(
    signal: np.ndarray,
    fs: float,
    fmin: float = 0.75,
    fmax: float = 4.0,
) -> SpectralPeak:
    """Estimate BPM by the peak of the band-limited magnitude spectrum.

    A Hann window reduces leakage. Invalid input yields a zero peak.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    if n < 8 or fs <= 0 or not np.all(np.isfinite(x)):
        return SpectralPeak(0.0, 0.0, 0.0, 0.0)
    X = np.fft.rfft((x - x.mean()) * np.hanning(n))
    freqs = np.fft.rfftfreq(n, d=1.0 / fs)
    band = (freqs >= max(0.0, fmin)) & (freqs <= fmax)
    mag = np.abs(X)
    if not np.any(band) or not np.any(mag[band] > 0):
        return SpectralPeak(0.0, 0.0, 0.0, 0.0)
    idx = int(np.argmax(mag * band))
    f_peak = float(freqs[idx])
    return SpectralPeak(
        bpm=60.0 * f_peak if f_peak > 0 else 0.0,
        freq_hz=f_peak,
        snr=snr_db(mag, idx),
        prominence=peak_confidence(mag, idx),
    )
