"""Frame -> ColorSample helpers.

Face detection is left to the caller; these helpers only build pixel masks
(a fixed center region, or cheek/forehead patches inside a supplied face
box) and average the selected pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .types import ColorSample

Box = Tuple[int, int, int, int]  # (x, y, w, h) in pixels


def mean_rgb(
    frame: np.ndarray,
    mask: Optional[np.ndarray] = None,
    order: str = "rgb",
) -> Tuple[float, float, float]:
    """Compute mean (R, G, B) over an optional boolean mask.

    Args:
        frame: HxWx3 uint8 or float array.
        mask: optional HxW boolean array; True selects pixels to include.
        order: channel order of ``frame``, "rgb" or "bgr".
    """
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError("frame must be HxWx3 array")
    if order not in ("rgb", "bgr"):
        raise ValueError(f"unknown channel order: {order!r}")
    px = frame.astype(np.float64)
    if mask is not None:
        if mask.shape != frame.shape[:2]:
            raise ValueError("mask must match frame spatial shape")
        m = mask.astype(bool)
        if not np.any(m):
            return 0.0, 0.0, 0.0
        sel = px[m]
    else:
        sel = px.reshape(-1, 3)
    c0, c1, c2 = sel.mean(axis=0)
    if order == "bgr":
        return float(c2), float(c1), float(c0)
    return float(c0), float(c1), float(c2)


def center_roi_mask(height: int, width: int, fraction: float = 0.4) -> np.ndarray:
    """Boolean mask of a centered rectangle covering ``fraction`` of each side."""
    fraction = float(np.clip(fraction, 0.0, 1.0))
    mask = np.zeros((height, width), dtype=bool)
    rh = int(height * fraction)
    rw = int(width * fraction)
    if rh == 0 or rw == 0:
        return mask
    y0 = int(height * (1.0 - fraction) / 2.0)
    x0 = int(width * (1.0 - fraction) / 2.0)
    mask[y0 : y0 + rh, x0 : x0 + rw] = True
    return mask


def face_box_mask(height: int, width: int, box: Box) -> np.ndarray:
    """Cheek and forehead patches inside a detected face box.

    Cheeks: lower half, outer thirds. Forehead: upper quarter, middle third.
    """
    x, y, bw, bh = (int(v) for v in box)
    x = max(0, min(width - 1, x))
    y = max(0, min(height - 1, y))
    bw = max(1, min(width - x, bw))
    bh = max(1, min(height - y, bh))
    x2, y2 = x + bw, y + bh
    w_third = bw // 3
    h_quarter = bh // 4
    mask = np.zeros((height, width), dtype=bool)
    mask[y + bh // 2 : y2, x : x + w_third] = True
    mask[y + bh // 2 : y2, x2 - w_third : x2] = True
    mask[y : y + h_quarter, x + w_third : x2 - w_third] = True
    return mask


@dataclass
class SamplerConfig:
    center_fraction: float = 0.4
    order: str = "rgb"


class ColorSampler:
    """Turn frames into :class:`ColorSample` values.

    Uses the face box when one is given, otherwise the center region where
    a face is expected.
    """

    def __init__(self, cfg: Optional[SamplerConfig] = None) -> None:
        self.cfg = cfg or SamplerConfig()

    def sample(self, frame: np.ndarray, t: float, face_box: Optional[Box] = None) -> ColorSample:
        h, w = frame.shape[:2]
        if face_box is not None:
            mask = face_box_mask(h, w, face_box)
        else:
            mask = center_roi_mask(h, w, self.cfg.center_fraction)
        r, g, b = mean_rgb(frame, mask=mask, order=self.cfg.order)
        return ColorSample(r=r, g=g, b=b, t=float(t))
