from __future__ import annotations

import numpy as np
import pytest

from biometrics.roi import ColorSampler, SamplerConfig, center_roi_mask, face_box_mask, mean_rgb


def test_mean_rgb_averages_skin_patch() -> None:
    skin = (200, 150, 120)
    frame = np.full((4, 4, 3), 40, dtype=np.uint8)
    frame[1:3, 1:3] = skin
    patch = np.zeros((4, 4), dtype=bool)
    patch[1:3, 1:3] = True

    assert mean_rgb(frame, mask=patch) == (200.0, 150.0, 120.0)
    r, g, _ = mean_rgb(frame)
    assert np.isclose(g, (4 * 150 + 12 * 40) / 16.0)
    assert np.isclose(r, (4 * 200 + 12 * 40) / 16.0)
    # a BGR capture of the same pixels reads the outer channels reversed
    assert mean_rgb(frame, mask=patch, order="bgr") == (120.0, 150.0, 200.0)


def test_mean_rgb_rejects_bad_shapes() -> None:
    with pytest.raises(ValueError):
        mean_rgb(np.zeros((4, 4)))
    with pytest.raises(ValueError):
        mean_rgb(np.zeros((4, 4, 3)), mask=np.ones((2, 2), dtype=bool))
    assert mean_rgb(np.ones((4, 4, 3)), mask=np.zeros((4, 4), dtype=bool)) == (0.0, 0.0, 0.0)


def test_center_roi_mask_covers_middle() -> None:
    mask = center_roi_mask(10, 10, fraction=0.4)
    assert mask.sum() == 16
    assert mask[3:7, 3:7].all()
    assert not mask[0].any()


def test_face_box_mask_stays_inside_box() -> None:
    mask = face_box_mask(100, 100, (20, 10, 60, 80))
    assert mask.any()
    assert not mask[:, :20].any() and not mask[:, 80:].any()
    assert not mask[:10].any() and not mask[90:].any()


def test_color_sampler_on_uniform_frame() -> None:
    frame = np.zeros((32, 32, 3), dtype=np.uint8)
    frame[...] = (10, 20, 30)
    sample = ColorSampler().sample(frame, t=123.0)
    assert (sample.r, sample.g, sample.b, sample.t) == (10.0, 20.0, 30.0, 123.0)
    bgr = ColorSampler(SamplerConfig(order="bgr")).sample(frame, t=0.0, face_box=(4, 4, 24, 24))
    assert (bgr.r, bgr.b) == (30.0, 10.0)
