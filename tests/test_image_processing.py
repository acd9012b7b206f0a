# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import numpy as np
import pytest

from hand_detection.errors import InvalidInputError
from hand_detection.image_processing import (
    decode_image,
    normalize_radians,
    raw_pixels_to_rgb,
    resize_pad,
)
from hand_detection.types import PixelFormat


def test_resize_pad_letterboxes():
    image = np.full((100, 200, 3), 255, dtype=np.uint8)

    padded, scale, (pad_left, pad_top) = resize_pad(image, (192, 192))

    assert padded.shape == (192, 192, 3)
    assert scale == pytest.approx(0.96)
    assert (pad_left, pad_top) == (0, 48)
    assert padded[10, 96].max() == 0
    assert padded[96, 96].min() == 255


def test_normalize_radians():
    np.testing.assert_allclose(
        normalize_radians(np.array([np.pi, 3 * np.pi / 2, -np.pi / 2])),
        [-np.pi, -np.pi / 2, -np.pi / 2],
    )


@pytest.mark.parametrize(
    "pixel_format, pixel",
    [
        (PixelFormat.RGB, [10, 20, 30]),
        (PixelFormat.BGR, [30, 20, 10]),
        (PixelFormat.RGBA, [10, 20, 30, 255]),
        (PixelFormat.BGRA, [30, 20, 10, 255]),
    ],
)
def test_raw_pixels_to_rgb(pixel_format, pixel):
    data = np.tile(np.array(pixel, dtype=np.uint8), 4 * 3).tobytes()

    rgb = raw_pixels_to_rgb(data, 4, 3, pixel_format)

    assert rgb.shape == (3, 4, 3)
    np.testing.assert_array_equal(rgb[1, 2], [10, 20, 30])


def test_raw_gray_pixels():
    rgb = raw_pixels_to_rgb(bytes([7] * 6), 3, 2, PixelFormat.GRAY)
    assert rgb.shape == (2, 3, 3)
    assert np.all(rgb == 7)


def test_raw_pixels_skip_row_padding():
    rows = np.zeros((2, 8), dtype=np.uint8)
    rows[:, :6] = [1, 2, 3, 4, 5, 6]
    rows[:, 6:] = 99

    rgb = raw_pixels_to_rgb(rows.tobytes(), 2, 2, PixelFormat.RGB, row_stride=8)

    np.testing.assert_array_equal(rgb.reshape(-1), [1, 2, 3, 4, 5, 6] * 2)


def test_raw_pixels_too_small():
    with pytest.raises(InvalidInputError):
        raw_pixels_to_rgb(bytes(10), 4, 4, PixelFormat.RGB)
    with pytest.raises(InvalidInputError):
        raw_pixels_to_rgb(bytes(48), 0, 4, PixelFormat.RGB)


def test_decode_image_rejects_garbage():
    with pytest.raises(InvalidInputError):
        decode_image(b"\x00\x01\x02")
