# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import numpy as np
import pytest

from hand_detection.cropper import compute_crop_region, crop_hand_region
from hand_detection.errors import InvalidRegionError
from hand_detection.types import OrientedBox


def marker_image(x, y):
    image = np.zeros((200, 200, 3), dtype=np.uint8)
    image[y - 2 : y + 3, x - 2 : x + 3] = 255
    return image


def test_crop_output_shape():
    image = np.zeros((120, 200, 3), dtype=np.uint8)
    box = OrientedBox(100, 60, 80, 80, 0.0, 0.9)

    crop = crop_hand_region(image, box, 224)

    assert crop.image.shape == (224, 224, 3)
    assert crop.image.dtype == np.uint8
    assert crop.resized_size == (224, 224)
    assert crop.transform.crop_size == (80, 80)
    assert crop.transform.image_size == (200, 120)


@pytest.mark.parametrize("rotation", [0.0, 0.3, -1.2, 3.0])
def test_crop_transform_round_trip(rotation):
    image = np.zeros((200, 200, 3), dtype=np.uint8)
    box = OrientedBox(90, 110, 100, 100, rotation, 0.9)
    points = np.array([[90, 110], [60, 70], [130, 150], [45.5, 120.25]])

    transform = crop_hand_region(image, box).transform

    np.testing.assert_allclose(transform.to_image(transform.to_crop(points)), points, atol=0.5)
    np.testing.assert_allclose(transform.to_crop([[90, 110]]), [[112, 112]], atol=1e-6)


@pytest.mark.parametrize("rotation", [0.0, 0.3, np.pi / 2, -2.0])
def test_crop_pixels_follow_transform(rotation):
    image = marker_image(120, 80)
    box = OrientedBox(100, 100, 100, 100, rotation, 0.9)

    crop = crop_hand_region(image, box)

    u, v = crop.transform.to_crop([[120, 80]])[0]
    assert crop.image[int(round(v)), int(round(u))].min() > 128
    u, v = crop.transform.to_crop([[80, 120]])[0]
    assert crop.image[int(round(v)), int(round(u))].max() == 0


def test_crop_zero_fills_outside_image():
    image = np.full((100, 100, 3), 200, dtype=np.uint8)
    box = OrientedBox(0, 0, 60, 60, 0.0, 0.9)

    crop = crop_hand_region(image, box)

    assert crop.image[10, 10].max() == 0
    assert crop.image[200, 200].min() == 200


def test_crop_region_is_clipped():
    box = OrientedBox(10, 190, 40, 40, 0.0, 0.9)
    assert compute_crop_region(box, 200, 200) == (0, 170, 30, 200)


def test_box_outside_image_is_invalid():
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    with pytest.raises(InvalidRegionError):
        crop_hand_region(image, OrientedBox(-500, -500, 50, 50, 0.0, 0.9))
    with pytest.raises(InvalidRegionError):
        crop_hand_region(image, OrientedBox(50, 50, 0, 0, 0.0, 0.9))


def test_crop_region_covers_rounded_crop_size():
    # 20.1 px box warped at 21 px: the region must cover the wider box
    box = OrientedBox(50.45, 50.45, 20.1, 20.1, 0.0, 0.9)
    assert compute_crop_region(box, 100, 100) == (39, 39, 61, 61)


def test_crop_inside_image_has_no_zero_filled_edges():
    image = np.full((100, 100, 3), 255, dtype=np.uint8)
    box = OrientedBox(50.45, 50.45, 20.1, 20.1, 0.0, 0.9)

    crop = crop_hand_region(image, box)

    assert crop.transform.crop_size == (21, 21)
    assert crop.image.min() >= 250
