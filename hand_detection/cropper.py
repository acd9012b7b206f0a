# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np

import hand_detection.constants as C
from hand_detection.bbox_processing import compute_box_affine_crop_matrix
from hand_detection.errors import InvalidRegionError
from hand_detection.image_processing import (
    apply_affine_to_frame,
    compute_resize_scale,
    resize_pad,
)
from hand_detection.types import CropTransform, OrientedBox


@dataclass(frozen=True)
class HandCrop:
    """
    Input of the landmark model for one palm box.

    ``image`` is the letterboxed, rotation-normalized crop; ``resized_size`` is
    the (width, height) of the crop content before padding.
    """

    image: np.ndarray
    resized_size: Tuple[int, int]
    transform: CropTransform


def crop_size(box: OrientedBox) -> Tuple[int, int]:
    # Integer crop size keeps the region -> crop mapping a pure rotation
    return max(1, math.ceil(box.width)), max(1, math.ceil(box.height))


def compute_crop_region(
    box: OrientedBox, image_width: int, image_height: int
) -> Tuple[int, int, int, int]:
    """
    Smallest integer, axis-aligned region (x0, y0, x1, y1) of the image that
    covers the rotated box, clipped to the image bounds.

    The box is bounded at its warped size (see ``crop_size``) so the warp never
    reads outside the region for pixels that lie inside the image.

    Raises
    ------
    InvalidRegionError
        If the clipped region is empty.
    """
    if not (box.width > 0 and box.height > 0):
        raise InvalidRegionError(f"Box has no area: {box}")

    crop_w, crop_h = crop_size(box)
    bounds = replace(box, width=crop_w, height=crop_h).bounding_box()
    x0 = max(0, math.floor(bounds.left))
    y0 = max(0, math.floor(bounds.top))
    x1 = min(image_width, math.ceil(bounds.right))
    y1 = min(image_height, math.ceil(bounds.bottom))

    if x1 <= x0 or y1 <= y0:
        raise InvalidRegionError(
            f"Box {box} does not overlap the {image_width}x{image_height} image"
        )
    return x0, y0, x1, y1


def crop_hand_region(
    image: np.ndarray,
    box: OrientedBox,
    output_size: int = C.LANDMARK_INPUT_SIZE,
) -> HandCrop:
    """
    Cut the rotated box out of the image, rotate it upright and letterbox it.

    Only the in-bounds region covering the box is read; parts of the box that
    fall outside the image are zero filled.

    Parameters
    ----------
    image
        RGB image, shape [H, W, 3], dtype uint8.
    box
        Square palm region from the decoder, in image pixels.
    output_size
        Side of the square landmark model input.

    Returns
    -------
    HandCrop
        Letterboxed crop and the transform back to image pixels.
    """
    image_height, image_width = image.shape[:2]
    x0, y0, x1, y1 = compute_crop_region(box, image_width, image_height)
    region = image[y0:y1, x0:x1]

    crop_w, crop_h = crop_size(box)
    upright_box = OrientedBox(
        center_x=box.center_x - x0,
        center_y=box.center_y - y0,
        width=crop_w,
        height=crop_h,
        rotation=box.rotation,
        score=box.score,
    )
    affine = compute_box_affine_crop_matrix(upright_box.corners(), (crop_w, crop_h))
    upright_crop = apply_affine_to_frame(region, affine, (crop_w, crop_h))

    padded, _, (pad_left, pad_top) = resize_pad(upright_crop, (output_size, output_size))
    _, (resized_h, resized_w) = compute_resize_scale(
        (crop_h, crop_w), (output_size, output_size)
    )

    transform = CropTransform(
        resize_scale=(resized_w / crop_w, resized_h / crop_h),
        half_pad=(float(pad_left), float(pad_top)),
        rotation=box.rotation,
        origin_center=(box.center_x, box.center_y),
        crop_size=(crop_w, crop_h),
        image_size=(image_width, image_height),
        input_size=output_size,
    )
    return HandCrop(image=padded, resized_size=(resized_w, resized_h), transform=transform)
