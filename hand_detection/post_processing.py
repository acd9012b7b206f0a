# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from typing import Tuple

import numpy as np

import hand_detection.constants as C


def sigmoid(
    values: np.ndarray | float,
    clip_threshold: float = C.DETECTOR_SCORE_CLIPPING_THRESHOLD,
) -> np.ndarray:
    """Logistic function with the input clipped to +/- ``clip_threshold``."""
    clipped = np.clip(np.asarray(values, dtype=np.float64), -clip_threshold, clip_threshold)
    return 1.0 / (1.0 + np.exp(-clipped))


def decode_preds_from_anchors(
    box_coords: np.ndarray, img_size: Tuple[int, int], anchors: np.ndarray
) -> None:
    """
    Decode anchor-relative predictions in place.

    Every row of ``box_coords`` is an (x, y) offset in network input pixels.
    Row 0 is the box center, row 1 the box size and any further rows are
    keypoints. Offsets are scaled by the anchor size over the network input
    size; the center and keypoint rows are then moved to the anchor center.

    Parameters
    ----------
    box_coords : np.ndarray
        Shape [..., K, 2] with K >= 2. Updated in place to normalized [0, 1]
        coordinates.
    img_size : (int, int)
        (width, height) of the network input.
    anchors : np.ndarray
        Shape [..., 2, 2], rows ((x_center, y_center), (w, h)).
    """
    if box_coords.shape[-1] != 2 or box_coords.shape[-2] < 2:
        raise ValueError(f"Expected box coordinates of shape [..., K>=2, 2], got {box_coords.shape}")

    centers = anchors[..., np.newaxis, 0, :]
    box_coords *= anchors[..., np.newaxis, 1, :] / np.asarray(img_size, dtype=np.float64)
    box_coords[..., 0:1, :] += centers
    box_coords[..., 2:, :] += centers
