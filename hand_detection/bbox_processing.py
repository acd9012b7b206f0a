# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from typing import Optional, Tuple

import cv2
import numpy as np


def compute_iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Compute the Intersection over Union (IoU) between a single box and an array of boxes.

    Parameters
    ----------
    box : np.ndarray
        The reference box in the format ``(x1, y1, x2, y2)``.
    boxes : np.ndarray
        An array of boxes, each in the format ``(x1, y1, x2, y2)``.

    Returns
    -------
    ndarray of shape (N,)
        IoU values for each box in `boxes` with respect to `box`.
    """
    boxes = np.atleast_2d(boxes)

    # Intersection coordinates
    x1 = np.maximum(box[0], boxes[:, 0])
    y1 = np.maximum(box[1], boxes[:, 1])
    x2 = np.minimum(box[2], boxes[:, 2])
    y2 = np.minimum(box[3], boxes[:, 3])

    intersection = np.maximum(0, x2 - x1) * np.maximum(0, y2 - y1)

    box_area = (box[2] - box[0]) * (box[3] - box[1])
    boxes_area = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = box_area + boxes_area - intersection

    return intersection / np.maximum(union, 1e-10)


def nms(
    boxes: np.ndarray,
    scores: np.ndarray,
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> np.ndarray:
    """
    Perform greedy Non-Maximum Suppression (NMS) on a set of axis-aligned boxes.

    Parameters
    ----------
    boxes : np.ndarray of shape (N, 4)
        Bounding boxes in the format ``(x1, y1, x2, y2)``.
    scores : np.ndarray of shape (N,)
        Confidence scores associated with each box.
    iou_threshold : float
        A box is suppressed when its IoU with a kept box exceeds this value.
    max_detections : int, optional
        Stop once this many boxes are kept.

    Returns
    -------
    np.ndarray of shape (M,)
        Indices of the kept boxes in descending score order, where ``M ≤ N``.
    """
    # Stable sort keeps the anchor order among equal scores
    order = np.argsort(-np.asarray(scores), kind="stable")

    keep = []
    while len(order) > 0:
        idx = order[0]
        keep.append(idx)

        if len(order) == 1:
            break
        if max_detections is not None and len(keep) >= max_detections:
            break

        remaining = order[1:]
        ious = compute_iou(boxes[idx], boxes[remaining])

        order = remaining[ious <= iou_threshold]

    return np.array(keep, dtype=np.int64)


def box_xywh_to_xyxy(box_cwh: np.ndarray) -> np.ndarray:
    """
    Convert center (xc, yc), width (w), height (h) to (x0, y0, x1, y1).

    Parameters
    ----------
    box_cwh : np.ndarray
        Bounding boxes. Shape is [..., 4] with layout [xc, yc, w, h]

    Returns
    -------
    box_xyxy : np.ndarray
        Shape [..., 4] with layout [x0, y0, x1, y1]
    """
    box_cwh = np.asarray(box_cwh)

    cx = box_cwh[..., 0]
    cy = box_cwh[..., 1]
    w_2 = box_cwh[..., 2] * 0.5
    h_2 = box_cwh[..., 3] * 0.5

    return np.stack((cx - w_2, cy - h_2, cx + w_2, cy + h_2), axis=-1)


def apply_directional_box_offset(
    offset: float | np.ndarray,
    vec_start: np.ndarray,
    vec_end: np.ndarray,
    xc: np.ndarray,
    yc: np.ndarray,
) -> None:
    """
    Offset the bounding box defined by [xc, yc] by a pre-determined length.
    The offset is applied along the direction from vec_start -> vec_end.

    Parameters
    ----------
    offset : float or np.ndarray
        Offset magnitude (absolute units). Can be scalar or array broadcastable to [B].
    vec_start : np.ndarray
        Starting point of the vector. Shape [B, 2] where 2 == (x, y).
    vec_end : np.ndarray
        Ending point of the vector. Shape [B, 2] where 2 == (x, y).
    xc : np.ndarray
        x center(s) of box(es). Modified in-place.
    yc : np.ndarray
        y center(s) of box(es). Modified in-place.
    """
    vec_start = np.asarray(vec_start)
    vec_end = np.asarray(vec_end)

    xlen = vec_end[..., 0] - vec_start[..., 0]
    ylen = vec_end[..., 1] - vec_start[..., 1]

    # Degenerate vectors leave the center untouched
    vec_len = np.sqrt(np.square(xlen) + np.square(ylen))
    safe_len = np.maximum(vec_len, 1e-12)

    xc += offset * (xlen / safe_len)
    yc += offset * (ylen / safe_len)


def compute_box_corners_with_rotation(
    xc: np.ndarray,
    yc: np.ndarray,
    w: np.ndarray,
    h: np.ndarray,
    theta: np.ndarray,
) -> np.ndarray:
    """
    From the provided information, compute the (x, y) coordinates of the box's corners.

    Parameters
    ----------
    xc : np.ndarray
        Center of box (x). Shape [B]
    yc : np.ndarray
        Center of box (y). Shape [B]
    w : np.ndarray
        Width of box. Shape [B]
    h : np.ndarray
        Height of box. Shape [B]
    theta : np.ndarray
        Rotation of box (in radians). Shape [B]

    Returns
    -------
    corners : np.ndarray
        Computed corners. Shape [B, 4, 2], where the last dim is (x, y).
        Corner order is (top-left, bottom-left, top-right, bottom-right).
    """
    xc = np.asarray(xc, dtype=np.float64)
    yc = np.asarray(yc, dtype=np.float64)
    w = np.asarray(w, dtype=np.float64)
    h = np.asarray(h, dtype=np.float64)
    theta = np.asarray(theta, dtype=np.float64)

    batch_size = xc.shape[0]

    # Unit square in a fixed corner order: TL, BL, TR. Rows are (x; y)
    base = np.array([[-1, -1, 1, 1], [-1, 1, -1, 1]], dtype=np.float64)
    points = np.broadcast_to(base, (batch_size, *base.shape)).copy()  # [B, 2, 4]

    half_wh = np.stack((w / 2.0, h / 2.0), axis=-1)[:, :, None]  # [B, 2, 1]
    points = points * half_wh

    # R = [[cos, -sin], [sin, cos]] per item -> [B, 2, 2]
    cos_t = np.cos(theta)
    sin_t = np.sin(theta)
    R = np.stack(
        (
            np.stack((cos_t, -sin_t), axis=1),
            np.stack((sin_t, cos_t), axis=1),
        ),
        axis=1,
    )
    points = R @ points

    centers = np.stack((xc, yc), axis=1)[:, :, None]  # [B, 2, 1]
    points = points + centers

    return np.swapaxes(points, -1, -2)  # [B, 4, 2]


def compute_box_affine_crop_matrix(
    box_corners: np.ndarray, output_image_size: Tuple[int, int]
) -> np.ndarray:
    """
    Compute the affine transform that maps the rotated box defined by the input
    corners onto an upright output image of the given size.

    The box edges land on the output image edges, so a box whose sides match
    the output size is mapped by a pure rotation and translation.

    Parameters
    ----------
    box_corners : np.ndarray
        Bounding box corners to map *from*. Shape [K, 2] with K >= 3 in
        (top-left, bottom-left, top-right, ...) order. Only the first 3 are used.

    output_image_size : Tuple[int, int]
        Output (width, height) to which the box is mapped.

    Returns
    -------
    affine : np.ndarray
        Affine matrix of shape (2, 3).
    """
    out_w, out_h = output_image_size

    # top-left -> (0, 0), bottom-left -> (0, H), top-right -> (W, 0)
    network_input_points = np.array([[0, 0], [0, out_h], [out_w, 0]], dtype=np.float32)

    box_corners = np.asarray(box_corners)
    if box_corners.ndim != 2 or box_corners.shape[-1] != 2:
        raise ValueError(f"`box_corners` must have shape [K, 2]; got {box_corners.shape}")
    if box_corners.shape[0] < 3:
        raise ValueError(
            f"`box_corners` must provide at least 3 corners; got K={box_corners.shape[0]}"
        )

    src = box_corners[:3, :].astype(np.float32)
    return cv2.getAffineTransform(src, network_input_points)
