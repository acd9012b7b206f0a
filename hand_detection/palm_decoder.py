# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

import hand_detection.constants as C
from hand_detection.bbox_processing import apply_directional_box_offset, nms
from hand_detection.errors import InvalidInputError
from hand_detection.image_processing import (
    compute_vector_rotation,
    denormalize_coordinates,
)
from hand_detection.post_processing import decode_preds_from_anchors, sigmoid
from hand_detection.types import OrientedBox, RawDetection

logger = logging.getLogger(__name__)


def decode_raw_detections(
    raw_boxes: np.ndarray,
    raw_scores: np.ndarray,
    anchors: np.ndarray,
    input_size: int,
    min_score: float,
) -> List[RawDetection]:
    """
    Turn raw palm detector tensors into scored candidates.

    Parameters
    ----------
    raw_boxes
        Box regression output. Shape [1, N, 4 + 2K] or [N, 4 + 2K], layout
        (dx, dy, dw, dh, kp0_dx, kp0_dy, ...) in network input pixels.
    raw_scores
        Raw (pre-sigmoid) scores. Shape [1, N, 1], [1, N] or [N].
    anchors
        Anchor table of shape [N, 2, 2] (see ``generate_anchors``).
    input_size
        Side of the square detector input.
    min_score
        Candidates whose sigmoid score is below this value are discarded.

    Returns
    -------
    List[RawDetection]
        Candidates in anchor order, with normalized coordinates.
    """
    num_anchors = anchors.shape[0]
    raw_boxes = np.asarray(raw_boxes, dtype=np.float64)
    raw_scores = np.asarray(raw_scores, dtype=np.float64).reshape(-1)

    if raw_boxes.size == 0 or num_anchors == 0:
        raise InvalidInputError("Palm detector returned an empty tensor")
    raw_boxes = raw_boxes.reshape(-1, raw_boxes.shape[-1])
    if raw_boxes.shape[0] != num_anchors or raw_scores.shape[0] != num_anchors:
        raise InvalidInputError(
            f"Palm detector output has {raw_boxes.shape[0]} boxes and "
            f"{raw_scores.shape[0]} scores for {num_anchors} anchors"
        )
    # Rotation needs the keypoints up to KEYPOINT_ROTATION_VEC_END_IDX
    min_cols = 4 + 2 * (C.KEYPOINT_ROTATION_VEC_END_IDX + 1)
    if raw_boxes.shape[1] < min_cols or raw_boxes.shape[1] % 2 != 0:
        raise InvalidInputError(
            f"Palm detector box tensor has {raw_boxes.shape[1]} coordinates per anchor"
        )

    scores = sigmoid(raw_scores)
    selected = np.nonzero(scores >= min_score)[0]
    if selected.size == 0:
        return []

    # [S, K, 2] where row 0 = center, row 1 = size, rows 2+ = keypoints
    coords = raw_boxes[selected].reshape(selected.size, -1, 2).copy()
    decode_preds_from_anchors(
        coords, (input_size, input_size), anchors[selected].astype(np.float64)
    )

    return [
        RawDetection(
            score=float(scores[anchor_idx]),
            center_x=float(coords[i, 0, 0]),
            center_y=float(coords[i, 0, 1]),
            width=float(coords[i, 1, 0]),
            height=float(coords[i, 1, 1]),
            keypoints=coords[i, 2:].copy(),
        )
        for i, anchor_idx in enumerate(selected)
    ]


def non_max_suppression(
    detections: Sequence[RawDetection],
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> List[RawDetection]:
    """
    Greedy NMS over descending score, keeping at most ``max_detections``
    boxes when given.

    Overlap is measured on the axis-aligned decoded boxes; rotation is not
    taken into account.
    """
    if not detections:
        return []

    boxes = np.stack([d.to_xyxy() for d in detections])
    scores = np.array([d.score for d in detections])
    keep = nms(boxes, scores, iou_threshold, max_detections)
    return [detections[i] for i in keep]


def compute_rotation(keypoints: np.ndarray) -> float:
    """
    In-plane rotation of a palm from its wrist and middle-finger keypoints.

    0 means the fingers point to the top of the image; the result is
    normalized to [-pi, pi).
    """
    keypoints = np.asarray(keypoints, dtype=np.float64)
    theta = compute_vector_rotation(
        keypoints[np.newaxis, C.KEYPOINT_ROTATION_VEC_START_IDX],
        keypoints[np.newaxis, C.KEYPOINT_ROTATION_VEC_END_IDX],
        C.ROTATION_OFFSET_RADS,
    )
    return float(theta[0])


def to_oriented_box(
    detection: RawDetection,
    input_size: int,
    scale: float = 1.0,
    pad: Tuple[int, int] = (0, 0),
) -> OrientedBox:
    """
    Map a normalized detection to original image pixels and grow it into the
    square, rotated region the landmark model expects.

    The center is shifted toward the fingers by ``DETECT_BOX_OFFSET_XY`` of
    the box size, then the box is squared and scaled by ``DETECT_BOX_SCALE``.

    Parameters
    ----------
    detection
        Candidate from ``decode_raw_detections``.
    input_size
        Side of the square detector input.
    scale, pad
        Letterbox parameters used to build the detector input (see ``resize_pad``).
    """
    net_size = (input_size, input_size)
    center = denormalize_coordinates(
        np.array([detection.center_x, detection.center_y]), net_size, scale, pad
    )
    keypoints = denormalize_coordinates(detection.keypoints, net_size, scale, pad)
    width = detection.width * input_size / scale
    height = detection.height * input_size / scale

    theta = compute_rotation(keypoints)

    size = max(width, height)
    xc = np.array([center[0]])
    yc = np.array([center[1]])
    apply_directional_box_offset(
        C.DETECT_BOX_OFFSET_XY * size,
        keypoints[np.newaxis, C.KEYPOINT_ROTATION_VEC_START_IDX],
        keypoints[np.newaxis, C.KEYPOINT_ROTATION_VEC_END_IDX],
        xc,
        yc,
    )

    size *= C.DETECT_BOX_SCALE
    return OrientedBox(
        center_x=float(xc[0]),
        center_y=float(yc[0]),
        width=float(size),
        height=float(size),
        rotation=theta,
        score=detection.score,
    )


def box_in_image(box: OrientedBox, image_width: int, image_height: int) -> bool:
    """True when the box covers a positive area of the image."""
    clipped = box.bounding_box().clip(image_width, image_height)
    return clipped.width > 0 and clipped.height > 0


def decode_palm_detections(
    raw_boxes: np.ndarray,
    raw_scores: np.ndarray,
    anchors: np.ndarray,
    input_size: int,
    image_size: Tuple[int, int],
    scale: float = 1.0,
    pad: Tuple[int, int] = (0, 0),
    min_score: float = C.DEFAULT_DETECTOR_CONF,
    iou_threshold: float = C.DEFAULT_NMS_IOU_THRESHOLD,
    max_detections: int = C.DEFAULT_MAX_DETECTIONS,
) -> List[OrientedBox]:
    """
    Full palm decoding: score filter, anchor decoding, NMS, enlargement and
    image bounds validation. The ``max_detections`` cap applies to the boxes
    that pass the bounds check.

    Parameters
    ----------
    image_size
        (width, height) of the original image.

    Returns
    -------
    List[OrientedBox]
        At most ``max_detections`` boxes in descending score order.
    """
    candidates = decode_raw_detections(
        raw_boxes, raw_scores, anchors, input_size, min_score
    )
    # Boxes outside the image must not take up one of the max_detections slots
    selected = non_max_suppression(candidates, iou_threshold)

    image_width, image_height = image_size
    boxes = []
    for detection in selected:
        if len(boxes) >= max_detections:
            break
        box = to_oriented_box(detection, input_size, scale, pad)
        if not box_in_image(box, image_width, image_height):
            logger.debug("Dropping palm box outside of the image: %s", box)
            continue
        boxes.append(box)

    logger.debug(
        "Palm decoding: %d candidates, %d after NMS, %d in image",
        len(candidates),
        len(selected),
        len(boxes),
    )
    return boxes
