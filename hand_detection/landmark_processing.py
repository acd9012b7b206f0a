# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import numpy as np

from hand_detection.errors import InvalidInputError
from hand_detection.post_processing import sigmoid
from hand_detection.types import (
    HAND_LANDMARK_TYPES,
    NUM_HAND_LANDMARKS,
    CropTransform,
    Handedness,
    HandLandmark,
    HandLandmarks,
)


def _as_landmark_array(values: np.ndarray, name: str) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64)
    if values.size != NUM_HAND_LANDMARKS * 3:
        raise InvalidInputError(
            f"Expected {NUM_HAND_LANDMARKS * 3} {name} values, got {values.size}"
        )
    return values.reshape(NUM_HAND_LANDMARKS, 3)


def postprocess_landmarks(
    raw_landmarks: np.ndarray,
    raw_world_landmarks: np.ndarray,
    raw_score: float,
    raw_handedness: float,
    transform: CropTransform,
) -> HandLandmarks:
    """
    Map the landmark model output back to original image pixels.

    Parameters
    ----------
    raw_landmarks
        21 x (x, y, z) in pixels of the letterboxed model input. Any shape
        with 63 elements.
    raw_world_landmarks
        21 x (x, y, z) in the model's hand-relative 3D frame. Passed through.
    raw_score
        Hand presence logit.
    raw_handedness
        Probability of a right hand.
    transform
        Transform used to build the model input.

    Returns
    -------
    HandLandmarks
        Landmarks in image pixels. ``z`` is relative depth and every landmark's
        visibility is the hand score; the model has no per-point visibility.
        No score filtering is applied here.
    """
    landmarks = _as_landmark_array(raw_landmarks, "landmark")
    world_landmarks = _as_landmark_array(raw_world_landmarks, "world landmark")

    score = float(sigmoid(float(np.asarray(raw_score).reshape(-1)[0])))
    handedness = (
        Handedness.RIGHT
        if float(np.asarray(raw_handedness).reshape(-1)[0]) > 0.5
        else Handedness.LEFT
    )

    # letterboxed input -> upright crop, clamped to drop padding artifacts
    crop_xy = transform.unletterbox(landmarks[:, :2])
    crop_w, crop_h = transform.crop_size
    crop_xy[:, 0] = np.clip(crop_xy[:, 0], 0.0, crop_w)
    crop_xy[:, 1] = np.clip(crop_xy[:, 1], 0.0, crop_h)

    # upright crop -> image
    image_xy = transform.crop_to_image(crop_xy)
    image_w, image_h = transform.image_size
    image_xy[:, 0] = np.clip(image_xy[:, 0], 0.0, image_w)
    image_xy[:, 1] = np.clip(image_xy[:, 1], 0.0, image_h)

    return HandLandmarks(
        landmarks=tuple(
            HandLandmark(
                type=landmark_type,
                x=float(image_xy[i, 0]),
                y=float(image_xy[i, 1]),
                z=float(landmarks[i, 2]),
                visibility=score,
            )
            for i, landmark_type in enumerate(HAND_LANDMARK_TYPES)
        ),
        world_landmarks=tuple(
            HandLandmark(
                type=landmark_type,
                x=float(world_landmarks[i, 0]),
                y=float(world_landmarks[i, 1]),
                z=float(world_landmarks[i, 2]),
                visibility=score,
            )
            for i, landmark_type in enumerate(HAND_LANDMARK_TYPES)
        ),
        score=score,
        handedness=handedness,
    )
