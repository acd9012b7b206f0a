# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import logging
import threading
from typing import Sequence

import numpy as np

import hand_detection.constants as C
from hand_detection.errors import NotInitializedError, ResourceInitError
from hand_detection.model_io_processing import read_output, write_input
from hand_detection.types import (
    GESTURE_TYPES,
    NUM_HAND_LANDMARKS,
    GestureResult,
    GestureType,
    Handedness,
    HandLandmark,
)

logger = logging.getLogger(__name__)


def landmarks_to_embedder_input(
    landmarks: Sequence[HandLandmark], image_width: int, image_height: int
) -> np.ndarray:
    """
    Normalize image-pixel landmarks the way the gesture embedder expects.

    x is divided by the image width, y by the height and z by the width.

    Returns
    -------
    np.ndarray
        Shape [1, 21, 3], dtype float32.
    """
    values = np.array([[lm.x, lm.y, lm.z] for lm in landmarks], dtype=np.float32)
    values[:, 0] /= image_width
    values[:, 1] /= image_height
    values[:, 2] /= image_width
    return values[np.newaxis]


def world_landmarks_to_embedder_input(
    world_landmarks: Sequence[HandLandmark],
) -> np.ndarray:
    return np.array(
        [[lm.x, lm.y, lm.z] for lm in world_landmarks], dtype=np.float32
    )[np.newaxis]


class GestureRecognizer:
    """
    Optional stage 3: gesture embedder followed by the canned gesture classifier.

    Embedder inputs: landmarks [1, 21, 3], handedness [1, 1], world landmarks
    [1, 21, 3]. Embedder output: [1, 128]. Classifier output: [1, 8]
    probabilities in ``GestureType`` order.
    """

    def __init__(self, min_confidence: float = C.DEFAULT_GESTURE_MIN_CONFIDENCE):
        self.min_confidence = min_confidence
        self._embedder = None
        self._classifier = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._embedder is not None and self._classifier is not None

    def initialize(self, embedder_interpreter, classifier_interpreter) -> None:
        embedder_inputs = embedder_interpreter.get_input_details()
        if len(embedder_inputs) < 3:
            raise ResourceInitError(
                f"Gesture embedder has {len(embedder_inputs)} inputs, expected 3"
            )
        with self._lock:
            self._embedder = embedder_interpreter
            self._classifier = classifier_interpreter
        logger.info("Gesture recognizer ready")

    def recognize(
        self,
        landmarks: Sequence[HandLandmark],
        world_landmarks: Sequence[HandLandmark],
        handedness: Handedness,
        image_width: int,
        image_height: int,
    ) -> GestureResult:
        """
        Classify the gesture of one hand.

        Parameters
        ----------
        landmarks
            21 landmarks in image pixels.
        world_landmarks
            21 landmarks in the hand-relative 3D frame.
        handedness
            Left or right hand.
        image_width, image_height
            Size of the image the landmarks are expressed in.

        Returns
        -------
        GestureResult
            UNKNOWN with 0.0 confidence if the landmark counts are wrong, and
            UNKNOWN with the best probability if that is below ``min_confidence``.
        """
        if not self.is_initialized:
            raise NotInitializedError(
                "GestureRecognizer not initialized. Call initialize() first."
            )
        if (
            len(landmarks) != NUM_HAND_LANDMARKS
            or len(world_landmarks) != NUM_HAND_LANDMARKS
        ):
            return GestureResult(GestureType.UNKNOWN, 0.0)

        hand = landmarks_to_embedder_input(landmarks, image_width, image_height)
        world = world_landmarks_to_embedder_input(world_landmarks)
        is_right = np.array(
            [[1.0 if handedness is Handedness.RIGHT else 0.0]], dtype=np.float32
        )

        with self._lock:
            if not self.is_initialized:
                raise NotInitializedError("GestureRecognizer was disposed")
            embedder_inputs = self._embedder.get_input_details()
            write_input(self._embedder, embedder_inputs[0], hand)
            write_input(self._embedder, embedder_inputs[1], is_right)
            write_input(self._embedder, embedder_inputs[2], world)
            self._embedder.invoke()
            embedding = read_output(
                self._embedder, self._embedder.get_output_details()[0]
            )

            write_input(
                self._classifier,
                self._classifier.get_input_details()[0],
                embedding.reshape(1, C.GESTURE_EMBEDDING_SIZE),
            )
            self._classifier.invoke()
            probabilities = read_output(
                self._classifier, self._classifier.get_output_details()[0]
            ).flatten()

        gesture_id = int(np.argmax(probabilities))
        confidence = float(probabilities[gesture_id])
        if confidence < self.min_confidence or gesture_id >= len(GESTURE_TYPES):
            return GestureResult(GestureType.UNKNOWN, confidence)
        return GestureResult(GESTURE_TYPES[gesture_id], confidence)

    def dispose(self) -> None:
        with self._lock:
            self._embedder = None
            self._classifier = None
