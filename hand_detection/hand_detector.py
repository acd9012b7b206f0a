# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import functools
import logging
import threading
from concurrent.futures import Future
from typing import List, Optional, Tuple

import numpy as np

from hand_detection.config import HandDetectorConfig
from hand_detection.errors import (
    InvalidInputError,
    InvalidRegionError,
    NotInitializedError,
    ResourceInitError,
)
from hand_detection.image_processing import decode_image, raw_pixels_to_rgb
from hand_detection.interpreter import InterpreterFactory, create_interpreter
from hand_detection.models.gesture_recognizer import GestureRecognizer
from hand_detection.models.hand_landmark import HandLandmarkModelRunner
from hand_detection.models.palm_detector import PalmDetector
from hand_detection.types import Hand, HandLandmarks, OrientedBox, PixelFormat

logger = logging.getLogger(__name__)


def hand_from_box(
    box: OrientedBox,
    image_width: int,
    image_height: int,
    landmarks: Optional[HandLandmarks] = None,
) -> Hand:
    """
    Build a ``Hand`` from a palm box and, when available, its landmarks.

    The axis-aligned bounding box is the image-clipped extent of the rotated
    box. With landmarks, the hand score is the landmark model's score.
    """
    bounding_box = box.bounding_box().clip(image_width, image_height)
    hand = Hand(
        bounding_box=bounding_box,
        score=box.score if landmarks is None else landmarks.score,
        image_width=image_width,
        image_height=image_height,
        rotation=box.rotation,
        rotated_center_x=box.center_x,
        rotated_center_y=box.center_y,
        rotated_size=box.width,
    )
    if landmarks is None:
        return hand
    return dataclasses.replace(
        hand,
        handedness=landmarks.handedness,
        landmarks=landmarks.landmarks,
        world_landmarks=landmarks.world_landmarks,
    )


class HandDetector:
    """
    Palm detection, landmark extraction and optional gesture classification.

    Example
    -------
    >>> with HandDetector(HandDetectorConfig(interpreter_pool_size=2)) as detector:
    ...     hands = detector.detect(open("hand.jpg", "rb").read())
    """

    def __init__(
        self,
        config: Optional[HandDetectorConfig] = None,
        interpreter_factory: InterpreterFactory = create_interpreter,
    ) -> None:
        self.config = config or HandDetectorConfig()
        self._interpreter_factory = interpreter_factory
        self._palm_detector: Optional[PalmDetector] = None
        self._landmark_runner: Optional[HandLandmarkModelRunner] = None
        self._gesture_recognizer: Optional[GestureRecognizer] = None
        self._lock = threading.RLock()

    def __enter__(self) -> HandDetector:
        if not self.is_initialized:
            self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    @property
    def is_initialized(self) -> bool:
        return self._palm_detector is not None

    def initialize(self) -> None:
        """Load every model the configuration needs from its model path."""
        config = self.config
        self._initialize(
            {"model_path": config.palm_model_path},
            {"model_path": config.landmark_model_path},
            {"model_path": config.gesture_embedder_path},
            {"model_path": config.gesture_classifier_path},
        )

    def initialize_from_buffers(
        self,
        palm_model: bytes,
        landmark_model: Optional[bytes] = None,
        gesture_embedder_model: Optional[bytes] = None,
        gesture_classifier_model: Optional[bytes] = None,
    ) -> None:
        """
        Load the models from serialized bytes instead of files.

        Raises
        ------
        ResourceInitError
            If a model the configuration needs was not given or fails to load.
        """
        config = self.config
        if config.runs_landmarks and landmark_model is None:
            raise ResourceInitError("landmark_model is required in landmark mode")
        if config.runs_gestures and (
            gesture_embedder_model is None or gesture_classifier_model is None
        ):
            raise ResourceInitError(
                "gesture_embedder_model and gesture_classifier_model are required "
                "when gestures are enabled"
            )
        self._initialize(
            {"model_content": palm_model},
            {"model_content": landmark_model},
            {"model_content": gesture_embedder_model},
            {"model_content": gesture_classifier_model},
        )

    def _initialize(self, palm_src, landmark_src, embedder_src, classifier_src) -> None:
        config = self.config
        load = functools.partial(
            self._interpreter_factory, performance=config.performance
        )

        with self._lock:
            self.dispose()
            try:
                self._palm_detector = PalmDetector(
                    load(**palm_src),
                    detector_conf=config.detector_conf,
                    detector_iou=config.detector_iou,
                    max_detections=config.max_detections,
                )
                if config.runs_landmarks:
                    runner = HandLandmarkModelRunner(config.interpreter_pool_size)
                    runner.initialize(lambda: load(**landmark_src))
                    self._landmark_runner = runner
                if config.runs_gestures:
                    recognizer = GestureRecognizer(config.gesture_min_confidence)
                    recognizer.initialize(load(**embedder_src), load(**classifier_src))
                    self._gesture_recognizer = recognizer
            except BaseException:
                self.dispose()
                raise

        logger.info(
            "Hand detector initialized: mode=%s, pool=%d, gestures=%s",
            config.mode.value,
            config.interpreter_pool_size if config.runs_landmarks else 0,
            config.runs_gestures,
        )

    def _require_initialized(
        self,
    ) -> Tuple[
        PalmDetector, Optional[HandLandmarkModelRunner], Optional[GestureRecognizer]
    ]:
        with self._lock:
            if self._palm_detector is None:
                raise NotInitializedError(
                    "HandDetector not initialized. Call initialize() first."
                )
            return self._palm_detector, self._landmark_runner, self._gesture_recognizer

    def detect(self, image_bytes: bytes) -> List[Hand]:
        """
        Detect hands in an encoded image (JPEG, PNG, ...).

        Raises
        ------
        InvalidInputError
            If the bytes cannot be decoded.
        """
        self._require_initialized()
        return self.detect_on_image(decode_image(image_bytes))

    def detect_on_raw_pixel_buffer(
        self,
        data: bytes | np.ndarray,
        width: int,
        height: int,
        pixel_format: PixelFormat = PixelFormat.BGR,
        row_stride: Optional[int] = None,
    ) -> List[Hand]:
        self._require_initialized()
        return self.detect_on_image(
            raw_pixels_to_rgb(data, width, height, pixel_format, row_stride)
        )

    def detect_on_image(self, image: np.ndarray) -> List[Hand]:
        """
        Detect hands in an RGB image.

        Parameters
        ----------
        image
            Shape [H, W, 3], dtype uint8.

        Returns
        -------
        List[Hand]
            Hands in descending palm score order. Empty if none were found.
        """
        palm_detector, landmark_runner, gesture_recognizer = self._require_initialized()
        if (
            not isinstance(image, np.ndarray)
            or image.dtype != np.uint8
            or image.ndim != 3
            or image.shape[2] != 3
            or image.shape[0] == 0
            or image.shape[1] == 0
        ):
            raise InvalidInputError(
                f"Expected an RGB uint8 image of shape [H, W, 3], got "
                f"{getattr(image, 'dtype', type(image).__name__)} "
                f"{getattr(image, 'shape', '')}"
            )

        image_height, image_width = image.shape[:2]
        boxes = palm_detector.detect(image)
        if landmark_runner is None:
            return [hand_from_box(box, image_width, image_height) for box in boxes]

        # Futures are collected in submission order, which is NMS order,
        # whatever order the pool instances finish in.
        futures: List[Tuple[OrientedBox, Future]] = [
            (box, landmark_runner.submit(image, box)) for box in boxes
        ]
        hands = []
        for box, future in futures:
            try:
                landmarks = future.result()
            except InvalidRegionError as e:
                logger.warning("Skipping hand candidate: %s", e)
                continue
            if landmarks.score < self.config.min_landmark_score:
                logger.debug(
                    "Dropping hand with landmark score %.3f < %.3f",
                    landmarks.score,
                    self.config.min_landmark_score,
                )
                continue

            hand = hand_from_box(box, image_width, image_height, landmarks)
            if gesture_recognizer is not None:
                gesture = gesture_recognizer.recognize(
                    hand.landmarks,
                    hand.world_landmarks,
                    landmarks.handedness,
                    image_width,
                    image_height,
                )
                hand = dataclasses.replace(hand, gesture=gesture)
            hands.append(hand)

        logger.debug("Detected %d hand(s) from %d palm box(es)", len(hands), len(boxes))
        return hands

    def dispose(self) -> None:
        """Release every interpreter. Safe to call more than once."""
        with self._lock:
            palm_detector, self._palm_detector = self._palm_detector, None
            landmark_runner, self._landmark_runner = self._landmark_runner, None
            recognizer, self._gesture_recognizer = self._gesture_recognizer, None

        if palm_detector is None and landmark_runner is None and recognizer is None:
            return
        if palm_detector is not None:
            palm_detector.close()
        if landmark_runner is not None:
            landmark_runner.dispose()
        if recognizer is not None:
            recognizer.dispose()
        logger.info("Hand detector disposed")
