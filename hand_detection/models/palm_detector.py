# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import logging
import threading
from typing import List

import numpy as np

import hand_detection.constants as C
from hand_detection.anchors import SsdAnchorOptions, generate_anchors
from hand_detection.errors import NotInitializedError, ResourceInitError
from hand_detection.image_processing import resize_pad
from hand_detection.model_io_processing import (
    input_image_size,
    prepare_image_input,
    read_output,
)
from hand_detection.palm_decoder import decode_palm_detections
from hand_detection.types import OrientedBox

logger = logging.getLogger(__name__)


class PalmDetector:
    """
    Stage 1 of the pipeline: finds palms and turns them into oriented boxes.

    The detector input is the whole image, letterboxed to the model's square
    input size. The anchor table is generated once for that size.
    """

    def __init__(
        self,
        interpreter,
        detector_conf: float = C.DEFAULT_DETECTOR_CONF,
        detector_iou: float = C.DEFAULT_NMS_IOU_THRESHOLD,
        max_detections: int = C.DEFAULT_MAX_DETECTIONS,
    ) -> None:
        self.detector_conf = detector_conf
        self.detector_iou = detector_iou
        self.max_detections = max_detections

        self._interpreter = interpreter
        self._input = interpreter.get_input_details()[0]
        # Outputs: box coords [1, N, 4 + 2K] and scores [1, N, 1]
        outputs = interpreter.get_output_details()[:2]
        self._box_output, self._score_output = sorted(
            outputs, key=lambda d: -int(np.prod(d["shape"]))
        )

        input_h, input_w = input_image_size(self._input)
        if input_h != input_w:
            raise ResourceInitError(
                f"Palm detector input must be square, got {input_w}x{input_h}"
            )
        self.input_size = input_h
        self.anchors = generate_anchors(SsdAnchorOptions.for_input_size(self.input_size))

        self._input_buffer = np.empty(
            tuple(int(d) for d in self._input["shape"]), dtype=self._input["dtype"]
        )
        self._lock = threading.Lock()
        logger.debug(
            "Palm detector ready: input %d, %d anchors",
            self.input_size,
            len(self.anchors),
        )

    def detect(self, image: np.ndarray) -> List[OrientedBox]:
        """
        Run the palm detector on an RGB image.

        Parameters
        ----------
        image
            Shape [H, W, 3], dtype uint8.

        Returns
        -------
        List[OrientedBox]
            Boxes in image pixels, in descending score order.
        """
        image_height, image_width = image.shape[:2]
        input_val, scale, pad = resize_pad(image, (self.input_size, self.input_size))

        with self._lock:
            if self._interpreter is None:
                raise NotInitializedError("PalmDetector is closed")
            prepare_image_input(input_val, self._input, self._input_buffer)
            self._interpreter.set_tensor(self._input["index"], self._input_buffer)
            self._interpreter.invoke()
            box_coords = read_output(self._interpreter, self._box_output)
            box_scores = read_output(self._interpreter, self._score_output)

        return decode_palm_detections(
            box_coords,
            box_scores,
            self.anchors,
            self.input_size,
            (image_width, image_height),
            scale=scale,
            pad=pad,
            min_score=self.detector_conf,
            iou_threshold=self.detector_iou,
            max_detections=self.max_detections,
        )

    def close(self) -> None:
        with self._lock:
            self._interpreter = None
