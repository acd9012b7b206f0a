# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List

import numpy as np

import hand_detection.constants as C
from hand_detection.cropper import crop_hand_region
from hand_detection.errors import NotInitializedError, ResourceInitError
from hand_detection.landmark_processing import postprocess_landmarks
from hand_detection.model_io_processing import (
    input_image_size,
    prepare_image_input,
    read_output,
)
from hand_detection.types import HandLandmarks, OrientedBox

logger = logging.getLogger(__name__)


class InterpreterInstance:
    """
    One landmark interpreter together with the buffers it writes to.

    Calls are executed one at a time, in submission order, on the instance's
    own thread; nothing else touches the interpreter or its buffers.
    """

    def __init__(self, index: int, interpreter) -> None:
        self.index = index
        self.interpreter = interpreter
        self.input_details = interpreter.get_input_details()[0]
        # Outputs: landmarks [1, 63], score [1, 1], handedness [1, 1],
        # world landmarks [1, 63]
        self.output_details = interpreter.get_output_details()
        if len(self.output_details) < 4:
            raise ResourceInitError(
                f"Landmark model has {len(self.output_details)} outputs, expected 4"
            )

        input_h, input_w = input_image_size(self.input_details)
        if input_h != input_w:
            raise ResourceInitError(
                f"Landmark model input must be square, got {input_w}x{input_h}"
            )
        self.input_size = input_h

        self.input_buffer = np.empty(
            tuple(int(d) for d in self.input_details["shape"]),
            dtype=self.input_details["dtype"],
        )
        self.output_buffers = [
            np.empty(tuple(int(d) for d in details["shape"]), dtype=np.float32)
            for details in self.output_details[:4]
        ]
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"hand-landmark-{index}"
        )

    def submit(self, image: np.ndarray, box: OrientedBox) -> Future:
        return self._executor.submit(self.run, image, box)

    def run(self, image: np.ndarray, box: OrientedBox) -> HandLandmarks:
        """
        Crop the box out of the image, run the landmark model and map its
        output back to image pixels.

        Raises
        ------
        InvalidRegionError
            If the box does not overlap the image.
        """
        crop = crop_hand_region(image, box, self.input_size)

        prepare_image_input(crop.image, self.input_details, self.input_buffer)
        self.interpreter.set_tensor(self.input_details["index"], self.input_buffer)
        self.interpreter.invoke()

        landmarks, score, handedness, world_landmarks = (
            read_output(self.interpreter, details, out=buffer)
            for details, buffer in zip(self.output_details[:4], self.output_buffers)
        )
        return postprocess_landmarks(
            landmarks, world_landmarks, score, handedness, crop.transform
        )

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.interpreter = None


class HandLandmarkModelRunner:
    """
    Stage 2 of the pipeline: a fixed-size pool of landmark interpreters.

    Requests are spread over the pool round-robin. Each instance serializes its
    own requests first-in-first-out, so at most ``pool_size`` inferences run at
    once and further callers queue instead of failing.
    """

    def __init__(self, pool_size: int = 1) -> None:
        self.pool_size = min(
            max(pool_size, C.MIN_INTERPRETER_POOL_SIZE), C.MAX_INTERPRETER_POOL_SIZE
        )
        self._pool: List[InterpreterInstance] = []
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return bool(self._pool)

    def initialize(self, create_interpreter: Callable[[], Any]) -> None:
        """
        Build the pool, calling ``create_interpreter`` once per instance.
        """
        if self.is_initialized:
            self.dispose()

        pool: List[InterpreterInstance] = []
        try:
            for i in range(self.pool_size):
                pool.append(InterpreterInstance(i, create_interpreter()))
        except BaseException:
            for instance in pool:
                instance.close()
            raise

        with self._lock:
            self._pool = pool
            self._counter = 0
        logger.info("Hand landmark pool ready with %d interpreter(s)", len(pool))

    def _next_instance(self) -> InterpreterInstance:
        with self._lock:
            if not self._pool:
                raise NotInitializedError(
                    "HandLandmarkModelRunner not initialized. Call initialize() first."
                )
            instance = self._pool[self._counter % len(self._pool)]
            self._counter = (self._counter + 1) % len(self._pool)
            return instance

    def submit(self, image: np.ndarray, box: OrientedBox) -> Future:
        """
        Queue landmark extraction for one box.

        Returns
        -------
        Future
            Resolves to ``HandLandmarks`` or raises ``InvalidRegionError``.
        """
        instance = self._next_instance()
        try:
            return instance.submit(image, box)
        except RuntimeError as e:
            # Executor shut down by a concurrent dispose()
            raise NotInitializedError("HandLandmarkModelRunner was disposed") from e

    def run(self, image: np.ndarray, box: OrientedBox) -> HandLandmarks:
        return self.submit(image, box).result()

    def dispose(self) -> None:
        with self._lock:
            pool, self._pool = self._pool, []
        for instance in pool:
            instance.close()
        if pool:
            logger.info("Hand landmark pool disposed")
