# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import itertools
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

import hand_detection.constants as C
from hand_detection.config import HandDetectorConfig
from hand_detection.errors import (
    ERROR_TYPES,
    HandDetectionError,
    NotInitializedError,
    ResourceInitError,
    WorkerDisposedError,
)
from hand_detection.hand_detector import HandDetector
from hand_detection.interpreter import InterpreterFactory, create_interpreter
from hand_detection.types import Hand, PixelFormat

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def error_envelope(request_id: int, error: BaseException) -> Message:
    return {
        "id": request_id,
        "error": {"type": type(error).__name__, "message": str(error)},
    }


def error_from_envelope(error: Mapping[str, str]) -> HandDetectionError:
    cls = ERROR_TYPES.get(error.get("type", ""), HandDetectionError)
    return cls(error.get("message", ""))


class HandDetectorWorker:
    """
    Runs a ``HandDetector`` on a dedicated thread so callers never block on
    inference.

    Requests and responses are plain messages correlated by id::

        {"id": 3, "op": "detect", "params": {...}}
        {"id": 3, "result": [<Hand.to_dict()>, ...]}
        {"id": 3, "error": {"type": "InvalidInputError", "message": "..."}}

    Every ``detect_*`` method returns a ``Future`` resolving to ``List[Hand]``.
    Use ``spawn`` to create a worker that is ready to serve.
    """

    def __init__(
        self,
        config: Optional[HandDetectorConfig] = None,
        interpreter_factory: InterpreterFactory = create_interpreter,
        model_buffers: Optional[Mapping[str, Optional[bytes]]] = None,
    ) -> None:
        self.config = config or HandDetectorConfig()
        self._interpreter_factory = interpreter_factory
        self._model_buffers = dict(model_buffers) if model_buffers else None

        self._requests: queue.Queue[Optional[Message]] = queue.Queue()
        self._pending: Dict[int, Future] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._disposed = False

        self._ready = threading.Event()
        self._init_error: Optional[Message] = None
        self._thread = threading.Thread(
            target=self._run, name="hand-detector-worker", daemon=True
        )

    @classmethod
    def spawn(
        cls,
        config: Optional[HandDetectorConfig] = None,
        interpreter_factory: InterpreterFactory = create_interpreter,
        init_timeout: float = C.WORKER_INIT_TIMEOUT_SECONDS,
        model_buffers: Optional[Mapping[str, Optional[bytes]]] = None,
    ) -> HandDetectorWorker:
        """
        Start a worker and wait until its detector is initialized.

        Parameters
        ----------
        model_buffers
            Keyword arguments of ``HandDetector.initialize_from_buffers``. The
            models are loaded from the configured paths when omitted.
        init_timeout
            Seconds to wait for the ready signal.

        Raises
        ------
        ResourceInitError
            If the detector fails to initialize or is not ready in time.
        """
        worker = cls(config, interpreter_factory, model_buffers)
        worker._thread.start()

        if not worker._ready.wait(init_timeout):
            worker.dispose()
            raise ResourceInitError(
                f"Hand detector worker not ready after {init_timeout:.1f}s"
            )
        if worker._init_error is not None:
            error = error_from_envelope(worker._init_error["error"])
            worker.dispose()
            raise ResourceInitError(f"Hand detector worker failed to start: {error}")
        return worker

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set() and self._init_error is None and not self._disposed

    def detect_hands(self, image_bytes: bytes) -> Future:
        return self._submit("detect", {"image_bytes": bytes(image_bytes)})

    def detect_hands_from_image(self, image: np.ndarray) -> Future:
        return self._submit("detect_image", {"image": np.array(image, copy=True)})

    def detect_hands_from_raw_pixels(
        self,
        data: bytes | np.ndarray,
        width: int,
        height: int,
        pixel_format: PixelFormat = PixelFormat.BGR,
        row_stride: Optional[int] = None,
    ) -> Future:
        if isinstance(data, np.ndarray):
            data = np.array(data, copy=True)
        else:
            data = bytes(data)
        return self._submit(
            "detect_raw",
            {
                "data": data,
                "width": width,
                "height": height,
                "pixel_format": pixel_format,
                "row_stride": row_stride,
            },
        )

    def _submit(self, op: str, params: Dict[str, Any]) -> Future:
        future: Future = Future()
        with self._lock:
            if self._disposed:
                raise WorkerDisposedError("Hand detector worker was disposed")
            if not self._ready.is_set() or self._init_error is not None:
                raise NotInitializedError("Hand detector worker is not ready")
            request_id = next(self._ids)
            self._pending[request_id] = future
            self._requests.put({"id": request_id, "op": op, "params": params})
        return future

    def _resolve(self, response: Message) -> None:
        with self._lock:
            future = self._pending.pop(response["id"], None)
        # Already failed by dispose()
        if future is None:
            return
        if "error" in response:
            future.set_exception(error_from_envelope(response["error"]))
        else:
            future.set_result([Hand.from_dict(d) for d in response["result"]])

    def _run(self) -> None:
        detector = HandDetector(self.config, self._interpreter_factory)
        try:
            if self._model_buffers is not None:
                detector.initialize_from_buffers(**self._model_buffers)
            else:
                detector.initialize()
        except Exception as e:
            logger.error("Hand detector worker failed to initialize: %s", e)
            self._init_error = error_envelope(0, e)
            self._ready.set()
            return
        self._ready.set()
        logger.info("Hand detector worker ready")

        try:
            while True:
                request = self._requests.get()
                if request is None:
                    break
                if self._disposed:
                    continue
                self._resolve(self._handle(detector, request))
        finally:
            detector.dispose()

    def _handle(self, detector: HandDetector, request: Message) -> Message:
        op = request["op"]
        params = request["params"]
        try:
            if op == "detect":
                hands = detector.detect(params["image_bytes"])
            elif op == "detect_image":
                hands = detector.detect_on_image(params["image"])
            elif op == "detect_raw":
                hands = detector.detect_on_raw_pixel_buffer(**params)
            else:
                raise HandDetectionError(f"Unknown worker operation {op!r}")
        except Exception as e:
            logger.debug("Worker request %d failed: %s", request["id"], e)
            return error_envelope(request["id"], e)
        return {"id": request["id"], "result": [hand.to_dict() for hand in hands]}

    def dispose(self) -> None:
        """
        Stop the worker. Pending requests fail with ``WorkerDisposedError``.
        Safe to call more than once.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            pending: List[Future] = list(self._pending.values())
            self._pending.clear()

        for future in pending:
            future.set_exception(
                WorkerDisposedError("Hand detector worker was disposed")
            )

        # A worker still initializing picks the stop message up once it is done.
        self._requests.put(None)
        if (
            self._ready.is_set()
            and self._thread.is_alive()
            and threading.current_thread() is not self._thread
        ):
            self._thread.join()
        logger.info("Hand detector worker disposed")

    def __enter__(self) -> HandDetectorWorker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()
