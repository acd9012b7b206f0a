# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import cv2
import pytest
from conftest import make_factory

from hand_detection.config import HandDetectorConfig
from hand_detection.errors import (
    InvalidInputError,
    NotInitializedError,
    ResourceInitError,
    WorkerDisposedError,
)
from hand_detection.hand_detector import HandDetector
from hand_detection.types import HandMode, PixelFormat
from hand_detection.worker import HandDetectorWorker, error_envelope, error_from_envelope

TIMEOUT = 10


@pytest.fixture
def worker():
    worker = HandDetectorWorker.spawn(HandDetectorConfig(), make_factory())
    yield worker
    worker.dispose()


def test_worker_matches_detector(worker, image_384):
    detector = HandDetector(HandDetectorConfig(), make_factory())
    detector.initialize()

    hands = worker.detect_hands_from_image(image_384).result(TIMEOUT)

    assert worker.is_ready
    assert len(hands) == 2
    assert hands == detector.detect_on_image(image_384)


def test_worker_encoded_image(worker, image_384):
    ok, encoded = cv2.imencode(".png", image_384[..., ::-1])
    assert ok
    assert len(worker.detect_hands(encoded.tobytes()).result(TIMEOUT)) == 2


def test_worker_raw_pixels(worker, image_384):
    bgr = image_384[..., ::-1].copy()

    future = worker.detect_hands_from_raw_pixels(bgr.tobytes(), 384, 384, PixelFormat.BGR)

    assert len(future.result(TIMEOUT)) == 2


def test_worker_forwards_errors(worker):
    with pytest.raises(InvalidInputError, match="decode"):
        worker.detect_hands(b"not an image").result(TIMEOUT)


def test_dispose_fails_pending_requests(image_384):
    factory = make_factory(landmark_delays=(0.3,))
    worker = HandDetectorWorker.spawn(HandDetectorConfig(), factory)
    futures = [worker.detect_hands_from_image(image_384) for _ in range(3)]

    worker.dispose()

    for future in futures:
        with pytest.raises(WorkerDisposedError):
            future.result(TIMEOUT)


def test_dispose_is_idempotent(image_384):
    worker = HandDetectorWorker.spawn(HandDetectorConfig(mode=HandMode.BOXES), make_factory())
    worker.dispose()
    worker.dispose()

    assert not worker.is_ready
    with pytest.raises(NotInitializedError):
        worker.detect_hands_from_image(image_384)


def test_worker_from_model_buffers(image_384):
    buffers = {"palm_model": b"palm", "landmark_model": b"landmark"}
    with HandDetectorWorker.spawn(
        HandDetectorConfig(), make_factory(), model_buffers=buffers
    ) as worker:
        assert len(worker.detect_hands_from_image(image_384).result(TIMEOUT)) == 2


def test_worker_initialization_error():
    with pytest.raises(ResourceInitError, match="landmark_model"):
        HandDetectorWorker.spawn(
            HandDetectorConfig(), make_factory(), model_buffers={"palm_model": b"palm"}
        )


def test_worker_initialization_timeout():
    with pytest.raises(ResourceInitError, match="not ready"):
        HandDetectorWorker.spawn(
            HandDetectorConfig(mode=HandMode.BOXES),
            make_factory(init_delay=0.5),
            init_timeout=0.05,
        )


def test_error_envelope():
    message = error_envelope(7, InvalidInputError("bad pixels"))

    assert message == {
        "id": 7,
        "error": {"type": "InvalidInputError", "message": "bad pixels"},
    }
    error = error_from_envelope(message["error"])
    assert isinstance(error, InvalidInputError)
    assert str(error) == "bad pixels"
    assert type(error_from_envelope({"type": "KeyError", "message": "x"})).__name__ == (
        "HandDetectionError"
    )
