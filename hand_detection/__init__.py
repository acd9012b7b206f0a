# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from hand_detection.config import HandDetectorConfig, PerformanceConfig
from hand_detection.constants import HAND_LANDMARK_CONNECTIONS
from hand_detection.errors import (
    HandDetectionError,
    InvalidInputError,
    InvalidRegionError,
    NotInitializedError,
    ResourceInitError,
    WorkerDisposedError,
)
from hand_detection.hand_detector import HandDetector
from hand_detection.types import (
    BoundingBox,
    GestureResult,
    GestureType,
    Hand,
    Handedness,
    HandLandmark,
    HandLandmarkModel,
    HandLandmarkType,
    HandMode,
    PerformanceMode,
    PixelFormat,
)
from hand_detection.worker import HandDetectorWorker

__all__ = [
    "HAND_LANDMARK_CONNECTIONS",
    "BoundingBox",
    "GestureResult",
    "GestureType",
    "Hand",
    "HandDetectionError",
    "HandDetector",
    "HandDetectorConfig",
    "HandDetectorWorker",
    "Handedness",
    "HandLandmark",
    "HandLandmarkModel",
    "HandLandmarkType",
    "HandMode",
    "InvalidInputError",
    "InvalidRegionError",
    "NotInitializedError",
    "PerformanceConfig",
    "PerformanceMode",
    "PixelFormat",
    "ResourceInitError",
    "WorkerDisposedError",
]
