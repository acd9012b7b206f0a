# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

import hand_detection.constants as C
from hand_detection.types import HandLandmarkModel, HandMode, PerformanceMode


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class PerformanceConfig:
    """
    Hardware acceleration settings for every interpreter of the pipeline.

    With ``mode`` ENABLED the interpreters run multi-threaded and, when
    ``delegate_path`` is given, on that delegate (e.g. ``libQnnTFLiteDelegate.so``).
    A delegate that fails to load falls back to the CPU.
    """

    mode: PerformanceMode = PerformanceMode.DISABLED
    num_threads: Optional[int] = None
    delegate_path: Optional[str] = None
    delegate_options: Optional[Mapping[str, str]] = None

    def __post_init__(self) -> None:
        if self.num_threads is not None and self.num_threads < 0:
            raise ValueError(f"num_threads must be >= 0, got {self.num_threads}")

    @classmethod
    def disabled(cls) -> PerformanceConfig:
        return cls(mode=PerformanceMode.DISABLED)

    @classmethod
    def enabled(cls, num_threads: Optional[int] = None) -> PerformanceConfig:
        return cls(mode=PerformanceMode.ENABLED, num_threads=num_threads)

    @property
    def thread_count(self) -> Optional[int]:
        """Interpreter threads, or None to use the runtime default."""
        if self.mode is PerformanceMode.DISABLED:
            return None
        if self.num_threads is None:
            return min(C.DEFAULT_MAX_NUM_THREADS, os.cpu_count() or 1)
        return min(max(self.num_threads, 1), C.MAX_NUM_THREADS)


@dataclass(frozen=True)
class HandDetectorConfig:
    mode: HandMode = HandMode.BOXES_AND_LANDMARKS
    landmark_model: HandLandmarkModel = HandLandmarkModel.FULL
    detector_conf: float = C.DEFAULT_DETECTOR_CONF
    detector_iou: float = C.DEFAULT_NMS_IOU_THRESHOLD
    max_detections: int = C.DEFAULT_MAX_DETECTIONS
    min_landmark_score: float = C.DEFAULT_MIN_LANDMARK_SCORE
    interpreter_pool_size: int = 1
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    enable_gestures: bool = False
    gesture_min_confidence: float = C.DEFAULT_GESTURE_MIN_CONFIDENCE
    palm_model_path: str = C.DEFAULT_PALM_MODEL_PATH
    landmark_model_path: str = C.DEFAULT_LANDMARK_MODEL_PATH
    gesture_embedder_path: str = C.DEFAULT_GESTURE_EMBEDDER_PATH
    gesture_classifier_path: str = C.DEFAULT_GESTURE_CLASSIFIER_PATH

    def __post_init__(self) -> None:
        _check_unit_interval("detector_conf", self.detector_conf)
        _check_unit_interval("detector_iou", self.detector_iou)
        _check_unit_interval("min_landmark_score", self.min_landmark_score)
        _check_unit_interval("gesture_min_confidence", self.gesture_min_confidence)
        if self.max_detections < 1:
            raise ValueError(f"max_detections must be >= 1, got {self.max_detections}")
        if self.interpreter_pool_size < 1:
            raise ValueError(
                f"interpreter_pool_size must be >= 1, got {self.interpreter_pool_size}"
            )

    @property
    def runs_landmarks(self) -> bool:
        return self.mode is HandMode.BOXES_AND_LANDMARKS

    @property
    def runs_gestures(self) -> bool:
        return self.enable_gestures and self.runs_landmarks
