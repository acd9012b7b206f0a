# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import os

import pytest

from hand_detection.__main__ import config_from_args, parse_args
from hand_detection.config import HandDetectorConfig, PerformanceConfig
from hand_detection.types import HandMode, PerformanceMode


@pytest.mark.parametrize(
    "kwargs",
    [
        {"detector_conf": 1.5},
        {"detector_iou": -0.1},
        {"min_landmark_score": 2.0},
        {"gesture_min_confidence": -1.0},
        {"max_detections": 0},
        {"interpreter_pool_size": 0},
    ],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        HandDetectorConfig(**kwargs)


def test_defaults():
    config = HandDetectorConfig()
    assert config.mode is HandMode.BOXES_AND_LANDMARKS
    assert config.detector_conf == 0.45
    assert config.detector_iou == 0.3
    assert config.max_detections == 10
    assert config.runs_landmarks
    assert not config.runs_gestures


def test_gestures_need_landmarks():
    assert HandDetectorConfig(enable_gestures=True).runs_gestures
    assert not HandDetectorConfig(mode=HandMode.BOXES, enable_gestures=True).runs_gestures


def test_thread_count():
    assert PerformanceConfig.disabled().thread_count is None
    assert PerformanceConfig.enabled(20).thread_count == 8
    assert PerformanceConfig.enabled(0).thread_count == 1
    assert PerformanceConfig.enabled(3).thread_count == 3
    assert PerformanceConfig.enabled().thread_count == min(4, os.cpu_count() or 1)
    with pytest.raises(ValueError):
        PerformanceConfig.enabled(-1)


def test_command_line_config():
    args = parse_args(
        [
            "a.jpg",
            "b.png",
            "--mode",
            "boxes",
            "--detector-conf",
            "0.6",
            "--pool-size",
            "3",
            "--gestures",
            "--num-threads",
            "2",
            "--palm-model",
            "palm.tflite",
        ]
    )

    config = config_from_args(args)

    assert args.images == ["a.jpg", "b.png"]
    assert config.mode is HandMode.BOXES
    assert config.detector_conf == 0.6
    assert config.interpreter_pool_size == 3
    assert config.enable_gestures
    assert config.palm_model_path == "palm.tflite"
    assert config.performance.mode is PerformanceMode.ENABLED
    assert config.performance.thread_count == 2


def test_command_line_delegate():
    config = config_from_args(parse_args(["a.jpg", "--delegate", "libQnnTFLiteDelegate.so"]))
    assert config.performance.mode is PerformanceMode.ENABLED
    assert config.performance.delegate_path == "libQnnTFLiteDelegate.so"
    assert config.performance.delegate_options["backend_type"] == "htp"


def test_command_line_defaults():
    config = config_from_args(parse_args(["a.jpg"]))
    assert config.performance.mode is PerformanceMode.DISABLED
    assert config == HandDetectorConfig(performance=PerformanceConfig.disabled())
