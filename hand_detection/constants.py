# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import numpy as np

# Palm detector options
PALM_INPUT_SIZE = 192
DETECTOR_SCORE_CLIPPING_THRESHOLD = 100
KEYPOINT_ROTATION_VEC_START_IDX = 0  # wrist center
KEYPOINT_ROTATION_VEC_END_IDX = 2  # base of the middle finger
ROTATION_OFFSET_RADS = np.pi / 2
DETECT_BOX_OFFSET_XY = 0.5
DETECT_BOX_SCALE = 2.5

# SSD anchor grid of the palm detector
ANCHOR_NUM_LAYERS = 4
ANCHOR_MIN_SCALE = 0.1484375
ANCHOR_MAX_SCALE = 0.75
ANCHOR_OFFSET = 0.5
ANCHOR_STRIDES = (8, 16, 16, 16)
ANCHOR_ASPECT_RATIOS = (1.0,)
ANCHOR_INTERPOLATED_SCALE_ASPECT_RATIO = 1.0

# Landmark model options
LANDMARK_INPUT_SIZE = 224
MIN_INTERPRETER_POOL_SIZE = 1
MAX_INTERPRETER_POOL_SIZE = 10

# Gesture models
GESTURE_EMBEDDING_SIZE = 128

# Default thresholds
DEFAULT_DETECTOR_CONF = 0.45
DEFAULT_NMS_IOU_THRESHOLD = 0.3
DEFAULT_MAX_DETECTIONS = 10
DEFAULT_MIN_LANDMARK_SCORE = 0.5
DEFAULT_GESTURE_MIN_CONFIDENCE = 0.5

# Interpreter threads when acceleration is enabled
MAX_NUM_THREADS = 8
DEFAULT_MAX_NUM_THREADS = 4

# Worker offload
WORKER_INIT_TIMEOUT_SECONDS = 30.0

# Model files
DEFAULT_PALM_MODEL_PATH = "models/hand_detection.tflite"
DEFAULT_LANDMARK_MODEL_PATH = "models/hand_landmark_full.tflite"
DEFAULT_GESTURE_EMBEDDER_PATH = "models/gesture_embedder.tflite"
DEFAULT_GESTURE_CLASSIFIER_PATH = "models/canned_gesture_classifier.tflite"

HAND_LANDMARK_CONNECTIONS = [
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    (5, 6),
    (6, 7),
    (7, 8),
    (9, 10),
    (10, 11),
    (11, 12),
    (13, 14),
    (14, 15),
    (15, 16),
    (17, 18),
    (18, 19),
    (19, 20),
    (0, 5),
    (5, 9),
    (9, 13),
    (13, 17),
    (0, 17),
]
