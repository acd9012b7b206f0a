# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
"""
In-memory stand-ins for LiteRT interpreters.

They implement the part of the interpreter API the pipeline uses
(get_input_details, get_output_details, set_tensor, invoke, get_tensor) and
produce deterministic outputs, so no model files are needed.
"""
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pytest

from hand_detection.anchors import generate_anchors
from hand_detection.types import NUM_GESTURE_CLASSES, NUM_HAND_LANDMARKS

PALM_INPUT = 192
LANDMARK_INPUT = 224


def tensor_details(index, shape, dtype=np.float32, scales=(), zero_points=()):
    return {
        "name": f"tensor_{index}",
        "index": index,
        "shape": np.array(shape, dtype=np.int32),
        "dtype": dtype,
        "quantization_parameters": {
            "scales": np.array(scales, dtype=np.float32),
            "zero_points": np.array(zero_points, dtype=np.int32),
        },
    }


class FakeInterpreter:
    inputs: List[dict] = []
    outputs: List[dict] = []

    def __init__(self):
        self.tensors = {}
        self.invocations = 0

    def get_input_details(self):
        return self.inputs

    def get_output_details(self):
        return self.outputs

    def set_tensor(self, index, value):
        self.tensors[index] = np.array(value, copy=True)

    def get_tensor(self, index):
        return self.tensors[index]

    def invoke(self):
        self.invocations += 1
        for details, value in zip(self.outputs, self.compute()):
            self.tensors[details["index"]] = np.asarray(
                value, dtype=details["dtype"]
            ).reshape(tuple(int(d) for d in details["shape"]))

    def compute(self):
        raise NotImplementedError


@dataclass
class FakePalm:
    """A palm placed in normalized detector input space, fingers pointing up."""

    center_x: float
    center_y: float
    size: float
    logit: float = 3.0


def palm_raw_outputs(palms: Sequence[FakePalm], input_size: int = PALM_INPUT):
    """Raw detector tensors that decode to ``palms``."""
    anchors = generate_anchors()
    num_anchors = anchors.shape[0]
    boxes = np.zeros((num_anchors, 18), dtype=np.float32)
    scores = np.full((num_anchors, 1), -50.0, dtype=np.float32)
    used = set()

    for palm in palms:
        distances = np.hypot(
            anchors[:, 0, 0] - palm.center_x, anchors[:, 0, 1] - palm.center_y
        )
        for anchor_idx in np.argsort(distances, kind="stable"):
            if int(anchor_idx) not in used:
                break
        used.add(int(anchor_idx))
        ax, ay = anchors[anchor_idx, 0]

        # wrist below the center, middle finger base above it
        keypoints = np.tile([palm.center_x, palm.center_y], (7, 1))
        keypoints[0, 1] += palm.size / 2
        keypoints[2, 1] -= palm.size / 2

        row = np.empty((9, 2))
        row[0] = [palm.center_x - ax, palm.center_y - ay]
        row[1] = [palm.size, palm.size]
        row[2:] = keypoints - [ax, ay]
        boxes[anchor_idx] = (row * input_size).reshape(-1)
        scores[anchor_idx] = palm.logit

    return boxes[np.newaxis], scores[np.newaxis]


class FakePalmInterpreter(FakeInterpreter):
    inputs = [tensor_details(0, [1, PALM_INPUT, PALM_INPUT, 3])]
    outputs = [
        tensor_details(1, [1, 2016, 18]),
        tensor_details(2, [1, 2016, 1]),
    ]

    def __init__(self, palms: Sequence[FakePalm] = ()):
        super().__init__()
        self.raw_boxes, self.raw_scores = palm_raw_outputs(palms)

    def compute(self):
        assert self.tensors[0].shape == (1, PALM_INPUT, PALM_INPUT, 3)
        return self.raw_boxes, self.raw_scores


def landmark_pattern() -> np.ndarray:
    """21 landmarks on a circle around the center of the landmark input."""
    angles = np.linspace(0, 2 * np.pi, NUM_HAND_LANDMARKS, endpoint=False)
    return np.stack(
        [
            LANDMARK_INPUT / 2 + 40 * np.cos(angles),
            LANDMARK_INPUT / 2 + 40 * np.sin(angles),
            np.arange(NUM_HAND_LANDMARKS) * 0.01,
        ],
        axis=-1,
    )


class FakeLandmarkInterpreter(FakeInterpreter):
    inputs = [tensor_details(0, [1, LANDMARK_INPUT, LANDMARK_INPUT, 3])]
    outputs = [
        tensor_details(1, [1, 63]),
        tensor_details(2, [1, 1]),
        tensor_details(3, [1, 1]),
        tensor_details(4, [1, 63]),
    ]

    def __init__(self, score_logit=5.0, handedness=0.9, delay=0.0):
        super().__init__()
        self.score_logit = score_logit
        self.handedness = handedness
        self.delay = delay

    def compute(self):
        if self.delay:
            time.sleep(self.delay)
        landmarks = landmark_pattern()
        return (
            landmarks.reshape(-1),
            [self.score_logit],
            [self.handedness],
            (landmarks / LANDMARK_INPUT - 0.5).reshape(-1),
        )


class FakeEmbedderInterpreter(FakeInterpreter):
    inputs = [
        tensor_details(0, [1, NUM_HAND_LANDMARKS, 3]),
        tensor_details(1, [1, 1]),
        tensor_details(2, [1, NUM_HAND_LANDMARKS, 3]),
    ]
    outputs = [tensor_details(3, [1, 128])]

    def compute(self):
        embedding = np.zeros(128, dtype=np.float32)
        embedding[:63] = self.tensors[0].reshape(-1)
        embedding[63] = self.tensors[1].reshape(-1)[0]
        return (embedding,)


class FakeClassifierInterpreter(FakeInterpreter):
    inputs = [tensor_details(0, [1, 128])]
    outputs = [tensor_details(1, [1, NUM_GESTURE_CLASSES])]

    def __init__(self, probabilities: Sequence[float]):
        super().__init__()
        self.probabilities = np.asarray(probabilities, dtype=np.float32)

    def compute(self):
        assert self.tensors[0].shape == (1, 128)
        return (self.probabilities,)


# Open palm with 0.8 probability
DEFAULT_GESTURE_PROBABILITIES = (0.05, 0.05, 0.8, 0.02, 0.02, 0.02, 0.02, 0.02)


class FakeInterpreterFactory:
    """
    Drop-in replacement for ``create_interpreter``.

    The fake is chosen from the model path or model bytes: names containing
    "landmark", "embedder" or "classifier" select those models, anything else
    is the palm detector.
    """

    def __init__(
        self,
        palms: Sequence[FakePalm] = (),
        landmark_score_logit: float = 5.0,
        handedness: float = 0.9,
        landmark_delays: Sequence[float] = (),
        gesture_probabilities: Sequence[float] = DEFAULT_GESTURE_PROBABILITIES,
        init_delay: float = 0.0,
    ):
        self.palms = list(palms)
        self.landmark_score_logit = landmark_score_logit
        self.handedness = handedness
        self.landmark_delays = list(landmark_delays)
        self.gesture_probabilities = gesture_probabilities
        self.init_delay = init_delay
        self.created: List[FakeInterpreter] = []
        self.performance = []
        self._lock = threading.Lock()

    def __call__(self, model_path=None, model_content=None, performance=None):
        if self.init_delay:
            time.sleep(self.init_delay)
        name = str(model_path) if model_path is not None else bytes(model_content).decode()

        if "landmark" in name:
            with self._lock:
                num_landmark = sum(
                    isinstance(i, FakeLandmarkInterpreter) for i in self.created
                )
            delay = (
                self.landmark_delays[num_landmark]
                if num_landmark < len(self.landmark_delays)
                else 0.0
            )
            interpreter = FakeLandmarkInterpreter(
                self.landmark_score_logit, self.handedness, delay
            )
        elif "embedder" in name:
            interpreter = FakeEmbedderInterpreter()
        elif "classifier" in name:
            interpreter = FakeClassifierInterpreter(self.gesture_probabilities)
        else:
            interpreter = FakePalmInterpreter(self.palms)

        with self._lock:
            self.created.append(interpreter)
            self.performance.append(performance)
        return interpreter

    def count(self, cls) -> int:
        return sum(isinstance(i, cls) for i in self.created)


# Two palms side by side in a 384x384 image (letterbox scale 0.5, no padding)
TWO_PALMS = (
    FakePalm(center_x=0.25, center_y=0.5, size=0.15, logit=3.0),
    FakePalm(center_x=0.75, center_y=0.5, size=0.15, logit=2.0),
)


@pytest.fixture
def gray_image() -> np.ndarray:
    return np.full((224, 224, 3), 128, dtype=np.uint8)


@pytest.fixture
def image_384() -> np.ndarray:
    rng = np.random.default_rng(0)
    return rng.integers(0, 255, size=(384, 384, 3), dtype=np.uint8)


def make_factory(palms: Optional[Sequence[FakePalm]] = None, **kwargs):
    return FakeInterpreterFactory(TWO_PALMS if palms is None else palms, **kwargs)
