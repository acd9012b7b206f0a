# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

import numpy as np

from hand_detection.bbox_processing import (
    box_xywh_to_xyxy,
    compute_box_corners_with_rotation,
)


class HandMode(Enum):
    """Which stages of the pipeline run for every detected palm."""

    BOXES = "boxes"
    BOXES_AND_LANDMARKS = "boxes_and_landmarks"


class HandLandmarkModel(Enum):
    FULL = "full"


class PerformanceMode(Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


class PixelFormat(Enum):
    """Channel layout of a raw pixel buffer."""

    RGB = "rgb"
    BGR = "bgr"
    RGBA = "rgba"
    BGRA = "bgra"
    GRAY = "gray"

    @property
    def channels(self) -> int:
        if self is PixelFormat.GRAY:
            return 1
        if self in (PixelFormat.RGBA, PixelFormat.BGRA):
            return 4
        return 3


class Handedness(Enum):
    LEFT = "left"
    RIGHT = "right"


class HandLandmarkType(Enum):
    """The 21 hand landmarks, in the order the landmark model outputs them."""

    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


class GestureType(Enum):
    """Gesture classes, in the order of the canned gesture classifier output."""

    UNKNOWN = "unknown"
    CLOSED_FIST = "closed_fist"
    OPEN_PALM = "open_palm"
    POINTING_UP = "pointing_up"
    THUMB_DOWN = "thumb_down"
    THUMB_UP = "thumb_up"
    VICTORY = "victory"
    I_LOVE_YOU = "i_love_you"


NUM_HAND_LANDMARKS = len(HandLandmarkType)
NUM_GESTURE_CLASSES = len(GestureType)
HAND_LANDMARK_TYPES = tuple(HandLandmarkType)
GESTURE_TYPES = tuple(GestureType)


def rotation_matrix(theta: float) -> np.ndarray:
    """2x2 rotation matrix in image coordinates (y pointing down)."""
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    return np.array([[cos_t, -sin_t], [sin_t, cos_t]], dtype=np.float64)


@dataclass(frozen=True)
class RawDetection:
    """
    A single palm candidate decoded from the detector output.

    All coordinates are normalized to the [0, 1] space of the (letterboxed)
    detector input.
    """

    score: float
    center_x: float
    center_y: float
    width: float
    height: float
    keypoints: np.ndarray = field(repr=False, compare=False)

    def to_xyxy(self) -> np.ndarray:
        return box_xywh_to_xyxy(
            np.array(
                [self.center_x, self.center_y, self.width, self.height],
                dtype=np.float64,
            )
        )


@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def clip(self, width: int, height: int) -> BoundingBox:
        return BoundingBox(
            left=min(max(self.left, 0.0), float(width)),
            top=min(max(self.top, 0.0), float(height)),
            right=min(max(self.right, 0.0), float(width)),
            bottom=min(max(self.bottom, 0.0), float(height)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoundingBox:
        return cls(
            left=float(data["left"]),
            top=float(data["top"]),
            right=float(data["right"]),
            bottom=float(data["bottom"]),
        )


@dataclass(frozen=True)
class OrientedBox:
    """
    Square, rotation-aware hand region in pixel coordinates of the input image.

    A rotation of 0 means the fingers point to the top of the image. Positive
    rotations turn the box clockwise on screen.
    """

    center_x: float
    center_y: float
    width: float
    height: float
    rotation: float
    score: float

    def corners(self) -> np.ndarray:
        """
        Corners of the rotated box.

        Returns
        -------
        np.ndarray
            Shape [4, 2] in (top-left, bottom-left, top-right, bottom-right) order.
        """
        return compute_box_corners_with_rotation(
            np.array([self.center_x]),
            np.array([self.center_y]),
            np.array([self.width]),
            np.array([self.height]),
            np.array([self.rotation]),
        )[0].astype(np.float64)

    def bounding_box(self) -> BoundingBox:
        corners = self.corners()
        x0, y0 = corners.min(axis=0)
        x1, y1 = corners.max(axis=0)
        return BoundingBox(float(x0), float(y0), float(x1), float(y1))


@dataclass(frozen=True)
class CropTransform:
    """
    Similarity transform between original image pixels and the letterboxed
    input of the landmark model.

    The upright crop of size ``crop_size`` is centered on ``origin_center`` and
    rotated by ``rotation``. It was resized by ``resize_scale`` and padded by
    ``half_pad`` (left, top) to reach ``input_size``.
    """

    resize_scale: Tuple[float, float]
    half_pad: Tuple[float, float]
    rotation: float
    origin_center: Tuple[float, float]
    crop_size: Tuple[int, int]
    image_size: Tuple[int, int]
    input_size: int

    def unletterbox(self, points: np.ndarray) -> np.ndarray:
        """Letterboxed model-input pixels -> upright crop pixels."""
        points = np.asarray(points, dtype=np.float64)
        out = points.copy()
        out[..., 0] = (points[..., 0] - self.half_pad[0]) / self.resize_scale[0]
        out[..., 1] = (points[..., 1] - self.half_pad[1]) / self.resize_scale[1]
        return out

    def letterbox(self, points: np.ndarray) -> np.ndarray:
        """Upright crop pixels -> letterboxed model-input pixels."""
        points = np.asarray(points, dtype=np.float64)
        out = points.copy()
        out[..., 0] = points[..., 0] * self.resize_scale[0] + self.half_pad[0]
        out[..., 1] = points[..., 1] * self.resize_scale[1] + self.half_pad[1]
        return out

    def crop_to_image(self, points: np.ndarray) -> np.ndarray:
        """Upright crop pixels -> original image pixels."""
        points = np.asarray(points, dtype=np.float64)
        half_crop = np.array(self.crop_size, dtype=np.float64) / 2.0
        rotated = (points - half_crop) @ rotation_matrix(self.rotation).T
        return rotated + np.array(self.origin_center, dtype=np.float64)

    def image_to_crop(self, points: np.ndarray) -> np.ndarray:
        """Original image pixels -> upright crop pixels."""
        points = np.asarray(points, dtype=np.float64)
        centered = points - np.array(self.origin_center, dtype=np.float64)
        rotated = centered @ rotation_matrix(-self.rotation).T
        return rotated + np.array(self.crop_size, dtype=np.float64) / 2.0

    def to_crop(self, points: np.ndarray) -> np.ndarray:
        return self.letterbox(self.image_to_crop(points))

    def to_image(self, points: np.ndarray) -> np.ndarray:
        return self.crop_to_image(self.unletterbox(points))


@dataclass(frozen=True)
class HandLandmark:
    type: HandLandmarkType
    x: float
    y: float
    z: float
    visibility: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.name,
            "x": self.x,
            "y": self.y,
            "z": self.z,
            "visibility": self.visibility,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HandLandmark:
        return cls(
            type=HandLandmarkType[data["type"]],
            x=float(data["x"]),
            y=float(data["y"]),
            z=float(data["z"]),
            visibility=float(data["visibility"]),
        )


@dataclass(frozen=True)
class HandLandmarks:
    """Post-processed output of the landmark model for one hand."""

    landmarks: Tuple[HandLandmark, ...]
    world_landmarks: Tuple[HandLandmark, ...]
    score: float
    handedness: Handedness


@dataclass(frozen=True)
class GestureResult:
    type: GestureType
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.name, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GestureResult:
        return cls(
            type=GestureType[data["type"]], confidence=float(data["confidence"])
        )


@dataclass(frozen=True)
class Hand:
    """
    A detected hand.

    Coordinates are absolute pixels of the image passed to detection, whose
    size is ``image_width`` x ``image_height``. The rotation fields describe
    the enlarged, square palm box and are present whenever the box came from
    the palm detector.
    """

    bounding_box: BoundingBox
    score: float
    image_width: int
    image_height: int
    handedness: Optional[Handedness] = None
    rotation: Optional[float] = None
    rotated_center_x: Optional[float] = None
    rotated_center_y: Optional[float] = None
    rotated_size: Optional[float] = None
    landmarks: Tuple[HandLandmark, ...] = ()
    world_landmarks: Tuple[HandLandmark, ...] = ()
    gesture: Optional[GestureResult] = None

    @property
    def has_landmarks(self) -> bool:
        return len(self.landmarks) == NUM_HAND_LANDMARKS

    @property
    def has_gesture(self) -> bool:
        return self.gesture is not None

    def get_landmark(self, landmark_type: HandLandmarkType) -> Optional[HandLandmark]:
        for landmark in self.landmarks:
            if landmark.type is landmark_type:
                return landmark
        return None

    def landmarks_as_array(self) -> np.ndarray:
        """Landmarks as a [21, 3] array of (x, y, z), empty when absent."""
        return np.array(
            [[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=np.float32
        ).reshape(-1, 3)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bounding_box": self.bounding_box.to_dict(),
            "score": self.score,
            "image_width": self.image_width,
            "image_height": self.image_height,
            "handedness": self.handedness.name if self.handedness else None,
            "rotation": self.rotation,
            "rotated_center_x": self.rotated_center_x,
            "rotated_center_y": self.rotated_center_y,
            "rotated_size": self.rotated_size,
            "landmarks": [lm.to_dict() for lm in self.landmarks],
            "world_landmarks": [lm.to_dict() for lm in self.world_landmarks],
            "gesture": self.gesture.to_dict() if self.gesture else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hand:
        handedness = data.get("handedness")
        gesture = data.get("gesture")
        return cls(
            bounding_box=BoundingBox.from_dict(data["bounding_box"]),
            score=float(data["score"]),
            image_width=int(data["image_width"]),
            image_height=int(data["image_height"]),
            handedness=Handedness[handedness] if handedness else None,
            rotation=data.get("rotation"),
            rotated_center_x=data.get("rotated_center_x"),
            rotated_center_y=data.get("rotated_center_y"),
            rotated_size=data.get("rotated_size"),
            landmarks=tuple(
                HandLandmark.from_dict(lm) for lm in data.get("landmarks", [])
            ),
            world_landmarks=tuple(
                HandLandmark.from_dict(lm) for lm in data.get("world_landmarks", [])
            ),
            gesture=GestureResult.from_dict(gesture) if gesture else None,
        )
