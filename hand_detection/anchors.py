# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

import hand_detection.constants as C


@dataclass(frozen=True)
class SsdAnchorOptions:
    """Multi-scale SSD anchor grid. Defaults describe the palm detector."""

    input_size_width: int = C.PALM_INPUT_SIZE
    input_size_height: int = C.PALM_INPUT_SIZE
    num_layers: int = C.ANCHOR_NUM_LAYERS
    min_scale: float = C.ANCHOR_MIN_SCALE
    max_scale: float = C.ANCHOR_MAX_SCALE
    anchor_offset_x: float = C.ANCHOR_OFFSET
    anchor_offset_y: float = C.ANCHOR_OFFSET
    strides: Tuple[int, ...] = C.ANCHOR_STRIDES
    aspect_ratios: Tuple[float, ...] = C.ANCHOR_ASPECT_RATIOS
    interpolated_scale_aspect_ratio: float = C.ANCHOR_INTERPOLATED_SCALE_ASPECT_RATIO
    reduce_boxes_in_lowest_layer: bool = False
    fixed_anchor_size: bool = True

    def __post_init__(self) -> None:
        if len(self.strides) != self.num_layers:
            raise ValueError(
                f"Expected {self.num_layers} strides, got {len(self.strides)}"
            )

    @classmethod
    def for_input_size(cls, size: int) -> SsdAnchorOptions:
        return cls(input_size_width=size, input_size_height=size)


def _calculate_scale(
    min_scale: float, max_scale: float, stride_index: int, num_strides: int
) -> float:
    if num_strides == 1:
        return (min_scale + max_scale) * 0.5
    return min_scale + (max_scale - min_scale) * stride_index / (num_strides - 1)


def generate_anchors(options: SsdAnchorOptions = SsdAnchorOptions()) -> np.ndarray:
    """
    Generate the SSD anchor table used to decode the palm detector output.

    Consecutive layers that share a stride are merged into one feature map.
    Each cell of a feature map emits one anchor per (scale, aspect ratio) pair,
    in row-major cell order. The order matches the rows of the detector output.

    Parameters
    ----------
    options
        Anchor grid description.

    Returns
    -------
    anchors : np.ndarray
        Read-only array of shape [num_anchors, 2, 2], layout
        [[x_center, y_center], [w, h]] in normalized [0, 1] input space.
        With ``fixed_anchor_size`` every (w, h) is (1, 1).
    """
    anchors: list[tuple[float, float, float, float]] = []

    layer_id = 0
    while layer_id < options.num_layers:
        anchor_heights: list[float] = []
        anchor_widths: list[float] = []
        aspect_ratios: list[float] = []
        scales: list[float] = []

        last_same_stride_layer = layer_id
        while (
            last_same_stride_layer < options.num_layers
            and options.strides[last_same_stride_layer] == options.strides[layer_id]
        ):
            scale = _calculate_scale(
                options.min_scale,
                options.max_scale,
                last_same_stride_layer,
                options.num_layers,
            )
            if last_same_stride_layer == 0 and options.reduce_boxes_in_lowest_layer:
                aspect_ratios.extend([1.0, 2.0, 0.5])
                scales.extend([0.1, scale, scale])
            else:
                for aspect_ratio in options.aspect_ratios:
                    aspect_ratios.append(aspect_ratio)
                    scales.append(scale)
                if options.interpolated_scale_aspect_ratio > 0.0:
                    if last_same_stride_layer == options.num_layers - 1:
                        scale_next = 1.0
                    else:
                        scale_next = _calculate_scale(
                            options.min_scale,
                            options.max_scale,
                            last_same_stride_layer + 1,
                            options.num_layers,
                        )
                    scales.append(math.sqrt(scale * scale_next))
                    aspect_ratios.append(options.interpolated_scale_aspect_ratio)
            last_same_stride_layer += 1

        for aspect_ratio, scale in zip(aspect_ratios, scales):
            ratio_sqrt = math.sqrt(aspect_ratio)
            anchor_heights.append(scale / ratio_sqrt)
            anchor_widths.append(scale * ratio_sqrt)

        stride = options.strides[layer_id]
        feature_map_height = math.ceil(options.input_size_height / stride)
        feature_map_width = math.ceil(options.input_size_width / stride)

        for y in range(feature_map_height):
            y_center = (y + options.anchor_offset_y) / feature_map_height
            for x in range(feature_map_width):
                x_center = (x + options.anchor_offset_x) / feature_map_width
                for anchor_w, anchor_h in zip(anchor_widths, anchor_heights):
                    if options.fixed_anchor_size:
                        anchors.append((x_center, y_center, 1.0, 1.0))
                    else:
                        anchors.append((x_center, y_center, anchor_w, anchor_h))

        layer_id = last_same_stride_layer

    table = np.array(anchors, dtype=np.float32).reshape(-1, 2, 2)
    table.flags.writeable = False
    return table
