# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from typing import Any, Dict, Optional

import numpy as np

TensorDetails = Dict[str, Any]


def _quantization(details: TensorDetails) -> tuple[np.ndarray, np.ndarray]:
    params = details.get("quantization_parameters") or {}
    zero_points = np.asarray(params.get("zero_points", []))
    scales = np.asarray(params.get("scales", []))
    return zero_points, scales


def dequantize(values, zero_points, scales):
    if zero_points.size == 0 or scales.size == 0:
        return values.astype(np.float32)

    return ((values - np.int32(zero_points)) * np.float64(scales)).astype(np.float32)


def quantize(values, zero_points, scales, dtype=np.uint8):
    v = np.asarray(values, dtype=np.float32)
    z = np.asarray(zero_points, dtype=np.int32)
    s = np.asarray(scales, dtype=np.float64)

    q_float = np.rint(v / s) + z

    info = np.iinfo(dtype)
    q_clipped = np.clip(q_float, info.min, info.max)

    return q_clipped.astype(dtype, copy=False)


def is_quantized(details: TensorDetails) -> bool:
    return np.issubdtype(np.dtype(details["dtype"]), np.integer)


def read_output(
    interpreter, details: TensorDetails, out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Copy an output tensor out of the interpreter as float32, into ``out`` when
    a pre-allocated buffer of the same shape is given.
    """
    zero_points, scales = _quantization(details)
    values = dequantize(
        np.array(interpreter.get_tensor(details["index"]), copy=True),
        zero_points=zero_points,
        scales=scales,
    )
    if out is None:
        return values
    np.copyto(out, values.reshape(out.shape))
    return out


def write_input(interpreter, details: TensorDetails, values: np.ndarray) -> None:
    """
    Set a model input from float values, quantizing them when the tensor is
    an integer tensor.
    """
    dtype = np.dtype(details["dtype"])
    shape = tuple(int(d) for d in details["shape"])
    if is_quantized(details):
        zero_points, scales = _quantization(details)
        tensor = quantize(values, zero_points, scales, dtype=dtype.type)
    else:
        tensor = np.asarray(values, dtype=dtype)
    interpreter.set_tensor(details["index"], tensor.reshape(shape))


def prepare_image_input(
    image: np.ndarray, details: TensorDetails, buffer: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Convert an RGB uint8 image of the model input size into the model input tensor.

    uint8 models take the raw pixels; other models take pixels scaled to [0, 1].

    Parameters
    ----------
    image
        Shape [H, W, 3], dtype uint8.
    details
        Input tensor details of the interpreter.
    buffer
        Optional pre-allocated array of the input shape and dtype to fill.

    Returns
    -------
    np.ndarray
        Tensor of shape [1, H, W, 3].
    """
    dtype = np.dtype(details["dtype"])
    shape = tuple(int(d) for d in details["shape"])
    if buffer is None:
        buffer = np.empty(shape, dtype=dtype)

    if dtype == np.uint8:
        buffer[0] = image
    elif is_quantized(details):
        zero_points, scales = _quantization(details)
        buffer[0] = quantize(image / 255.0, zero_points, scales, dtype=dtype.type)
    else:
        np.multiply(image, 1.0 / 255.0, out=buffer[0], casting="unsafe")
    return buffer


def input_image_size(details: TensorDetails) -> tuple[int, int]:
    """(height, width) of an NHWC image input."""
    shape = details["shape"]
    return int(shape[1]), int(shape[2])
