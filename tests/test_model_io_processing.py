# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import numpy as np
from conftest import FakeInterpreter, tensor_details

from hand_detection.model_io_processing import (
    dequantize,
    prepare_image_input,
    quantize,
    read_output,
    write_input,
)


def test_quantize_clips_to_dtype_range():
    values = np.array([-1.0, 0.0, 0.5, 10.0])
    q = quantize(values, np.array([10]), np.array([0.01]))
    np.testing.assert_array_equal(q, [0, 10, 60, 255])
    assert q.dtype == np.uint8


def test_dequantize_without_parameters_is_a_cast():
    values = np.array([1, 2, 3], dtype=np.uint8)
    out = dequantize(values, np.array([]), np.array([]))
    assert out.dtype == np.float32
    np.testing.assert_array_equal(out, [1, 2, 3])


def test_prepare_uint8_input_keeps_pixels():
    image = np.arange(2 * 2 * 3, dtype=np.uint8).reshape(2, 2, 3)
    tensor = prepare_image_input(image, tensor_details(0, [1, 2, 2, 3], np.uint8))
    np.testing.assert_array_equal(tensor[0], image)


def test_prepare_float_input_scales_pixels():
    image = np.full((2, 2, 3), 255, dtype=np.uint8)
    buffer = np.zeros((1, 2, 2, 3), dtype=np.float32)

    tensor = prepare_image_input(image, tensor_details(0, [1, 2, 2, 3]), buffer)

    assert tensor is buffer
    np.testing.assert_allclose(buffer, 1.0)


def test_prepare_int8_input_quantizes():
    image = np.full((2, 2, 3), 255, dtype=np.uint8)
    details = tensor_details(0, [1, 2, 2, 3], np.int8, scales=[1 / 255], zero_points=[-128])

    tensor = prepare_image_input(image, details)

    assert tensor.dtype == np.int8
    np.testing.assert_array_equal(tensor, 127)


def test_read_output_dequantizes_into_buffer():
    interpreter = FakeInterpreter()
    interpreter.set_tensor(3, np.array([[130, 140]], dtype=np.uint8))
    details = tensor_details(3, [1, 2], np.uint8, scales=[0.5], zero_points=[128])
    out = np.zeros((1, 2), dtype=np.float32)

    result = read_output(interpreter, details, out=out)

    assert result is out
    np.testing.assert_allclose(out, [[1.0, 6.0]])


def test_write_input_quantizes_integer_tensors():
    interpreter = FakeInterpreter()
    details = tensor_details(1, [1, 2], np.uint8, scales=[0.5], zero_points=[128])

    write_input(interpreter, details, np.array([1.0, 6.0]))

    np.testing.assert_array_equal(interpreter.tensors[1], [[130, 140]])
    assert interpreter.tensors[1].dtype == np.uint8
