# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from hand_detection.errors import InvalidInputError
from hand_detection.types import PixelFormat

_TO_RGB = {
    PixelFormat.BGR: cv2.COLOR_BGR2RGB,
    PixelFormat.RGBA: cv2.COLOR_RGBA2RGB,
    PixelFormat.BGRA: cv2.COLOR_BGRA2RGB,
    PixelFormat.GRAY: cv2.COLOR_GRAY2RGB,
}


def denormalize_coordinates(
    coordinates: np.ndarray,
    input_img_size: Tuple[int, int],
    scale: float = 1.0,
    pad: Tuple[int, int] = (0, 0),
) -> np.ndarray:
    """
    Maps detection coordinates from normalized [0, 1] to absolute coordinates in
    the original (pre-resize) image.

    Parameters
    ----------
    coordinates : np.ndarray
        Array of shape [..., 2]. Coordinates are ordered (x, y) and normalized to [0, 1].

    input_img_size : (int, int)
        (W, H) of the network input (the resized padded tensor).

    scale : float
        Scale factor used during resizing to network size.

    pad : (int, int)
        Padding (pad_left, pad_top) added during resize-to-network.

    Returns
    -------
    np.ndarray
        Denormalized coordinates, as float64.
    """
    img_w, img_h = input_img_size
    pad_x, pad_y = pad
    denorm_coordinates = np.array(coordinates, dtype=np.float64, copy=True)

    # normalized -> network pixel space -> remove padding -> unscale
    denorm_coordinates[..., 0] = (denorm_coordinates[..., 0] * img_w - pad_x) / scale
    denorm_coordinates[..., 1] = (denorm_coordinates[..., 1] * img_h - pad_y) / scale

    return denorm_coordinates


def apply_affine_to_frame(
    frame: np.ndarray, affine: np.ndarray, output_image_size: Tuple[int, int]
) -> np.ndarray:
    """
    Warp the frame with the given affine. Pixels that fall outside of the frame
    are filled with zeros instead of being read.

    Parameters
    ----------
    frame: np.ndarray
        Frame on which to apply the affine. Shape is [H, W, C], dtype must be np.uint8.

    affine: np.ndarray
        2x3 affine matrix mapping frame coordinates to output coordinates.

    output_image_size: Tuple[int, int]
        (width, height) of the output frame.

    Returns
    -------
    np.ndarray
        Warped image. Shape is [height, width, C]
    """
    assert frame.dtype == np.uint8  # cv2 does not work correctly otherwise.

    return cv2.warpAffine(
        frame,
        affine,
        output_image_size,
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


def compute_vector_rotation(
    vec_start: np.ndarray,
    vec_end: np.ndarray,
    offset_rads: float | np.ndarray = 0,
) -> np.ndarray:
    """
    From the given vector, compute the rotation angle of the vector with an added offset.

    Parameters
    ----------
    vec_start : np.ndarray
        Starting point of the vector. Shape [B, 2] (x, y).

    vec_end : np.ndarray
        Ending point of the vector. Shape [B, 2] (x, y).

    offset_rads : float or np.ndarray
        Offset (in radians) to subtract from the computed rotation.
        Can be a scalar or array broadcastable to shape [B].

    Returns
    -------
    theta : np.ndarray
        Rotation angle in radians, normalized to [-pi, pi). Shape [B].
    """
    dy = vec_start[..., 1] - vec_end[..., 1]
    dx = vec_start[..., 0] - vec_end[..., 0]

    return normalize_radians(np.arctan2(dy, dx) - offset_rads)


def normalize_radians(angle: float | np.ndarray) -> np.ndarray:
    """Wrap an angle to [-pi, pi)."""
    return angle - 2 * np.pi * np.floor((angle + np.pi) / (2 * np.pi))


def compute_resize_scale(
    src_size: Tuple[int, int], dst_size: Tuple[int, int]
) -> tuple[float, tuple[int, int]]:
    """
    Uniform scale that fits (src_h, src_w) inside (dst_h, dst_w) while
    preserving aspect ratio, and the resulting (new_h, new_w).
    """
    src_h, src_w = src_size
    dst_h, dst_w = dst_size
    scale = min(dst_h / src_h, dst_w / src_w)

    new_h = min(dst_h, max(1, math.floor(src_h * scale)))
    new_w = min(dst_w, max(1, math.floor(src_w * scale)))
    return scale, (new_h, new_w)


def resize_pad(
    image: np.ndarray,
    dst_size: Tuple[int, int],
) -> tuple[np.ndarray, float, tuple[int, int]]:
    """
    Resize and pad image to shape (dst_size[0], dst_size[1]) while preserving aspect ratio.

    Parameters
    ----------
    image
        Input image with shape [H, W] or [H, W, C]. dtype can be uint8, float32, etc.

    dst_size
        Desired (height, width).

    Returns
    -------
    rescaled_padded_image : np.ndarray
        Output image with shape (dst_h, dst_w) or (dst_h, dst_w, C).

    scale : float
        Scale factor applied to the original image (same for H and W).

    padding : (int, int)
        (pad_left, pad_top) applied to the resized image.
    """
    if image.ndim not in (2, 3):
        raise ValueError("image must be 2D (H, W) or 3D (H, W, C)")

    src_h, src_w = image.shape[:2]
    dst_h, dst_w = int(dst_size[0]), int(dst_size[1])

    scale, (new_h, new_w) = compute_resize_scale((src_h, src_w), (dst_h, dst_w))

    resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    pad_total_h = dst_h - new_h
    pad_total_w = dst_w - new_w

    pad_top, pad_bottom = (pad_total_h // 2, pad_total_h - pad_total_h // 2)
    pad_left, pad_right = (pad_total_w // 2, pad_total_w - pad_total_w // 2)

    padded = cv2.copyMakeBorder(
        resized,
        pad_top,
        pad_bottom,
        pad_left,
        pad_right,
        borderType=cv2.BORDER_CONSTANT,
        value=0.0,
    )

    return padded, scale, (pad_left, pad_top)


def decode_image(image_bytes: bytes) -> np.ndarray:
    """
    Decode an encoded image (JPEG, PNG, ...) into an RGB array of shape [H, W, 3].
    """
    if not image_bytes:
        raise InvalidInputError("Image data is empty")

    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if bgr is None:
        raise InvalidInputError("Could not decode image data")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def raw_pixels_to_rgb(
    data: bytes | np.ndarray,
    width: int,
    height: int,
    pixel_format: PixelFormat = PixelFormat.BGR,
    row_stride: Optional[int] = None,
) -> np.ndarray:
    """
    Convert a raw, tightly packed or row-padded pixel buffer into an RGB array.

    Parameters
    ----------
    data
        Raw 8-bit pixel data.
    width, height
        Image size in pixels.
    pixel_format
        Channel layout of ``data``.
    row_stride
        Bytes per row. Inferred from the buffer size when omitted.

    Returns
    -------
    np.ndarray
        RGB image of shape [height, width, 3], dtype uint8. Always a copy.
    """
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Invalid image size {width}x{height}")

    channels = pixel_format.channels
    if isinstance(data, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(data, dtype=np.uint8)
    else:
        arr = np.asarray(data, dtype=np.uint8).reshape(-1)

    if row_stride is None:
        row_stride = arr.size // height
    if row_stride < width * channels or arr.size < row_stride * height:
        raise InvalidInputError(
            f"Pixel buffer of {arr.size} bytes is too small for a "
            f"{width}x{height} {pixel_format.value} image"
        )

    arr = arr[: row_stride * height].reshape(height, row_stride)[:, : width * channels]
    arr = arr.reshape((height, width, channels))

    if pixel_format is PixelFormat.RGB:
        return arr.copy()
    if pixel_format is PixelFormat.GRAY:
        arr = arr[..., 0]
    return cv2.cvtColor(np.ascontiguousarray(arr), _TO_RGB[pixel_format])
