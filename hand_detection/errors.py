# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------


class HandDetectionError(Exception):
    """Base class for every error raised by the hand detection pipeline."""


class NotInitializedError(HandDetectionError):
    """An operation was invoked before initialization or after dispose."""


class InvalidInputError(HandDetectionError):
    """Malformed image data or tensors with unexpected shapes."""


class InvalidRegionError(HandDetectionError):
    """A crop region has no positive area inside the image."""


class ResourceInitError(HandDetectionError):
    """A model could not be loaded or the pipeline failed to start."""


class WorkerDisposedError(NotInitializedError):
    """The worker was disposed while the request was pending."""


ERROR_TYPES = {
    cls.__name__: cls
    for cls in (
        HandDetectionError,
        NotInitializedError,
        InvalidInputError,
        InvalidRegionError,
        ResourceInitError,
        WorkerDisposedError,
    )
}
