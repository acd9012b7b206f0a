# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from ai_edge_litert.interpreter import Delegate, Interpreter

from hand_detection.config import PerformanceConfig
from hand_detection.errors import ResourceInitError

logger = logging.getLogger(__name__)

# (model_path=..., model_content=..., performance=...) -> interpreter with
# allocated tensors
InterpreterFactory = Callable[..., Any]


def _load_delegates(performance: PerformanceConfig) -> List[Delegate]:
    if performance.thread_count is None or performance.delegate_path is None:
        return []
    try:
        return [
            Delegate(performance.delegate_path, dict(performance.delegate_options or {}))
        ]
    except (ValueError, OSError, RuntimeError) as e:
        logger.warning(
            "Could not load delegate %s, running on CPU: %s",
            performance.delegate_path,
            e,
        )
        return []


def _build(kwargs: Dict[str, Any], delegates: List[Delegate]) -> Interpreter:
    interpreter = Interpreter(**kwargs, experimental_delegates=delegates or None)
    interpreter.allocate_tensors()
    return interpreter


def create_interpreter(
    model_path: Optional[str] = None,
    model_content: Optional[bytes] = None,
    performance: Optional[PerformanceConfig] = None,
) -> Interpreter:
    """
    Load a LiteRT model from a file or from bytes and allocate its tensors.

    Parameters
    ----------
    model_path
        Path of a ``.tflite`` file. Mutually exclusive with ``model_content``.
    model_content
        Serialized model.
    performance
        Threading and delegate settings. An accelerator that cannot be used
        falls back to the CPU interpreter.

    Raises
    ------
    ResourceInitError
        If the model cannot be loaded.
    """
    if (model_path is None) == (model_content is None):
        raise ValueError("Exactly one of model_path and model_content is required")

    performance = performance or PerformanceConfig()
    kwargs: Dict[str, Any] = {}
    if model_path is not None:
        kwargs["model_path"] = str(model_path)
    else:
        kwargs["model_content"] = bytes(model_content)
    if performance.thread_count is not None:
        kwargs["num_threads"] = performance.thread_count

    source = model_path if model_path is not None else "<model bytes>"
    delegates = _load_delegates(performance)
    try:
        return _build(kwargs, delegates)
    except (ValueError, RuntimeError) as e:
        if not delegates:
            raise ResourceInitError(f"Failed to load model {source}: {e}") from e
        logger.warning("Delegate rejected %s, running on CPU: %s", source, e)

    try:
        return _build(kwargs, [])
    except (ValueError, RuntimeError) as e:
        raise ResourceInitError(f"Failed to load model {source}: {e}") from e
