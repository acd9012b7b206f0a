# ---------------------------------------------------------------------
# Copyright (c) 2025 Qualcomm Technologies, Inc. and/or its subsidiaries.
# SPDX-License-Identifier: BSD-3-Clause
# ---------------------------------------------------------------------
import argparse
import json
import logging
import sys
import time
from pathlib import Path

import hand_detection.constants as C
from hand_detection.config import HandDetectorConfig, PerformanceConfig
from hand_detection.errors import HandDetectionError
from hand_detection.hand_detector import HandDetector
from hand_detection.types import HandMode
from hand_detection.worker import HandDetectorWorker

logger = logging.getLogger("hand_detection")


def config_from_args(args) -> HandDetectorConfig:
    if args.num_threads is not None or args.delegate:
        performance = PerformanceConfig.enabled(args.num_threads)
        if args.delegate:
            performance = PerformanceConfig(
                mode=performance.mode,
                num_threads=performance.num_threads,
                delegate_path=args.delegate,
                delegate_options={
                    "backend_type": "htp",
                    "htp_performance_mode": "2",
                    "log_level": "1",
                },
            )
    else:
        performance = PerformanceConfig.disabled()

    return HandDetectorConfig(
        mode=HandMode(args.mode),
        detector_conf=args.detector_conf,
        detector_iou=args.detector_iou,
        max_detections=args.max_detections,
        min_landmark_score=args.min_landmark_score,
        interpreter_pool_size=args.pool_size,
        performance=performance,
        enable_gestures=args.gestures,
        gesture_min_confidence=args.gesture_min_confidence,
        palm_model_path=args.palm_model,
        landmark_model_path=args.landmark_model,
        gesture_embedder_path=args.gesture_embedder_model,
        gesture_classifier_path=args.gesture_classifier_model,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = config_from_args(args)

    try:
        if args.worker:
            worker = HandDetectorWorker.spawn(config)
            detect = lambda data: worker.detect_hands(data).result()  # noqa: E731
            close = worker.dispose
        else:
            detector = HandDetector(config)
            detector.initialize()
            detect = detector.detect
            close = detector.dispose
    except HandDetectionError as e:
        logger.error("%s", e)
        return 1

    status = 0
    try:
        for path in args.images:
            start_time = time.perf_counter()
            try:
                hands = detect(Path(path).read_bytes())
            except (OSError, HandDetectionError) as e:
                logger.error("%s: %s", path, e)
                status = 1
                continue
            logger.info(
                "%s: %d hand(s) in %.1f ms",
                path,
                len(hands),
                (time.perf_counter() - start_time) * 1000.0,
            )
            print(
                json.dumps(
                    {"image": str(path), "hands": [hand.to_dict() for hand in hands]},
                    indent=args.indent,
                ),
                flush=True,
            )
    finally:
        close()
    return status


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Hand Detection")
    parser.add_argument("images", nargs="+", help="Image files (JPEG, PNG, ...)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in HandMode],
        default=HandMode.BOXES_AND_LANDMARKS.value,
        help="Pipeline stages to run, default boxes_and_landmarks",
    )
    parser.add_argument(
        "--detector-conf",
        type=float,
        default=C.DEFAULT_DETECTOR_CONF,
        help=f"Minimum palm score, default {C.DEFAULT_DETECTOR_CONF}",
    )
    parser.add_argument(
        "--detector-iou",
        type=float,
        default=C.DEFAULT_NMS_IOU_THRESHOLD,
        help=f"NMS IoU threshold, default {C.DEFAULT_NMS_IOU_THRESHOLD}",
    )
    parser.add_argument(
        "--max-detections",
        type=int,
        default=C.DEFAULT_MAX_DETECTIONS,
        help=f"Maximum number of hands, default {C.DEFAULT_MAX_DETECTIONS}",
    )
    parser.add_argument(
        "--min-landmark-score",
        type=float,
        default=C.DEFAULT_MIN_LANDMARK_SCORE,
        help=f"Minimum landmark score, default {C.DEFAULT_MIN_LANDMARK_SCORE}",
    )
    parser.add_argument(
        "--pool-size",
        type=int,
        default=1,
        help="Number of landmark interpreters, default 1",
    )
    parser.add_argument(
        "--gestures", action="store_true", help="Classify the gesture of every hand"
    )
    parser.add_argument(
        "--gesture-min-confidence",
        type=float,
        default=C.DEFAULT_GESTURE_MIN_CONFIDENCE,
        help=f"Minimum gesture probability, default {C.DEFAULT_GESTURE_MIN_CONFIDENCE}",
    )
    parser.add_argument("--palm-model", default=C.DEFAULT_PALM_MODEL_PATH)
    parser.add_argument("--landmark-model", default=C.DEFAULT_LANDMARK_MODEL_PATH)
    parser.add_argument(
        "--gesture-embedder-model", default=C.DEFAULT_GESTURE_EMBEDDER_PATH
    )
    parser.add_argument(
        "--gesture-classifier-model", default=C.DEFAULT_GESTURE_CLASSIFIER_PATH
    )
    parser.add_argument(
        "--num-threads",
        type=int,
        help=f"Interpreter threads (enables performance mode), at most {C.MAX_NUM_THREADS}",
    )
    parser.add_argument(
        "--delegate",
        type=str,
        help='LiteRT delegate library (e.g. "libQnnTFLiteDelegate.so")',
    )
    parser.add_argument(
        "--worker",
        action="store_true",
        help="Run detection on a background worker thread",
    )
    parser.add_argument("--indent", type=int, default=None, help="JSON indentation")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="warning",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    sys.exit(main())
