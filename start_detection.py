#!/usr/bin/env python3
"""Entry point for the Match Event Detection system."""

import argparse
import os
import sys
import time

from match_event_detection.config.defaults import DEFAULT_PATHS
from match_event_detection.config_manager import ConfigManager
from match_event_detection.exceptions import MatchEventDetectionError, describe_fatal_error
from match_event_detection.logging_config import get_logger, setup_logging
from match_event_detection.models.detection import DetectionEvent, result_kind
from match_event_detection.services.text_extraction import (
    contains_goal_text_with_custom, extract_team_name
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Detect goals, kick-offs and full-time overlays in an on-screen football game")
    parser.add_argument("mode", nargs="?", default="run", choices=("run", "bench", "check"),
                        help="run: poll until interrupted, bench: latency report, "
                             "check: recognize a single frame")
    parser.add_argument("--config", default=DEFAULT_PATHS["config_file"],
                        help="path to the JSON configuration file")
    parser.add_argument("--log-level", default="INFO",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    parser.add_argument("--log-dir", default=DEFAULT_PATHS["logs_dir"])
    parser.add_argument("--frames", type=int, default=None,
                        help="number of frames for bench mode (default from config)")
    return parser.parse_args(argv)


def print_event(event: DetectionEvent) -> None:
    print(f"[{event.timestamp:%H:%M:%S}] {event.describe()}", flush=True)


def run(pipeline, logger) -> int:
    if not pipeline.start():
        logger.error("Failed to start detection pipeline")
        return 1

    logger.info("Detection running, press Ctrl+C to stop")
    try:
        while pipeline.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        pipeline.stop()

    if pipeline.last_error is not None:
        print(pipeline.status_message, file=sys.stderr)
        return 1
    return 0


def bench(pipeline, frames) -> int:
    stats = pipeline.run_benchmark(frames)
    print(stats.format_report())
    return 0 if stats.meets_target() else 2


def check(pipeline) -> int:
    raster = pipeline.frame_source.capture(pipeline.region, pipeline.monitor_index)
    outcome = pipeline.process_frame(raster)
    print(f"Rasters tried: {', '.join(outcome.attempts) or 'none'}")
    print(f"Recognized text: {outcome.recognized_text!r}")
    print(f"Classification: {result_kind(outcome.result)} {outcome.result}")

    phrases = pipeline.config.custom_goal_phrases
    if contains_goal_text_with_custom(outcome.recognized_text, phrases):
        print(f"Goal marker: yes, team text {extract_team_name(outcome.recognized_text, phrases)!r}")
    else:
        print("Goal marker: no")
    return 0


def main(argv=None):
    """Main entry point for the detection system."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level, log_dir=args.log_dir)
    logger = get_logger("start_detection")

    logger.info("Starting Match Event Detection System")
    logger.info(f"Python version: {sys.version.split()[0]}")
    logger.info(f"Working directory: {os.getcwd()}")

    # Imported late so --help works without the capture and OCR stack
    from match_event_detection.detection_pipeline import DetectionPipeline

    try:
        config_manager = ConfigManager(args.config)
        pipeline = DetectionPipeline(config_manager, on_event=print_event)
    except MatchEventDetectionError as e:
        message = describe_fatal_error(e)
        logger.error(message)
        print(message, file=sys.stderr)
        return 1

    try:
        if args.mode == "bench":
            return bench(pipeline, args.frames)
        if args.mode == "check":
            return check(pipeline)
        return run(pipeline, logger)
    except MatchEventDetectionError as e:
        message = describe_fatal_error(e)
        logger.error(message)
        print(message, file=sys.stderr)
        return 1
    finally:
        pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
