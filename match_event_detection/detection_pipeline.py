"""Detection pipeline that turns screen captures into match events."""

import threading
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from .config.defaults import SYSTEM_CONSTANTS
from .config_manager import ConfigManager, clamp_debounce_ms
from .exceptions import (
    CaptureError, ConfigError, PipelineStateError, RecognitionError, RecognizerInitError,
    TeamDatabaseError, describe_fatal_error, error_component
)
from .models.detection import (
    DetectionContext, DetectionEvent, DetectionResult, FrameOutcome, Goal,
    NO_MATCH, is_match, result_kind
)
from .services.debouncer import Debouncer
from .services.error_handler import ErrorHandler, ErrorSeverity, global_error_handler
from .services.event_classifiers import build_classifiers, classify
from .services.frame_capture import ScreenFrameSource, validate_region
from .services.interfaces import FrameSourceInterface, TeamDatabaseInterface, TextRecognizerInterface
from .services.performance_profiler import IterationTiming, LatencyStats, PerformanceProfiler
from .services.phrase_catalog import load_phrases
from .services.preprocessing import ImagePreprocessor
from .services.team_database import TeamDatabase
from .services.team_matcher import TeamMatcher
from .services.text_extraction import extract_team_name
from .services.text_recognizer import TesseractRecognizer, normalize_recognized_text
from .logging_config import get_logger, log_performance

logger = get_logger("detection_pipeline")

EventCallback = Callable[[DetectionEvent], None]
ErrorCallback = Callable[[Exception, str], None]


class PipelineState(Enum):
    """Externally visible pipeline states."""
    IDLE = "idle"
    POLLING = "polling"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class DetectionPipeline:
    """Polls a screen region and emits debounced detection events.

    One worker thread runs capture, preprocessing, recognition and
    classification in order for every tick. Stop requests are honoured
    between ticks only.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None,
                 frame_source: Optional[FrameSourceInterface] = None,
                 recognizer: Optional[TextRecognizerInterface] = None,
                 team_database: Optional[TeamDatabaseInterface] = None,
                 on_event: Optional[EventCallback] = None,
                 on_error: Optional[ErrorCallback] = None,
                 error_handler: Optional[ErrorHandler] = None):
        """Build every stage; raises on an invalid region or a missing OCR engine."""
        self.config_manager = config_manager or ConfigManager()
        self.config = self.config_manager.get_config()
        self.on_event = on_event
        self.on_error = on_error

        self.error_handler = error_handler or global_error_handler
        for component in ("detection_pipeline", "frame_capture", "text_recognizer"):
            self.error_handler.register_component(component)

        if not self.config_manager.validate_config():
            raise ConfigError(f"Invalid configuration in {self.config_manager.config_path}")

        try:
            self.frame_source = frame_source or ScreenFrameSource()
            self._apply_capture_settings()

            self.preprocessor = ImagePreprocessor(
                threshold=self.config.ocr_threshold,
                enable_morph_open=self.config.enable_morph_open,
                workers=self.config.preprocessing_workers
            )

            self.recognizer = recognizer or TesseractRecognizer(
                tesseract_cmd=self.config.tesseract_cmd,
                tessdata_dir=self.config.tessdata_dir
            )
        except (CaptureError, RecognizerInitError) as e:
            self.error_handler.handle_error(error_component(e), e, ErrorSeverity.CRITICAL)
            raise

        self.language = self.config_manager.get_language()
        self.phrases = load_phrases(self.language,
                                    extra_goal_phrases=self.config.custom_goal_phrases)
        self.classifiers = build_classifiers(
            self.phrases,
            goal_enabled=self.config.goal_detection_enabled,
            kickoff_enabled=self.config.kickoff_detection_enabled,
            match_end_enabled=self.config.match_end_detection_enabled
        )
        self.team_matcher = self._build_team_matcher(team_database)
        self.debouncer = Debouncer(self.config_manager.get_debounce_ms())
        self.profiler = PerformanceProfiler()

        # Pipeline state
        self.state = PipelineState.IDLE
        self.pipeline_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self.status_message = "Idle"
        self.last_error: Optional[Exception] = None
        self.consecutive_errors = 0
        self.max_consecutive_errors = 10

        # Statistics
        self.frame_count = 0
        self.detection_count = 0
        self.suppressed_count = 0
        self.error_count = 0
        self.start_time: Optional[datetime] = None
        self.last_result: DetectionResult = NO_MATCH
        self.last_event: Optional[DetectionEvent] = None

        logger.info(f"Detection pipeline initialized - region: {self.region.to_list()}, "
                    f"monitor: {self.monitor_index}, language: {self.language.display_name}, "
                    f"debounce: {self.debouncer.interval_ms} ms, "
                    f"team: {self.team_matcher.display_name if self.team_matcher else 'any'}")

    def _build_team_matcher(self, team_database: Optional[TeamDatabaseInterface]) -> Optional[TeamMatcher]:
        """Matcher for the selected team, None when goals need no attribution."""
        league, team_key = self.config.selected_league, self.config.selected_team_key
        if not (league and team_key):
            return None

        try:
            database = team_database or TeamDatabase.load(self.config.team_database_path)
        except TeamDatabaseError as e:
            self.error_handler.handle_error("team_database", e, ErrorSeverity.MEDIUM)
            logger.warning("Team database unavailable, goals will not be attributed")
            return None

        profile = database.find_team(league, team_key)
        if profile is None:
            logger.warning(f"Team '{team_key}' not found in league '{league}', "
                           f"goals will not be attributed")
            return None

        return TeamMatcher(profile)

    # Per-tick processing

    def process_frame(self, raster: np.ndarray,
                      timing: Optional[IterationTiming] = None) -> FrameOutcome:
        """Preprocess, recognize and classify one captured raster.

        Candidate rasters are tried primary first; fallbacks are only
        produced when the previous candidate classified as NoMatch. A failed
        recognition call ends the tick with NoMatch.
        """
        timing = timing or IterationTiming()
        attempts = []
        last_text = ""

        candidates = iter(self.preprocessor.candidate_rasters(
            raster, include_fallbacks=self.config.enable_fallback_methods))

        while True:
            stage_start = time.perf_counter()
            candidate = next(candidates, None)
            timing.preprocess_ms += _elapsed_ms(stage_start)
            if candidate is None:
                break
            strategy, binary = candidate

            stage_start = time.perf_counter()
            try:
                raw_text = self.recognizer.recognize(binary)
            except RecognitionError as e:
                self.error_count += 1
                self.error_handler.handle_error("text_recognizer", e, ErrorSeverity.MEDIUM)
                logger.warning(f"Recognition failed on {strategy} raster, skipping tick: {e}")
                return FrameOutcome(NO_MATCH, None, last_text, tuple(attempts))
            finally:
                timing.recognize_ms += _elapsed_ms(stage_start)

            text = normalize_recognized_text(raw_text)
            attempts.append(strategy)
            last_text = text

            stage_start = time.perf_counter()
            context = DetectionContext(
                recognized_text=text,
                timestamp=datetime.now(),
                home_team=self.config.home_team,
                away_team=self.config.away_team
            )
            result = classify(self.classifiers, context)
            timing.classify_ms += _elapsed_ms(stage_start)

            if is_match(result):
                return FrameOutcome(result, strategy, text, tuple(attempts))

        logger.debug(f"No match after {len(attempts)} raster(s), last text: '{last_text}'")
        return FrameOutcome(NO_MATCH, None, last_text, tuple(attempts))

    def attribute_goal(self, outcome: FrameOutcome) -> Tuple[bool, Optional[str]]:
        """Decide whether a goal belongs to the selected team.

        Returns ``(accepted, team)``. Without a selected team every goal is
        accepted with the classifier's team.
        """
        result = outcome.result
        if not isinstance(result, Goal):
            return True, None

        if self.team_matcher is None:
            return True, result.team_name

        fragment = extract_team_name(outcome.recognized_text, self.phrases.goal_phrases)
        for candidate in (fragment, result.team_name):
            if candidate and self.team_matcher.matches(candidate):
                return True, self.team_matcher.display_name

        logger.info(f"Goal for '{fragment or result.team_name or 'unknown'}' ignored, "
                    f"not {self.team_matcher.display_name}")
        return False, fragment

    def _handle_detection(self, outcome: FrameOutcome) -> Optional[DetectionEvent]:
        accepted, team = self.attribute_goal(outcome)
        if not accepted:
            return None

        if not self.debouncer.should_trigger():
            self.suppressed_count += 1
            logger.debug(f"{result_kind(outcome.result)} suppressed by debounce "
                         f"({self.debouncer.remaining_ms()} ms remaining)")
            return None

        event = DetectionEvent(
            result=outcome.result,
            timestamp=datetime.now(),
            strategy=outcome.strategy or "primary",
            recognized_text=outcome.recognized_text,
            team=team
        )
        self.detection_count += 1
        self.last_event = event
        logger.info(f"Detected {event.describe()} via {event.strategy} raster")

        if self.on_event:
            try:
                self.on_event(event)
            except Exception as e:
                logger.error(f"Error in detection event callback: {e}")

        return event

    def poll_once(self) -> DetectionResult:
        """Run one tick. CaptureError propagates to the caller."""
        timing = IterationTiming()
        tick_start = time.perf_counter()

        stage_start = time.perf_counter()
        raster = self.frame_source.capture(self.region, self.monitor_index)
        timing.capture_ms = _elapsed_ms(stage_start)

        outcome = self.process_frame(raster, timing)
        timing.total_ms = _elapsed_ms(tick_start)
        self.profiler.record_iteration(timing)

        self.frame_count += 1
        self.last_result = outcome.result

        if is_match(outcome.result):
            self._handle_detection(outcome)

        return outcome.result

    # Lifecycle

    @property
    def running(self) -> bool:
        return self.state == PipelineState.POLLING

    def _apply_capture_settings(self) -> None:
        """Resolve the configured region and monitor, validating the region."""
        region = self.config_manager.get_capture_region()
        monitor_index = self.config_manager.get_config().monitor_index
        validate_region(region, self.frame_source.monitor_size(monitor_index))
        self.region = region
        self.monitor_index = monitor_index

    def start(self) -> bool:
        """Start polling on a worker thread.

        Returns False while a previous worker is still polling or finishing
        its last tick, and when the configured region no longer fits the
        monitor.
        """
        with self._state_lock:
            if self.state == PipelineState.POLLING:
                if self._stop_event.is_set():
                    logger.warning("Previous detection tick is still finishing, not starting")
                else:
                    logger.warning("Pipeline is already running")
                return False

            try:
                self._apply_capture_settings()
            except CaptureError as e:
                self.last_error = e
                self.error_handler.handle_error(error_component(e), e, ErrorSeverity.CRITICAL)
                self.status_message = describe_fatal_error(e)
                logger.error(self.status_message)
                return False

            # Each worker gets its own event so a late stop cannot reach a newer one
            stop_event = threading.Event()
            self._stop_event = stop_event
            self.state = PipelineState.POLLING
            self.status_message = "Detection running"
            self.last_error = None
            self.consecutive_errors = 0
            self.start_time = datetime.now()
            self.pipeline_thread = threading.Thread(
                target=self._pipeline_loop, args=(stop_event,),
                name="detection-pipeline", daemon=True)
            self.pipeline_thread.start()

        logger.info("Detection pipeline started")
        return True

    def stop(self) -> None:
        """Stop polling; an in-flight tick completes first.

        When the tick outlasts the join timeout the pipeline stays POLLING
        until the worker exits, so ``start`` cannot overlap it.
        """
        with self._state_lock:
            was_polling = self.state == PipelineState.POLLING
        self._stop_event.set()

        thread = self.pipeline_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=SYSTEM_CONSTANTS["THREAD_JOIN_TIMEOUT_SECONDS"])

        if thread and thread.is_alive():
            logger.warning("Pipeline thread is still finishing its tick")
            with self._state_lock:
                if self.last_error is None:
                    self.status_message = "Stopping after the current tick"
            return

        with self._state_lock:
            self.state = PipelineState.IDLE
            # A fatal error already left its own status message
            if was_polling and self.last_error is None:
                self.status_message = "Detection stopped"
                logger.info("Detection pipeline stopped")

    def close(self) -> None:
        """Stop polling and release the capture and preprocessing resources."""
        self.stop()
        self.preprocessor.close()
        self.frame_source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _pipeline_loop(self, stop_event: threading.Event) -> None:
        """Main polling loop; no catch-up when a tick overruns."""
        logger.info("Pipeline processing loop started")
        frame_interval = self.config.target_frame_ms / 1000.0

        try:
            while not stop_event.is_set():
                tick_start = time.monotonic()

                try:
                    self.poll_once()
                    self.consecutive_errors = 0
                except CaptureError as e:
                    self._fail(e)
                    break
                except Exception as e:
                    self.error_count += 1
                    self.consecutive_errors += 1
                    self.error_handler.handle_error("detection_pipeline", e, ErrorSeverity.HIGH)
                    logger.error(f"Error in pipeline loop: {e}")
                    if self.consecutive_errors >= self.max_consecutive_errors:
                        self._fail(e)
                        break

                remaining = frame_interval - (time.monotonic() - tick_start)
                if remaining > 0:
                    stop_event.wait(remaining)
        finally:
            with self._state_lock:
                self.state = PipelineState.IDLE
                if self.last_error is None and stop_event.is_set():
                    self.status_message = "Detection stopped"
            logger.info("Pipeline processing loop ended")

    def _fail(self, error: Exception) -> None:
        """Stop polling on a fatal error and publish a status message."""
        self.error_count += 1
        self.last_error = error
        self.error_handler.handle_error(error_component(error) or "detection_pipeline",
                                        error, ErrorSeverity.CRITICAL)
        self.status_message = describe_fatal_error(error)
        self._stop_event.set()
        logger.error(self.status_message)

        if self.on_error:
            try:
                self.on_error(error, self.status_message)
            except Exception as e:
                logger.error(f"Error in pipeline error callback: {e}")

    # Benchmarking, status and configuration

    def run_benchmark(self, frames: Optional[int] = None) -> LatencyStats:
        """Run ``frames`` ticks synchronously and return their latency stats."""
        if self.state == PipelineState.POLLING:
            raise PipelineStateError("Stop detection before running a benchmark")

        frames = frames or self.config.bench_frames

        logger.info(f"Benchmarking {frames} frames")
        with self.profiler.collect(max_samples=frames) as stats:
            for _ in range(frames):
                self.poll_once()

        total = stats.stage_stats("total")
        log_performance("Benchmark completed", {
            "frames": frames,
            "total_p95_ms": round(total.p95, 2),
            "total_p99_ms": round(total.p99, 2),
            "bottleneck": stats.bottleneck(),
            "meets_target": stats.meets_target()
        })
        return stats

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the pipeline state and counters."""
        uptime = (datetime.now() - self.start_time).total_seconds() \
            if self.start_time and self.running else 0.0
        total = self.profiler.latency.stage_stats("total")

        return {
            "state": self.state.value,
            "running": self.running,
            "status_message": self.status_message,
            "uptime_seconds": uptime,
            "frame_count": self.frame_count,
            "detection_count": self.detection_count,
            "suppressed_count": self.suppressed_count,
            "error_count": self.error_count,
            "last_result": result_kind(self.last_result),
            "last_event": self.last_event.describe() if self.last_event else None,
            "last_error": str(self.last_error) if self.last_error else None,
            "debounce_remaining_ms": self.debouncer.remaining_ms(),
            "latency_p95_ms": total.p95,
            "language": self.language.code,
            "team": self.team_matcher.display_name if self.team_matcher else None,
            "classifiers": {c.name(): c.is_enabled() for c in self.classifiers},
            "component_health": {name: status.value for name, status
                                 in self.error_handler.get_component_health().items()}
        }

    def update_configuration(self, **kwargs) -> None:
        """Persist configuration changes and apply the ones that can change live."""
        self.config_manager.update_config(**kwargs)
        self.config = self.config_manager.get_config()

        if "debounce_ms" in kwargs:
            self.debouncer.interval_ms = clamp_debounce_ms(self.config.debounce_ms)

        toggles = (
            ("goal_detection_enabled", 0),
            ("kickoff_detection_enabled", 1),
            ("match_end_detection_enabled", 2)
        )
        for key, index in toggles:
            if key in kwargs:
                self.classifiers[index].set_enabled(bool(getattr(self.config, key)))

        if "ocr_threshold" in kwargs:
            self.preprocessor.manual_threshold = self.config.ocr_threshold or None
        if "enable_morph_open" in kwargs:
            self.preprocessor.enable_morph_open = self.config.enable_morph_open

        if "capture_region" in kwargs or "monitor_index" in kwargs:
            if self.running:
                logger.warning("Capture region changes take effect when detection next starts")
            else:
                self._apply_capture_settings()

        logger.info(f"Pipeline configuration updated: {sorted(kwargs)}")
