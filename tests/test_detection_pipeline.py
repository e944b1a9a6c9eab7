"""Integration tests for detection pipeline."""

import unittest
import tempfile
import shutil
import threading
import time
from unittest.mock import Mock, patch
import sys
import os

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from match_event_detection.config.defaults import SYSTEM_CONSTANTS
from match_event_detection.config_manager import ConfigManager
from match_event_detection.detection_pipeline import DetectionPipeline, PipelineState
from match_event_detection.exceptions import (
    CaptureError, CapturePermissionError, ConfigError, PipelineStateError, RecognitionError,
    RegionOutOfBoundsError
)
from match_event_detection.models.detection import Goal, Kickoff, MatchEnd, NoMatch
from match_event_detection.services.error_handler import ComponentStatus, ErrorHandler
from match_event_detection.services.interfaces import FrameSourceInterface, TextRecognizerInterface
from match_event_detection.services.team_database import TeamDatabase


def make_overlay():
    raster = np.zeros((32, 64, 4), dtype=np.uint8)
    raster[..., 3] = 255
    raster[8:24, 8:56, :3] = 230
    raster.setflags(write=False)
    return raster


class TestDetectionPipeline(unittest.TestCase):
    """Test cases for DetectionPipeline integration."""

    def setUp(self):
        """Set up test fixtures."""
        # Create temporary directory for testing
        self.test_dir = tempfile.mkdtemp()

        # Create test configuration
        config_path = os.path.join(self.test_dir, "test_config.json")
        self.config_manager = ConfigManager(config_path)
        self.config_manager.update_config(
            capture_region=[0, 0, 64, 32],
            preprocessing_workers=1,
            target_frame_ms=1
        )

        self.frame_source = Mock(spec=FrameSourceInterface)
        self.frame_source.monitor_size.return_value = (1920, 1080)
        self.frame_source.capture.return_value = make_overlay()

        self.recognizer = Mock(spec=TextRecognizerInterface)
        self.recognizer.recognize.return_value = ""

        self.events = []
        self.error_handler = ErrorHandler()
        self.pipelines = []

    def tearDown(self):
        """Clean up test fixtures."""
        for pipeline in self.pipelines:
            pipeline.close()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def create_pipeline(self, **kwargs):
        pipeline = DetectionPipeline(
            self.config_manager,
            frame_source=self.frame_source,
            recognizer=self.recognizer,
            on_event=self.events.append,
            error_handler=self.error_handler,
            **kwargs
        )
        self.pipelines.append(pipeline)
        return pipeline

    def wait_until_stopped(self, pipeline, timeout=2.0):
        deadline = time.monotonic() + timeout
        while pipeline.running and time.monotonic() < deadline:
            time.sleep(0.01)

    def test_pipeline_initialization(self):
        """Test pipeline initialization."""
        pipeline = self.create_pipeline()

        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertFalse(pipeline.running)
        self.assertEqual(pipeline.region.to_list(), [0, 0, 64, 32])
        self.assertEqual(pipeline.debouncer.interval_ms, 8000)
        self.assertIsNone(pipeline.team_matcher)
        self.assertEqual(pipeline.detection_count, 0)
        self.frame_source.monitor_size.assert_called_once_with(0)

    def test_region_outside_monitor_is_rejected(self):
        """Test that an oversized region fails at construction."""
        self.frame_source.monitor_size.return_value = (32, 32)
        with self.assertRaises(RegionOutOfBoundsError):
            self.create_pipeline()
        self.assertEqual(self.error_handler.get_component_health()["frame_capture"],
                         ComponentStatus.FAILED)

    def test_invalid_configuration_is_rejected(self):
        self.config_manager.update_config(monitor_index=-1)
        with self.assertRaises(ConfigError):
            self.create_pipeline()

    def test_debounce_interval_is_clamped(self):
        self.config_manager.update_config(debounce_ms=10)
        pipeline = self.create_pipeline()
        self.assertEqual(pipeline.debouncer.interval_ms, 100)

    def test_goal_tick_emits_event(self):
        """Test a tick whose primary raster reads as a goal."""
        self.recognizer.recognize.return_value = "Goal for Arsenal\n"
        pipeline = self.create_pipeline()

        result = pipeline.poll_once()

        self.assertIsInstance(result, Goal)
        self.assertEqual(len(self.events), 1)
        event = self.events[0]
        self.assertEqual(event.kind, "goal")
        self.assertEqual(event.strategy, "primary")
        self.assertEqual(event.recognized_text, "GOAL FOR ARSENAL")
        self.assertEqual(pipeline.detection_count, 1)
        self.assertEqual(pipeline.frame_count, 1)
        self.recognizer.recognize.assert_called_once()

    def test_match_end_tick(self):
        self.recognizer.recognize.return_value = "Full Time 3-1"
        pipeline = self.create_pipeline()

        result = pipeline.poll_once()

        self.assertIsInstance(result, MatchEnd)
        self.assertEqual((result.home_score, result.away_score), (3, 1))
        self.assertGreater(result.confidence, 0.8)

    def test_no_match_tries_every_fallback(self):
        """Test that an unreadable frame runs through all candidate rasters."""
        self.recognizer.recognize.return_value = "Random noise"
        pipeline = self.create_pipeline()

        outcome = pipeline.process_frame(make_overlay())

        self.assertIsInstance(outcome.result, NoMatch)
        self.assertEqual(outcome.attempts,
                         ("primary", "channel_r", "channel_g", "channel_b", "sobel_edges"))
        self.assertEqual(self.recognizer.recognize.call_count, 5)
        self.assertEqual(outcome.recognized_text, "RANDOM NOISE")

    def test_fallback_stops_at_first_match(self):
        self.recognizer.recognize.side_effect = ["", "noise", "KICK OFF", "GOAL!"]
        pipeline = self.create_pipeline()

        outcome = pipeline.process_frame(make_overlay())

        self.assertIsInstance(outcome.result, Kickoff)
        self.assertEqual(outcome.strategy, "channel_g")
        self.assertEqual(outcome.attempts, ("primary", "channel_r", "channel_g"))
        self.assertEqual(self.recognizer.recognize.call_count, 3)

    def test_fallbacks_disabled(self):
        self.config_manager.update_config(enable_fallback_methods=False)
        pipeline = self.create_pipeline()

        outcome = pipeline.process_frame(make_overlay())

        self.assertEqual(outcome.attempts, ("primary",))
        self.recognizer.recognize.assert_called_once()

    def test_recognizer_receives_binary_raster(self):
        pipeline = self.create_pipeline()
        pipeline.process_frame(make_overlay())

        binary = self.recognizer.recognize.call_args_list[0][0][0]
        self.assertEqual(binary.shape, (32, 64))
        self.assertTrue(set(np.unique(binary)) <= {0, 255})

    def test_recognition_error_is_recoverable(self):
        """Test that a failed recognition call only costs the tick."""
        self.recognizer.recognize.side_effect = [RecognitionError("tesseract crashed"), "KICK OFF"]
        pipeline = self.create_pipeline()

        first = pipeline.poll_once()
        second = pipeline.poll_once()

        self.assertIsInstance(first, NoMatch)
        self.assertIsInstance(second, Kickoff)
        self.assertEqual(pipeline.error_count, 1)
        self.assertEqual(self.error_handler.get_last_error("text_recognizer").error_type,
                         "RecognitionError")

    def test_debounce_suppresses_repeats(self):
        self.recognizer.recognize.return_value = "KICK OFF"
        pipeline = self.create_pipeline()

        pipeline.poll_once()
        pipeline.poll_once()

        self.assertEqual(len(self.events), 1)
        self.assertEqual(pipeline.suppressed_count, 1)
        self.assertGreater(pipeline.debouncer.remaining_ms(), 0)

    def test_debounce_window_elapses(self):
        self.config_manager.update_config(debounce_ms=100)
        self.recognizer.recognize.return_value = "KICK OFF"
        pipeline = self.create_pipeline()

        pipeline.poll_once()
        time.sleep(0.12)
        pipeline.poll_once()

        self.assertEqual(len(self.events), 2)

    def test_selected_team_goal(self):
        """Test goal attribution against the selected team."""
        self.config_manager.update_config(selected_league="Premier League",
                                          selected_team_key="manchester_united")
        pipeline = self.create_pipeline(team_database=TeamDatabase.load_embedded())
        self.assertEqual(pipeline.team_matcher.display_name, "Manchester Utd")

        self.recognizer.recognize.return_value = "GOAL FOR LIVERPOOL"
        self.assertIsInstance(pipeline.poll_once(), Goal)
        self.assertEqual(self.events, [])

        self.recognizer.recognize.return_value = "GOAL FOR MAN. UNITED"
        pipeline.poll_once()
        self.assertEqual(len(self.events), 1)
        self.assertEqual(self.events[0].team, "Manchester Utd")

    def test_opponent_goal_does_not_consume_debounce(self):
        self.config_manager.update_config(selected_league="Premier League",
                                          selected_team_key="manchester_united")
        pipeline = self.create_pipeline(team_database=TeamDatabase.load_embedded())

        self.recognizer.recognize.return_value = "GOAL FOR CHELSEA"
        pipeline.poll_once()
        self.assertEqual(pipeline.debouncer.remaining_ms(), 0)

    def test_unknown_selected_team(self):
        self.config_manager.update_config(selected_league="Premier League",
                                          selected_team_key="nobody")
        pipeline = self.create_pipeline(team_database=TeamDatabase.load_embedded())
        self.assertIsNone(pipeline.team_matcher)

    def test_event_callback_error_is_contained(self):
        self.recognizer.recognize.return_value = "KICK OFF"
        pipeline = self.create_pipeline()
        pipeline.on_event = Mock(side_effect=RuntimeError("boom"))

        self.assertIsInstance(pipeline.poll_once(), Kickoff)
        self.assertEqual(pipeline.detection_count, 1)

    def test_capture_error_propagates_from_poll_once(self):
        self.frame_source.capture.side_effect = CaptureError("display gone")
        pipeline = self.create_pipeline()
        with self.assertRaises(CaptureError):
            pipeline.poll_once()

    def test_pipeline_start_stop(self):
        """Test pipeline start and stop functionality."""
        pipeline = self.create_pipeline()

        success = pipeline.start()
        self.assertTrue(success)
        self.assertTrue(pipeline.running)
        self.assertIsNotNone(pipeline.pipeline_thread)

        # Brief wait to ensure a few ticks ran
        time.sleep(0.1)
        self.assertTrue(pipeline.pipeline_thread.is_alive())
        self.assertGreater(pipeline.frame_count, 0)

        pipeline.stop()
        self.assertFalse(pipeline.running)
        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertFalse(pipeline.pipeline_thread.is_alive())
        self.assertEqual(pipeline.status_message, "Detection stopped")

    def test_pipeline_start_already_running(self):
        """Test starting pipeline when already running."""
        pipeline = self.create_pipeline()

        self.assertTrue(pipeline.start())
        self.assertFalse(pipeline.start())

        pipeline.stop()

    def test_start_refused_while_previous_tick_finishes(self):
        """Test that a tick outlasting the join timeout blocks a restart."""
        entered = threading.Event()
        release = threading.Event()

        def slow_recognize(binary):
            entered.set()
            release.wait(5.0)
            return ""

        self.recognizer.recognize.side_effect = slow_recognize
        self.config_manager.update_config(enable_fallback_methods=False)
        pipeline = self.create_pipeline()

        with patch.dict(SYSTEM_CONSTANTS, {"THREAD_JOIN_TIMEOUT_SECONDS": 0.1}):
            self.assertTrue(pipeline.start())
            self.assertTrue(entered.wait(2.0))
            first_thread = pipeline.pipeline_thread

            pipeline.stop()

            self.assertTrue(first_thread.is_alive())
            self.assertTrue(pipeline.running)
            self.assertEqual(pipeline.status_message, "Stopping after the current tick")
            self.assertFalse(pipeline.start())
            self.assertIs(pipeline.pipeline_thread, first_thread)

            release.set()
            first_thread.join(2.0)

        self.assertFalse(first_thread.is_alive())
        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertEqual(pipeline.status_message, "Detection stopped")
        self.assertTrue(pipeline.start())
        pipeline.stop()

    def test_region_change_while_polling_applies_on_restart(self):
        pipeline = self.create_pipeline()
        self.assertTrue(pipeline.start())

        pipeline.update_configuration(capture_region=[10, 10, 64, 32])
        self.assertEqual(pipeline.region.to_list(), [0, 0, 64, 32])
        pipeline.stop()

        self.assertTrue(pipeline.start())
        self.assertEqual(pipeline.region.to_list(), [10, 10, 64, 32])
        pipeline.stop()

    def test_start_rejects_region_outside_monitor(self):
        pipeline = self.create_pipeline()
        self.config_manager.update_config(capture_region=[0, 0, 4000, 32])

        self.assertFalse(pipeline.start())

        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertIsInstance(pipeline.last_error, RegionOutOfBoundsError)
        self.assertEqual(pipeline.region.to_list(), [0, 0, 64, 32])

    def test_stop_when_idle(self):
        pipeline = self.create_pipeline()
        pipeline.stop()
        self.assertEqual(pipeline.state, PipelineState.IDLE)

    def test_fatal_capture_error_stops_polling(self):
        """Test that a capture failure stops detection with a status message."""
        self.frame_source.capture.side_effect = CapturePermissionError("access denied")
        on_error = Mock()
        pipeline = self.create_pipeline(on_error=on_error)

        pipeline.start()
        self.wait_until_stopped(pipeline)

        self.assertEqual(pipeline.state, PipelineState.IDLE)
        self.assertIsInstance(pipeline.last_error, CapturePermissionError)
        self.assertTrue(pipeline.status_message.startswith(
            "Detection stopped: screen capture failed: access denied"))
        self.assertIn("Screen Recording", pipeline.status_message)
        self.assertEqual(self.frame_source.capture.call_count, 1)
        on_error.assert_called_once()
        self.assertEqual(self.error_handler.get_component_health()["frame_capture"],
                         ComponentStatus.FAILED)

        # Restart is allowed after a fatal stop
        self.frame_source.capture.side_effect = None
        self.assertTrue(pipeline.start())
        pipeline.stop()

    def test_repeated_unexpected_errors_stop_polling(self):
        self.recognizer.recognize.side_effect = RuntimeError("unexpected")
        pipeline = self.create_pipeline()
        pipeline.max_consecutive_errors = 3

        pipeline.start()
        self.wait_until_stopped(pipeline)

        self.assertFalse(pipeline.running)
        self.assertEqual(pipeline.error_count, 4)
        self.assertEqual(pipeline.status_message, "Detection stopped: unexpected")

    def test_run_benchmark(self):
        pipeline = self.create_pipeline()

        stats = pipeline.run_benchmark(5)

        self.assertEqual(len(stats), 5)
        self.assertEqual(self.frame_source.capture.call_count, 5)
        self.assertGreater(stats.stage_stats("total").mean, 0.0)

    def test_benchmark_keeps_rolling_window_bounded(self):
        pipeline = self.create_pipeline()
        maxlen = pipeline.profiler.latency.timings.maxlen

        stats = pipeline.run_benchmark(3)
        pipeline.poll_once()

        self.assertIsNotNone(maxlen)
        self.assertEqual(pipeline.profiler.latency.timings.maxlen, maxlen)
        self.assertEqual(len(pipeline.profiler.latency), 4)
        self.assertEqual(len(stats), 3)

    def test_benchmark_while_running(self):
        pipeline = self.create_pipeline()
        pipeline.start()
        try:
            with self.assertRaises(PipelineStateError):
                pipeline.run_benchmark(5)
        finally:
            pipeline.stop()

    def test_get_status(self):
        self.recognizer.recognize.return_value = "KICK OFF"
        pipeline = self.create_pipeline()
        pipeline.poll_once()

        status = pipeline.get_status()

        self.assertEqual(status["state"], "idle")
        self.assertEqual(status["frame_count"], 1)
        self.assertEqual(status["detection_count"], 1)
        self.assertEqual(status["last_result"], "kickoff")
        self.assertEqual(status["language"], "en")
        self.assertEqual(status["classifiers"], {
            "GoalClassifier": True, "KickoffClassifier": True, "MatchEndClassifier": True
        })
        self.assertEqual(status["component_health"]["frame_capture"], "healthy")

    def test_update_configuration(self):
        pipeline = self.create_pipeline()

        pipeline.update_configuration(debounce_ms=20, kickoff_detection_enabled=False,
                                      capture_region=[10, 10, 64, 32])

        self.assertEqual(pipeline.debouncer.interval_ms, 100)
        self.assertFalse(pipeline.classifiers[1].is_enabled())
        self.assertEqual(pipeline.region.to_list(), [10, 10, 64, 32])

        self.recognizer.recognize.return_value = "KICK OFF"
        self.assertIsInstance(pipeline.poll_once(), NoMatch)


if __name__ == '__main__':
    unittest.main()
