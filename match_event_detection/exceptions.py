"""Exception hierarchy for the match event detection system."""

from typing import Optional


SCREEN_RECORDING_REMEDIATION = (
    "Screen capture permission is required. "
    "On macOS open System Preferences > Security & Privacy > Privacy > Screen Recording, "
    "add your terminal or this application to the list, then restart it. "
    "On Linux make sure a graphical session is available (DISPLAY or WAYLAND_DISPLAY is set)."
)


class MatchEventDetectionError(Exception):
    """Base class for all errors raised by the detection system."""


class ConfigError(MatchEventDetectionError):
    """Configuration could not be loaded or is invalid."""


class CaptureError(MatchEventDetectionError):
    """The frame source failed to produce a raster."""
    
    collaborator = "screen capture"


class CapturePermissionError(CaptureError):
    """The operating system refused screen capture."""


class MonitorNotFoundError(CaptureError):
    """The requested monitor index does not exist."""
    
    def __init__(self, monitor_index: int, available: int):
        self.monitor_index = monitor_index
        self.available = available
        super().__init__(
            f"Monitor {monitor_index} not found ({available} monitor(s) available)"
        )


class RegionOutOfBoundsError(CaptureError):
    """The capture region does not fit inside the monitor."""
    
    def __init__(self, region, monitor_size):
        self.region = region
        self.monitor_size = monitor_size
        super().__init__(
            f"Capture region {region} exceeds monitor bounds "
            f"{monitor_size[0]}x{monitor_size[1]}"
        )


class RecognizerInitError(MatchEventDetectionError):
    """The OCR engine could not be initialized."""
    
    collaborator = "text recognizer"


class RecognitionError(MatchEventDetectionError):
    """A single recognition call failed."""
    
    collaborator = "text recognizer"


class TeamDatabaseError(MatchEventDetectionError):
    """The team database could not be read or written."""


class PipelineStateError(MatchEventDetectionError):
    """An operation was requested in the wrong pipeline state."""


def describe_fatal_error(error: Exception) -> str:
    """Build the status message shown when detection stops on a fatal error."""
    collaborator = getattr(error, "collaborator", None)
    if collaborator is None:
        return f"Detection stopped: {error}"
    
    message = f"Detection stopped: {collaborator} failed: {error}"
    if isinstance(error, CapturePermissionError):
        message = f"{message}. {SCREEN_RECORDING_REMEDIATION}"
    return message


def error_component(error: Exception) -> Optional[str]:
    """Map an exception to the error-handler component name that owns it."""
    if isinstance(error, CaptureError):
        return "frame_capture"
    if isinstance(error, (RecognizerInitError, RecognitionError)):
        return "text_recognizer"
    if isinstance(error, TeamDatabaseError):
        return "team_database"
    return None
