"""
Match Event Detection System

Watches the broadcast overlay region of a football game on screen, reads
it with OCR and reports goals, kick-offs and full-time results.
"""

__version__ = "1.0.0"
__author__ = "Match Event Detection System"

# Import core components
from .config_manager import ConfigManager
from .exceptions import (
    MatchEventDetectionError,
    ConfigError,
    CaptureError,
    RecognizerInitError,
    RecognitionError
)
from .models import (
    CaptureRegion,
    DetectionContext,
    DetectionEvent,
    Goal,
    Kickoff,
    MatchEnd,
    NoMatch,
    SystemConfig,
    Language,
    PhraseSet,
    TeamProfile
)
from .services import (
    FrameSourceInterface,
    TextRecognizerInterface,
    EventClassifierInterface,
    TeamDatabaseInterface
)

__all__ = [
    # Core management
    'ConfigManager',

    # Errors
    'MatchEventDetectionError',
    'ConfigError',
    'CaptureError',
    'RecognizerInitError',
    'RecognitionError',

    # Data models
    'CaptureRegion',
    'DetectionContext',
    'DetectionEvent',
    'Goal',
    'Kickoff',
    'MatchEnd',
    'NoMatch',
    'SystemConfig',
    'Language',
    'PhraseSet',
    'TeamProfile',

    # Service interfaces
    'FrameSourceInterface',
    'TextRecognizerInterface',
    'EventClassifierInterface',
    'TeamDatabaseInterface'
]
