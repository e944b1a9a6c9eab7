"""Data models for the match event detection system."""

from .detection import (
    CaptureRegion,
    DetectionContext,
    DetectionEvent,
    DetectionResult,
    FrameOutcome,
    Goal,
    Kickoff,
    MatchEnd,
    NoMatch,
    NO_MATCH,
    is_match,
    result_kind
)
from .config import SystemConfig
from .phrases import Language, PhraseSet
from .team import TeamProfile

__all__ = [
    'CaptureRegion', 'DetectionContext', 'DetectionEvent', 'DetectionResult', 'FrameOutcome',
    'Goal', 'Kickoff', 'MatchEnd', 'NoMatch', 'NO_MATCH', 'is_match', 'result_kind',
    'SystemConfig', 'Language', 'PhraseSet', 'TeamProfile'
]
