"""Services for the match event detection system."""

from .interfaces import (
    FrameSourceInterface,
    TextRecognizerInterface,
    EventClassifierInterface,
    TeamDatabaseInterface
)

__all__ = [
    'FrameSourceInterface',
    'TextRecognizerInterface',
    'EventClassifierInterface',
    'TeamDatabaseInterface'
]
