"""Service interfaces and abstract base classes."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import numpy as np

from ..models.detection import CaptureRegion, DetectionContext, DetectionResult
from ..models.team import TeamProfile

NDArray = np.ndarray


class FrameSourceInterface(ABC):
    """Interface for screen capture."""
    
    @abstractmethod
    def capture(self, region: CaptureRegion, monitor_index: int) -> NDArray:
        """Capture ``region`` of a monitor as an HxWx4 RGBA uint8 array.
        
        Raises a ``CaptureError`` subclass on failure.
        """
        pass
    
    @abstractmethod
    def monitor_size(self, monitor_index: int) -> Tuple[int, int]:
        """Return ``(width, height)`` of a monitor."""
        pass
    
    def close(self) -> None:
        """Release capture resources."""
        pass


class TextRecognizerInterface(ABC):
    """Interface for OCR engines."""
    
    @abstractmethod
    def recognize(self, binary: NDArray) -> str:
        """Recognize the text of a binary raster.
        
        May return an empty string; raises ``RecognitionError`` on failure.
        """
        pass


class EventClassifierInterface(ABC):
    """Interface shared by the goal, kick-off and match-end classifiers."""
    
    @abstractmethod
    def detect(self, context: DetectionContext) -> DetectionResult:
        pass
    
    @abstractmethod
    def name(self) -> str:
        pass
    
    @abstractmethod
    def is_enabled(self) -> bool:
        pass


class TeamDatabaseInterface(ABC):
    """Interface for team lookups."""
    
    @abstractmethod
    def find_team(self, league: str, team_key: str) -> Optional[TeamProfile]:
        """Return the team profile, or None when it is not in the database."""
        pass
    
    @abstractmethod
    def get_leagues(self) -> List[str]:
        pass
