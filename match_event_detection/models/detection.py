"""Detection data models."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class CaptureRegion:
    """Rectangle of the screen to watch, in monitor pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if min(self.x, self.y) < 0:
            raise ValueError(f"Capture region origin must be non-negative, got ({self.x}, {self.y})")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Capture region must have a positive size, got {self.width}x{self.height}")

    @classmethod
    def from_list(cls, values: Sequence[int]) -> "CaptureRegion":
        """Build a region from an ``[x, y, width, height]`` sequence."""
        if len(values) != 4:
            raise ValueError(f"Capture region needs 4 values, got {len(values)}")
        return cls(*(int(v) for v in values))

    def to_list(self) -> List[int]:
        return [self.x, self.y, self.width, self.height]

    def fits_within(self, monitor_width: int, monitor_height: int) -> bool:
        """Check that the region lies entirely inside a monitor of the given size."""
        return (self.x + self.width <= monitor_width and
                self.y + self.height <= monitor_height)

    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class DetectionContext:
    """Everything a classifier may look at for one tick."""
    recognized_text: str
    timestamp: datetime = field(default_factory=datetime.now)
    home_team: Optional[str] = None
    away_team: Optional[str] = None

    def with_teams(self, home_team: Optional[str], away_team: Optional[str]) -> "DetectionContext":
        return replace(self, home_team=home_team, away_team=away_team)


@dataclass(frozen=True)
class Goal:
    """A goal overlay was recognized."""
    team_name: Optional[str]
    confidence: float


@dataclass(frozen=True)
class Kickoff:
    """A kick-off overlay was recognized."""
    confidence: float


@dataclass(frozen=True)
class MatchEnd:
    """A full-time overlay was recognized, with the score if one was legible."""
    home_score: int
    away_score: int
    confidence: float


@dataclass(frozen=True)
class NoMatch:
    """Nothing of interest in the recognized text."""


NO_MATCH = NoMatch()

DetectionResult = Union[Goal, Kickoff, MatchEnd, NoMatch]


def is_match(result: DetectionResult) -> bool:
    """True for every result other than NoMatch."""
    return not isinstance(result, NoMatch)


def result_kind(result: DetectionResult) -> str:
    """Short lowercase name of the result variant."""
    if isinstance(result, Goal):
        return "goal"
    if isinstance(result, Kickoff):
        return "kickoff"
    if isinstance(result, MatchEnd):
        return "match_end"
    return "no_match"


@dataclass
class DetectionEvent:
    """A positive detection that passed team attribution and debouncing."""
    result: DetectionResult
    timestamp: datetime
    strategy: str
    recognized_text: str
    team: Optional[str] = None

    @property
    def kind(self) -> str:
        return result_kind(self.result)

    def describe(self) -> str:
        """Human readable one-line summary of the event."""
        result = self.result
        if isinstance(result, Goal):
            team = self.team or result.team_name or "unknown team"
            return f"GOAL for {team} (confidence {result.confidence:.2f})"
        if isinstance(result, Kickoff):
            return f"KICK OFF (confidence {result.confidence:.2f})"
        if isinstance(result, MatchEnd):
            return (f"FULL TIME {result.home_score}-{result.away_score} "
                    f"(confidence {result.confidence:.2f})")
        return "no match"


@dataclass(frozen=True)
class FrameOutcome:
    """What one pass over the candidate rasters produced."""
    result: DetectionResult
    strategy: Optional[str]
    recognized_text: str
    attempts: Tuple[str, ...] = ()
