"""Goal, kick-off and match-end classifiers.

The set of classifiers is closed: ``build_classifiers`` returns them in the
fixed evaluation order and ``classify`` takes the first result that is not
NoMatch. Every classifier is pure apart from its enabled flag.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.detection import (
    DetectionContext, DetectionResult, Goal, Kickoff, MatchEnd, NO_MATCH, is_match
)
from ..models.phrases import PhraseSet
from ..logging_config import get_logger
from .interfaces import EventClassifierInterface

logger = get_logger("event_classifiers")

SCORE_PATTERNS = (
    re.compile(r"(\d+)\s*-\s*(\d+)"),
    re.compile(r"(\d+)\s*:\s*(\d+)")
)
MAX_SCORE = 2 ** 32 - 1


def _has_exact_phrase(text: str, phrases: Iterable[str]) -> bool:
    """Case-sensitive containment of any catalog phrase."""
    return any(phrase in text for phrase in phrases)


class _Classifier(EventClassifierInterface):
    """Enabled flag and phrase set shared by the three classifiers."""

    NAME = ""

    def __init__(self, phrases: PhraseSet, enabled: bool = True):
        self.phrases = phrases
        self.enabled = enabled

    def name(self) -> str:
        return self.NAME

    def is_enabled(self) -> bool:
        return self.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled


class GoalClassifier(_Classifier):
    """Recognizes goal announcements and the team that scored."""

    NAME = "GoalClassifier"

    def identify_team(self, text: str, context: DetectionContext) -> Optional[str]:
        text_lower = text.lower()

        if context.home_team and context.home_team.lower() in text_lower:
            return context.home_team

        if context.away_team and context.away_team.lower() in text_lower:
            return context.away_team

        if " home" in text_lower or text_lower.startswith("home"):
            return "Home"
        if " away" in text_lower or text_lower.startswith("away"):
            return "Away"

        return None

    def calculate_confidence(self, text: str) -> float:
        confidence = 0.70

        text_lower = text.lower()
        if "home" in text_lower or "away" in text_lower:
            confidence += 0.15

        if _has_exact_phrase(text, self.phrases.goal_phrases):
            confidence += 0.15

        return min(confidence, 1.0)

    def detect(self, context: DetectionContext) -> DetectionResult:
        if not self.enabled:
            return NO_MATCH

        text = context.recognized_text
        if not self.phrases.contains_goal_phrase(text):
            return NO_MATCH

        team = self.identify_team(text, context)
        confidence = self.calculate_confidence(text)

        logger.debug(f"Goal detected (confidence: {confidence:.2f}): team={team}, text='{text}'")
        return Goal(team_name=team, confidence=confidence)


class KickoffClassifier(_Classifier):
    """Recognizes kick-off announcements."""

    NAME = "KickoffClassifier"

    def calculate_confidence(self, text: str) -> float:
        if _has_exact_phrase(text, self.phrases.kickoff_phrases):
            return 0.95
        return 0.80

    def detect(self, context: DetectionContext) -> DetectionResult:
        if not self.enabled:
            return NO_MATCH

        text = context.recognized_text
        if not self.phrases.contains_kickoff_phrase(text):
            return NO_MATCH

        confidence = self.calculate_confidence(text)
        logger.debug(f"Kickoff detected (confidence: {confidence:.2f}): text='{text}'")
        return Kickoff(confidence=confidence)


class MatchEndClassifier(_Classifier):
    """Recognizes full-time announcements and reads the final score."""

    NAME = "MatchEndClassifier"

    @staticmethod
    def extract_score(text: str) -> Optional[Tuple[int, int]]:
        """First ``N-N`` score, else first ``N:N`` score, else None."""
        for pattern in SCORE_PATTERNS:
            match = pattern.search(text)
            if match:
                home, away = int(match.group(1)), int(match.group(2))
                if home > MAX_SCORE or away > MAX_SCORE:
                    return None
                return home, away
        return None

    def calculate_confidence(self, text: str, has_score: bool) -> float:
        confidence = 0.70
        if has_score:
            confidence += 0.20
        if _has_exact_phrase(text, self.phrases.match_end_phrases):
            confidence += 0.10
        return min(confidence, 1.0)

    def detect(self, context: DetectionContext) -> DetectionResult:
        if not self.enabled:
            return NO_MATCH

        text = context.recognized_text
        if not self.phrases.contains_match_end_phrase(text):
            return NO_MATCH

        score = self.extract_score(text)
        home_score, away_score = score if score is not None else (0, 0)
        confidence = self.calculate_confidence(text, score is not None)

        logger.debug(f"Match end detected (confidence: {confidence:.2f}): "
                     f"score={home_score}-{away_score}, text='{text}'")
        return MatchEnd(home_score=home_score, away_score=away_score, confidence=confidence)


def build_classifiers(phrases: PhraseSet, goal_enabled: bool = True,
                      kickoff_enabled: bool = True,
                      match_end_enabled: bool = True) -> List[_Classifier]:
    """The three classifiers in evaluation order."""
    return [
        GoalClassifier(phrases, goal_enabled),
        KickoffClassifier(phrases, kickoff_enabled),
        MatchEndClassifier(phrases, match_end_enabled)
    ]


def classify(classifiers: Sequence[EventClassifierInterface],
             context: DetectionContext) -> DetectionResult:
    """Result of the first classifier that matches, else NoMatch."""
    for classifier in classifiers:
        if not classifier.is_enabled():
            continue
        result = classifier.detect(context)
        if is_match(result):
            return result
    return NO_MATCH
