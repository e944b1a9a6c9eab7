"""Matching OCR team names against a team's known spellings."""

import re
from typing import FrozenSet, List, Tuple

from ..models.team import TeamProfile

_WHITESPACE = re.compile(r"\s+")
_ASCII_WHITESPACE = frozenset(" \t\n\r\x0c")


def normalize(text: str) -> str:
    """Lowercase, keep ASCII letters, digits and whitespace, collapse spaces."""
    kept = "".join(
        ch for ch in text.lower()
        if (ch.isascii() and ch.isalnum()) or ch in _ASCII_WHITESPACE
    )
    return _WHITESPACE.sub(" ", kept).strip()


class TeamMatcher:
    """Decides whether recognized text names the configured team.

    A detected name matches when it equals a normalized variation, or when
    every word of some variation appears among its words. There is no
    fuzzy matching: a single missing word is a miss.
    """

    def __init__(self, profile: TeamProfile):
        self.profile = profile
        self._variations: List[Tuple[str, FrozenSet[str]]] = []
        for variation in profile.variations:
            normalized = normalize(variation)
            self._variations.append((normalized, frozenset(normalized.split())))

    @property
    def display_name(self) -> str:
        return self.profile.display_name

    def matches(self, detected_text: str) -> bool:
        detected = normalize(detected_text)
        if not detected:
            return False

        for normalized, _ in self._variations:
            if normalized and normalized == detected:
                return True

        detected_tokens = set(detected.split())
        return any(tokens and tokens <= detected_tokens for _, tokens in self._variations)
