"""Phrase catalog data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple


class Language(Enum):
    """Languages with a shipped phrase catalog."""
    ENGLISH = ("en", "English")
    TURKISH = ("tr", "Türkçe")
    SPANISH = ("es", "Español")
    FRENCH = ("fr", "Français")
    GERMAN = ("de", "Deutsch")
    ITALIAN = ("it", "Italiano")
    PORTUGUESE = ("pt", "Português")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]

    @classmethod
    def from_code(cls, code: str) -> "Language":
        """Look a language up by its ISO code, e.g. ``"en"``."""
        normalized = (code or "").strip().lower()
        for language in cls:
            if language.code == normalized:
                return language
        raise ValueError(f"Unsupported language code: {code!r}")


def _contains_any(text: str, phrases: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


@dataclass(frozen=True)
class PhraseSet:
    """Goal, kick-off and match-end phrases of one language."""
    language: Language
    goal_phrases: Tuple[str, ...]
    kickoff_phrases: Tuple[str, ...]
    match_end_phrases: Tuple[str, ...]

    def contains_goal_phrase(self, text: str) -> bool:
        return _contains_any(text, self.goal_phrases)

    def contains_kickoff_phrase(self, text: str) -> bool:
        return _contains_any(text, self.kickoff_phrases)

    def contains_match_end_phrase(self, text: str) -> bool:
        return _contains_any(text, self.match_end_phrases)

    def with_extra_goal_phrases(self, phrases: Iterable[str]) -> "PhraseSet":
        """Return a copy with user supplied goal phrases appended."""
        extra = tuple(
            p.strip() for p in phrases
            if p and p.strip() and p.strip() not in self.goal_phrases
        )
        if not extra:
            return self
        return PhraseSet(
            language=self.language,
            goal_phrases=self.goal_phrases + extra,
            kickoff_phrases=self.kickoff_phrases,
            match_end_phrases=self.match_end_phrases
        )
