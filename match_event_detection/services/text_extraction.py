"""Goal text parsing helpers.

Game overlays announce goals as ``GOAL FOR <team>`` or, in several
languages, ``GOL <team>``. These helpers work on raw OCR output and
upper-case it themselves.
"""

from typing import Iterable, Optional

GOAL_MARKERS = ("GOAL FOR", "GOL ")


def _normalize(text: str) -> str:
    return text.strip().upper()


def contains_goal_text(text: str) -> bool:
    """True when the text contains ``GOAL FOR`` or ``GOL ``."""
    normalized = _normalize(text)
    return any(marker in normalized for marker in GOAL_MARKERS)


def contains_goal_text_with_custom(text: str, custom_phrases: Iterable[str]) -> bool:
    """Like ``contains_goal_text`` but also accepts user supplied phrases."""
    if contains_goal_text(text):
        return True
    normalized = _normalize(text)
    return any(phrase.strip() and _normalize(phrase) in normalized
               for phrase in custom_phrases)


def extract_team_name(text: str, extra_phrases: Iterable[str] = ()) -> Optional[str]:
    """Return the upper-cased text following a goal marker, or None.

    ``GOAL FOR`` is tried first, then ``GOL ``, then each extra phrase in
    order. A marker with nothing after it does not count.
    """
    normalized = _normalize(text)

    markers = list(GOAL_MARKERS)
    markers.extend(_normalize(p) for p in extra_phrases if p.strip())

    for marker in markers:
        pos = normalized.find(marker)
        if pos == -1:
            continue
        after = normalized[pos + len(marker):].strip()
        if after:
            return after

    return None
