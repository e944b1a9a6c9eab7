"""Per-language detection phrase catalog."""

import json
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

from ..models.phrases import Language, PhraseSet
from ..logging_config import get_logger

logger = get_logger("phrase_catalog")

CATALOG_DIR = Path(__file__).resolve().parent.parent / "data" / "i18n"

# Used when a catalog file is missing or unreadable
FALLBACK_PHRASES: Dict[Language, Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]] = {
    Language.ENGLISH: (
        ("GOAL FOR", "GOAL!", "Goal!"),
        ("KICK OFF", "Kick Off", "Kick-Off"),
        ("FULL TIME", "Full Time")
    ),
    Language.TURKISH: (
        ("GOL!", "Gol!"),
        ("Başlangıç", "Maç Başlangıcı"),
        ("Maç Sonu",)
    ),
    Language.SPANISH: (
        ("¡GOL!", "¡Gol!"),
        ("Saque Inicial",),
        ("Tiempo Final",)
    ),
    Language.FRENCH: (
        ("BUT!", "But!"),
        ("Coup d'envoi",),
        ("Fin du Match", "Temps plein")
    ),
    Language.GERMAN: (
        ("TOR!", "Tor!"),
        ("Anstoß", "Spielbeginn"),
        ("Spielende", "Abpfiff")
    ),
    Language.ITALIAN: (
        ("GOL!", "Gol!", "RETE!"),
        ("Calcio d'inizio",),
        ("Fine Partita", "Finito")
    ),
    Language.PORTUGUESE: (
        ("GOL!", "Gol!", "GOLO!"),
        ("Pontapé Inicial",),
        ("Fim de Jogo",)
    )
}


def fallback_phrases(language: Language) -> PhraseSet:
    goal, kickoff, match_end = FALLBACK_PHRASES[language]
    return PhraseSet(language, goal, kickoff, match_end)


def _phrase_list(detection: dict, key: str) -> Tuple[str, ...]:
    values = detection.get(key)
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ValueError(f"'{key}' must be a list of strings")
    return tuple(v for v in values if v.strip())


def parse_catalog(data: dict, language: Language) -> PhraseSet:
    """Build a PhraseSet from a decoded catalog document."""
    detection = data.get("detection")
    if not isinstance(detection, dict):
        raise ValueError("catalog has no 'detection' section")

    code = data.get("code")
    if code is not None and code != language.code:
        raise ValueError(f"catalog code {code!r} does not match {language.code!r}")

    return PhraseSet(
        language=language,
        goal_phrases=_phrase_list(detection, "goal_phrases"),
        kickoff_phrases=_phrase_list(detection, "kickoff_phrases"),
        match_end_phrases=_phrase_list(detection, "match_end_phrases")
    )


def load_phrases(language: Union[Language, str],
                 catalog_dir: Optional[Union[str, Path]] = None,
                 extra_goal_phrases: Iterable[str] = ()) -> PhraseSet:
    """Load the phrase set of ``language``, falling back to built-in phrases."""
    if isinstance(language, str):
        language = Language.from_code(language)

    path = Path(catalog_dir or CATALOG_DIR) / f"{language.code}.json"
    try:
        with open(path, "r", encoding="utf-8") as f:
            phrases = parse_catalog(json.load(f), language)
        logger.debug(f"Loaded {language.display_name} phrases from {path}")
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Failed to load phrases from {path} ({e}), "
                       f"using built-in {language.display_name} phrases")
        phrases = fallback_phrases(language)

    return phrases.with_extra_goal_phrases(extra_goal_phrases)
