"""JSON backed database of leagues, teams and their name variations."""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..exceptions import TeamDatabaseError
from ..models.team import TeamProfile
from ..logging_config import get_logger
from .interfaces import TeamDatabaseInterface

logger = get_logger("team_database")

EMBEDDED_DATABASE = Path(__file__).resolve().parent.parent / "data" / "teams.json"

Leagues = Dict[str, Dict[str, TeamProfile]]


def _parse(data: dict) -> Leagues:
    if not isinstance(data, dict):
        raise TeamDatabaseError("team database must be a JSON object of leagues")

    leagues: Leagues = {}
    for league, teams in data.items():
        if not isinstance(teams, dict):
            raise TeamDatabaseError(f"league {league!r} must map team keys to teams")
        try:
            leagues[league] = {key: TeamProfile.from_dict(team) for key, team in teams.items()}
        except (KeyError, TypeError, AttributeError) as e:
            raise TeamDatabaseError(f"invalid team entry in league {league!r}: {e}") from e
    return leagues


class TeamDatabase(TeamDatabaseInterface):
    """Leagues of teams, keyed by league name then team key."""

    def __init__(self, leagues: Optional[Leagues] = None,
                 path: Optional[Union[str, Path]] = None):
        self.leagues: Leagues = leagues or {}
        self.path = Path(path) if path else None

    @classmethod
    def load_embedded(cls) -> "TeamDatabase":
        """The database shipped with the package."""
        return cls.from_file(EMBEDDED_DATABASE, bind_path=False)

    @classmethod
    def from_file(cls, path: Union[str, Path], bind_path: bool = True) -> "TeamDatabase":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TeamDatabaseError(f"could not read team database {path}: {e}") from e
        return cls(_parse(data), path if bind_path else None)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "TeamDatabase":
        """Load the user database, seeding it from the embedded copy on first use.

        Without a path the embedded database is returned as is.
        """
        if path is None:
            return cls.load_embedded()

        if not os.path.exists(path):
            logger.info(f"Team database not found at {path}, creating from embedded default")
            database = cls.load_embedded()
            database.path = Path(path)
            database.save()
            return database

        return cls.from_file(path)

    def save(self) -> None:
        if self.path is None:
            raise TeamDatabaseError("team database has no file to save to")

        data = {
            league: {key: team.to_dict() for key, team in teams.items()}
            for league, teams in self.leagues.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise TeamDatabaseError(f"could not write team database {self.path}: {e}") from e

        logger.info(f"Saved team database to {self.path}")

    def get_leagues(self) -> List[str]:
        return sorted(self.leagues)

    def get_teams(self, league: str) -> Optional[List[Tuple[str, TeamProfile]]]:
        """Teams of a league sorted by display name, None for an unknown league."""
        teams = self.leagues.get(league)
        if teams is None:
            return None
        return sorted(teams.items(), key=lambda item: item[1].display_name)

    def find_team(self, league: str, team_key: str) -> Optional[TeamProfile]:
        return self.leagues.get(league, {}).get(team_key)

    def search_team(self, query: str) -> List[Tuple[str, str, TeamProfile]]:
        """Case-insensitive search over display names and variations."""
        query_lower = query.lower()
        results = []
        for league in self.get_leagues():
            for key, team in self.leagues[league].items():
                names = [team.display_name] + list(team.variations)
                if any(query_lower in name.lower() for name in names):
                    results.append((league, key, team))
        return results

    def add_team(self, league: str, team_key: str, team: TeamProfile) -> None:
        self.leagues.setdefault(league, {})[team_key] = team
