"""Team data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class TeamProfile:
    """A team and the spellings the game may use for it."""
    display_name: str
    variations: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamProfile":
        return cls(
            display_name=data["display_name"],
            variations=list(data.get("variations", []))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"display_name": self.display_name, "variations": list(self.variations)}
