"""
Common data types and base models for crewstats.
All models use Pydantic V2 with strict type checking.
"""

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict


class Region(IntEnum):
    """Among Us server regions as reported by the capture client."""

    NA = 0
    AS = 1
    EU = 2
    NAE = 3
    NAW = 4

    @property
    def display_name(self) -> str:
        return _REGION_NAMES[self]

    @classmethod
    def describe(cls, value: int) -> str:
        """Human-readable region name; unknown codes render as ``Unknown``."""
        try:
            return cls(value).display_name
        except ValueError:
            return "Unknown"


_REGION_NAMES = {
    Region.NA: "North America",
    Region.AS: "Asia",
    Region.EU: "Europe",
    Region.NAE: "NA (East)",
    Region.NAW: "NA (West)",
}


class GameRole(IntEnum):
    """Role a player was assigned for one match (``users_games.player_role``)."""

    CREWMATE = 0
    IMPOSTER = 1


class WinFaction(str, Enum):
    """Faction credited with a win.

    ``CREWMATE_DEFAULT`` is what an unknown result resolves to: it still counts
    as a crewmate win, but callers can tell it apart from a real one.
    """

    CREWMATE = "crewmate"
    IMPOSTER = "imposter"
    CREWMATE_DEFAULT = "crewmate_default"

    @property
    def role(self) -> GameRole:
        if self is WinFaction.IMPOSTER:
            return GameRole.IMPOSTER
        return GameRole.CREWMATE

    @property
    def is_default(self) -> bool:
        return self is WinFaction.CREWMATE_DEFAULT


class PlayerColor(IntEnum):
    """In-game player colors (``users_games.player_color``)."""

    RED = 0
    BLUE = 1
    GREEN = 2
    PINK = 3
    ORANGE = 4
    YELLOW = 5
    BLACK = 6
    WHITE = 7
    PURPLE = 8
    BROWN = 9
    CYAN = 10
    LIME = 11


class BaseContract(BaseModel):
    """Base model for all data contracts with common configuration."""

    model_config = ConfigDict(
        # Stored rows and derived values are immutable once built
        frozen=True,
        # Accept both field names and aliases
        populate_by_name=True,
        json_schema_extra={"examples": []},
        # Forbid extra fields to ensure data integrity
        extra="forbid",
    )
