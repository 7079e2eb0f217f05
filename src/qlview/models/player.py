"""Pydantic v2 models for stats-API players and fused player records."""

from pydantic import BaseModel, Field

from .server import PlayerRecord


class EnhancedPlayerRecord(BaseModel):
    """A rated player as reported by the stats API."""

    steam_id: str = ""
    name: str = ""
    cleaned_name: str = ""
    team: int = 0
    rating: float = 0.0
    rating_deviation: float = 0.0
    team_name: str = "free"


class EnhancedPlayerList(BaseModel):
    """Stats API result for one server."""

    server_address: str = Field(min_length=1)
    player_count: int = Field(ge=0)
    players: list[EnhancedPlayerRecord] = Field(default_factory=list)
    last_updated: str


class MergedPlayerRecord(PlayerRecord):
    """A server-browser player with stats fields fused in.

    ``has_enhanced_data`` records whether a stats-API match was found.
    Unmatched players keep the rating fields at None.
    """

    steam_id: str | None = None
    cleaned_name: str | None = None
    rating: float | None = None
    rating_deviation: float | None = None
    team_name: str | None = None
    has_enhanced_data: bool
