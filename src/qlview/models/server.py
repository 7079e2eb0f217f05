"""Pydantic v2 models for scraped server-browser records."""

from pydantic import BaseModel, Field


class PlayerRecord(BaseModel):
    """A player as listed by the server browser. Any field may be missing."""

    name: str = ""
    team: int | None = None
    score: int | None = None


class ServerRecord(BaseModel):
    """One row of the server browser table."""

    address: str = Field(min_length=1)
    name: str = Field(min_length=1)
    map: str = ""
    game_mode: str = ""
    player_count_raw: str = "0/0"
    location: str = ""
    players: list[PlayerRecord] = Field(default_factory=list)

    @property
    def player_slots(self) -> tuple[int, int] | None:
        """Parse ``player_count_raw`` ("3/16") into ``(current, maximum)``.

        Returns None when the cell does not have that shape.
        """
        current, sep, maximum = self.player_count_raw.partition("/")
        if not sep:
            return None
        try:
            return int(current.strip()), int(maximum.strip())
        except ValueError:
            return None


class ServerDetail(BaseModel):
    """Caller-facing summary of a single server from the region list."""

    server_name: str
    address: str
    current_map: str = ""
    game_type: str = ""
    player_count: str = "0/0"
    ranked_players: list[PlayerRecord] = Field(default_factory=list)
