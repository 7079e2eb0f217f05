"""Pydantic v2 model for the fused per-server view."""

from pydantic import BaseModel, Field

from .player import EnhancedPlayerList, MergedPlayerRecord
from .server import PlayerRecord, ServerRecord


class MergedServerView(BaseModel):
    """Server-browser data combined with stats-API ratings.

    ``enhanced`` is True only when the stats call succeeded and a basic view
    was supplied. Otherwise ``merged_players`` is the basic player list as-is.
    """

    server_address: str
    basic_view: ServerRecord | None = None
    enhanced_view: EnhancedPlayerList | None = None
    merged_players: list[MergedPlayerRecord | PlayerRecord] = Field(default_factory=list)
    enhanced: bool = False
    last_updated: str | None = None
    error: str | None = None
