"""Player identity normalization shared by both data sources.

The server browser and the stats API format names differently (the stats
API keeps Quake color codes like ``^1``). Records are matched on the
cleaned, lower-cased name.
"""

import re

# Quake color codes: caret followed by digits (^1 red, ^7 white, ...)
_COLOR_CODE_RE = re.compile(r"\^\d+")

TEAM_NAMES: dict[int, str] = {
    1: "red",
    2: "blue",
    3: "spectator",
}


def clean_player_name(name: str | None) -> str:
    """Strip color codes and surrounding whitespace from a player name.

    >>> clean_player_name("^1Player^7Name")
    'PlayerName'
    """
    if not name:
        return ""
    return _COLOR_CODE_RE.sub("", name).strip()


def identity_key(name: str | None) -> str:
    """Key used to correlate players across sources."""
    return clean_player_name(name).lower()


def team_name(team: int | None) -> str:
    """Map a stats-API team number to its name; unknown teams are "free"."""
    return TEAM_NAMES.get(team, "free")
