"""Fusion of server-browser players with stats-API ratings.

Players are correlated by cleaned, lower-cased name (``identity_key``);
the two sources share no other key. On a match the stats values win for
``rating``, ``rating_deviation``, ``steam_id`` and ``team``; everything
else comes from the server browser. A player with no match is kept and
flagged ``has_enhanced_data=False``: fusion degrades one player, never the
whole server.
"""

import logging
from datetime import datetime, timezone

from qlview.identity import identity_key
from qlview.models import (
    EnhancedPlayerRecord,
    MergedPlayerRecord,
    MergedServerView,
    PlayerRecord,
    ServerRecord,
)

logger = logging.getLogger(__name__)


def merge_players(
    basic_players: list[PlayerRecord],
    enhanced_players: list[EnhancedPlayerRecord] | None,
) -> list[PlayerRecord] | list[MergedPlayerRecord]:
    """Fuse stats ratings into the server-browser player list.

    Args:
        basic_players: Players scraped from the server browser.
        enhanced_players: Rated players from the stats API.

    Returns:
        ``basic_players`` itself when there is nothing to merge. Otherwise
        one MergedPlayerRecord per basic player, in the same order.
    """
    if not enhanced_players:
        return basic_players

    lookup: dict[str, EnhancedPlayerRecord] = {}
    for player in enhanced_players:
        key = identity_key(player.name)
        if key:
            lookup[key] = player

    # Only the scraped fields carry over; a re-merged list starts clean.
    basic_fields = set(PlayerRecord.model_fields)

    merged: list[MergedPlayerRecord] = []
    for basic in basic_players:
        fields = basic.model_dump(include=basic_fields)
        match = lookup.get(identity_key(basic.name))
        if match is None:
            merged.append(MergedPlayerRecord(**fields, has_enhanced_data=False))
            continue
        fields.update(
            steam_id=match.steam_id,
            cleaned_name=match.cleaned_name,
            rating=match.rating,
            rating_deviation=match.rating_deviation,
            # Team 0 means "not reported"; keep the scraped team then.
            team=match.team or basic.team,
            team_name=match.team_name,
            has_enhanced_data=True,
        )
        merged.append(MergedPlayerRecord(**fields))

    logger.debug(
        "Merged %d basic with %d rated players (%d enhanced)",
        len(basic_players),
        len(enhanced_players),
        sum(1 for p in merged if p.has_enhanced_data),
    )
    return merged


async def get_enhanced_server_data(
    stats_fetcher,
    server_address: str,
    basic_view: ServerRecord | None = None,
) -> MergedServerView:
    """Combine one server's scraped view with its stats-API ratings.

    Never raises. Without a basic view or without stats data the result
    has ``enhanced=False`` and the basic players (or ``[]``); exceptions
    from the stats path are reported in ``error``.

    Args:
        stats_fetcher: Object with an async ``fetch_enhanced_players``.
        server_address: ``ip:port`` of the server.
        basic_view: The server's record from the region scrape, if any.
    """
    basic_players = basic_view.players if basic_view is not None else []

    try:
        stats = await stats_fetcher.fetch_enhanced_players(server_address)
    except Exception as exc:
        logger.error("Failed to get enhanced server data for %s: %s", server_address, exc)
        return MergedServerView(
            server_address=server_address,
            basic_view=basic_view,
            merged_players=basic_players,
            enhanced=False,
            error=str(exc),
        )

    if stats is None or basic_view is None:
        return MergedServerView(
            server_address=server_address,
            basic_view=basic_view,
            enhanced_view=stats,
            merged_players=basic_players,
            enhanced=False,
        )

    return MergedServerView(
        server_address=server_address,
        basic_view=basic_view,
        enhanced_view=stats,
        merged_players=merge_players(basic_players, stats.players),
        enhanced=True,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )
