"""Row parser for the ql.syncore.org server browser table.

The page renders a DataTable (``#serverList``) client-side. The scraper
pulls the table's outerHTML out of the live DOM and hands it here; all
knowledge of the column layout lives in this module.

Column contract (positional, left to right)::

    0 favorite   star toggle, ignored
    1 location   country code / city ("AU", "Sydney, AU")
    2 name       server hostname
    3 map
    4 players    "current/max"
    5 mode       game type (ca, ffa, duel, ...)
    6 address    ip:port
    7+           extra columns, ignored

A row with fewer than ``MIN_COLUMNS`` cells does not honor the contract
and is *rejected*. A row that honors it but has no name or address is
*skipped*. Rejections mean the layout has drifted; skips are normal.
"""

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from qlview.models import ServerRecord

logger = logging.getLogger(__name__)

SERVER_COLUMNS: tuple[str, ...] = (
    "favorite",
    "location",
    "name",
    "map",
    "players",
    "mode",
    "address",
)

# The live table carries one trailing column beyond the contract.
MIN_COLUMNS = 8

ROW_SELECTOR = "#serverList tbody tr"


@dataclass
class RowParseResult:
    """Records extracted from a table plus counts for degradation checks."""

    servers: list[ServerRecord] = field(default_factory=list)
    rows_seen: int = 0
    rows_rejected: int = 0
    rows_skipped: int = 0

    @property
    def degraded(self) -> bool:
        """True when at least one row broke the column contract."""
        return self.rows_rejected > 0


def _cell_text(cell: Tag) -> str:
    return cell.get_text(" ", strip=True)


def parse_row(cells: list[str]) -> ServerRecord | None:
    """Build a ServerRecord from one row's cell texts.

    Args:
        cells: Stripped text of every ``<td>`` in the row.

    Returns:
        The record, or None if the row lacks a name or an address.

    Raises:
        ValueError: If the row has fewer than ``MIN_COLUMNS`` cells.
    """
    if len(cells) < MIN_COLUMNS:
        raise ValueError(
            f"Row has {len(cells)} cells, expected at least {MIN_COLUMNS}"
        )
    columns = dict(zip(SERVER_COLUMNS, cells))
    try:
        return ServerRecord(
            location=columns["location"],
            name=columns["name"],
            map=columns["map"],
            player_count_raw=columns["players"] or "0/0",
            game_mode=columns["mode"],
            address=columns["address"],
        )
    except ValidationError:
        return None


def parse_server_table(html: str) -> RowParseResult:
    """Parse every body row of the server table in *html*.

    Returns:
        RowParseResult with all valid records (unfiltered by region).
    """
    soup = BeautifulSoup(html, "lxml")
    rows = soup.select(ROW_SELECTOR)
    if not rows:
        # Extractor may return just the <tbody> contents
        rows = soup.select("tbody tr") or soup.select("tr")

    result = RowParseResult()
    for row in rows:
        cells = row.find_all("td")
        if not cells:
            # Header row or DataTables "processing" placeholder
            continue
        result.rows_seen += 1
        try:
            server = parse_row([_cell_text(c) for c in cells])
        except ValueError as exc:
            result.rows_rejected += 1
            logger.debug("Rejected server row: %s", exc)
            continue
        if server is None:
            result.rows_skipped += 1
            continue
        result.servers.append(server)

    return result
