"""Shared fixtures and builders for the qlview test suite."""

import json
from unittest.mock import AsyncMock, MagicMock


def make_row(*cells: str) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def make_table(*rows: str) -> str:
    header = "<thead><tr>" + "".join(
        f"<th>{h}</th>" for h in ("", "Where", "Name", "Map", "Players", "Mode", "IP", "")
    ) + "</tr></thead>"
    return f'<table id="serverList">{header}<tbody>{"".join(rows)}</tbody></table>'


SYDNEY_ROW = make_row("", "AU", "Sydney CA #1", "campgrounds", "4/16", "ca", "45.125.247.91:27960", "")
KIWI_ROW = make_row("", "NZ", "Kiwi Duel", "bloodrun", "1/2", "duel", "103.1.2.3:27960", "")
FRANKFURT_ROW = make_row("", "DE", "Frankfurt FFA", "aerowalk", "8/16", "ffa", "88.99.1.2:27960", "")
SHORT_ROW = make_row("", "AU", "Broken", "map")

SERVER_TABLE = make_table(SYDNEY_ROW, KIWI_ROW, FRANKFURT_ROW)


def mock_tab(table_html: str = SERVER_TABLE, selector_found: bool = True, ready: bool = True):
    """Create a mock nodriver tab whose evaluate() answers the scraper's JS."""
    tab = AsyncMock()

    async def evaluate_side_effect(js: str):
        if js.startswith("!!document.querySelector"):
            return selector_found
        if "readyState" in js:
            return ready
        if "JSON.stringify" in js:
            return json.dumps({"title": "Servers", "hasTable": selector_found})
        if "#serverList" in js:
            return table_html
        return ""

    tab.evaluate = AsyncMock(side_effect=evaluate_side_effect)
    tab.get = AsyncMock(return_value=tab)
    tab.send = AsyncMock()
    tab.close = AsyncMock()
    return tab


def mock_browser(tab=None):
    """Create a mock nodriver browser whose get(new_tab=True) returns *tab*."""
    if tab is None:
        tab = mock_tab()
    browser = AsyncMock()
    browser.get = AsyncMock(return_value=tab)
    browser.stop = MagicMock()
    browser._process = MagicMock(returncode=None, pid=None)
    return browser


def fixed_user_agents(ua: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/124.0"):
    """A UserAgentRotator stand-in that always returns *ua*."""
    agents = MagicMock()
    agents.get.return_value = ua
    agents.get_headers.return_value = {"User-Agent": ua, "Accept": "application/json"}
    return agents
