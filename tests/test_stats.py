"""Unit tests for StatsFetcher using httpx.MockTransport (no network)."""

import asyncio
import logging

import httpx
import pytest

from helpers import fixed_user_agents
from qlview.cache import TTLCache
from qlview.config import TelemetryConfig
from qlview.stats import StatsFetcher

ADDRESS = "45.125.247.91:27960"

PAYLOAD = {
    "ok": True,
    "players": [
        {"steamid": "76561198000000001", "name": "^1Foo^7", "team": 1, "rating": 1500, "rd": 60},
        {"steamid": 76561198000000002, "name": "Bar", "team": 2, "rating": 1320.5, "rd": 85.2},
        {"steamid": None, "name": "Spec", "team": 3, "rating": None, "rd": None},
        {"name": "Loner"},
    ],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fetcher(handler, cache=None, **config) -> StatsFetcher:
    cfg = TelemetryConfig(**config)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StatsFetcher(
        cfg,
        cache or TTLCache(cfg.stats_ttl, name="stats"),
        client=client,
        user_agents=fixed_user_agents(),
    )


def _json_handler(payload, status=200, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, json=payload)

    return handler


# ---------------------------------------------------------------------------
# Success
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_success_maps_players():
    calls = []
    fetcher = _fetcher(_json_handler(PAYLOAD, calls=calls))

    result = await fetcher.fetch_enhanced_players(ADDRESS)

    assert result.server_address == ADDRESS
    assert result.player_count == 4
    foo, bar, spectator, loner = result.players

    assert foo.steam_id == "76561198000000001"
    assert foo.name == "^1Foo^7"
    assert foo.cleaned_name == "Foo"
    assert foo.rating == 1500
    assert foo.rating_deviation == 60
    assert foo.team_name == "red"

    assert bar.steam_id == "76561198000000002"
    assert bar.team_name == "blue"
    assert spectator.rating == 0
    assert spectator.steam_id == ""
    assert spectator.team_name == "spectator"
    assert loner.team == 0
    assert loner.team_name == "free"

    assert str(calls[0].url) == f"https://qlstats.net/api/server/{ADDRESS}/players"
    assert result.last_updated


@pytest.mark.asyncio
async def test_request_sends_browser_headers():
    calls = []
    fetcher = _fetcher(_json_handler(PAYLOAD, calls=calls))

    await fetcher.fetch_enhanced_players(ADDRESS)

    assert calls[0].headers["User-Agent"].startswith("Mozilla/5.0")


@pytest.mark.asyncio
async def test_odd_player_fields_are_coerced_not_fatal(caplog):
    payload = {
        "ok": True,
        "players": [
            {"steamid": "S1", "name": "Foo", "team": "2", "rating": "N/A", "rd": []},
            "garbage",
            {"steamid": "S2", "name": "Bar", "team": "red", "rating": "1400", "rd": 70},
        ],
    }
    fetcher = _fetcher(_json_handler(payload))

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        result = await fetcher.fetch_enhanced_players(ADDRESS)

    assert result.player_count == 2
    foo, bar = result.players
    assert foo.team == 2
    assert foo.team_name == "blue"
    assert foo.rating == 0
    assert foo.rating_deviation == 0
    assert bar.team == 0
    assert bar.rating == 1400
    assert "Dropped 1 non-object" in caplog.text


@pytest.mark.asyncio
async def test_success_is_cached():
    calls = []
    cache = TTLCache(180, name="stats")
    fetcher = _fetcher(_json_handler(PAYLOAD, calls=calls), cache=cache)

    first = await fetcher.fetch_enhanced_players(ADDRESS)
    second = await fetcher.fetch_enhanced_players(ADDRESS)

    assert first is second
    assert len(calls) == 1
    assert cache.is_valid(f"qlstats_{ADDRESS}")


@pytest.mark.asyncio
async def test_concurrent_misses_issue_one_request():
    calls = []
    fetcher = _fetcher(_json_handler(PAYLOAD, calls=calls))

    results = await asyncio.gather(
        *(fetcher.fetch_enhanced_players(ADDRESS) for _ in range(3))
    )

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


# ---------------------------------------------------------------------------
# Caller contract
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", None])
async def test_empty_address_raises(address):
    fetcher = _fetcher(_json_handler(PAYLOAD))
    with pytest.raises(ValueError, match="required"):
        await fetcher.fetch_enhanced_players(address)


# ---------------------------------------------------------------------------
# Source unavailable -> None, not cached
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_non_200_returns_none_and_is_not_cached(caplog):
    calls = []
    cache = TTLCache(180, name="stats")
    fetcher = _fetcher(_json_handler({"error": "nope"}, status=503, calls=calls), cache=cache)

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None

    assert len(calls) == 2
    assert cache.stats()["size"] == 0
    assert "status 503" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"ok": False, "players": []},
        {"ok": True},
        {"ok": True, "players": "not a list"},
        {"players": []},
        ["not", "an", "object"],
    ],
)
async def test_malformed_body_returns_none(payload, caplog):
    fetcher = _fetcher(_json_handler(payload))

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None

    assert "unexpected data structure" in caplog.text


@pytest.mark.asyncio
async def test_non_json_body_returns_none():
    fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    assert await fetcher.fetch_enhanced_players(ADDRESS) is None


@pytest.mark.asyncio
async def test_connection_failure_logged_as_unavailable(caplog):
    def handler(request):
        raise httpx.ConnectError("Name or service not known", request=request)

    fetcher = _fetcher(handler)

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None

    assert "appears to be unavailable" in caplog.text


@pytest.mark.asyncio
async def test_timeout_logged_distinctly(caplog):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = _fetcher(handler, stats_timeout_ms=1234)

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None

    assert "timed out after 1234ms" in caplog.text
    assert "appears to be unavailable" not in caplog.text


@pytest.mark.asyncio
async def test_generic_failure_logged_as_error(caplog):
    def handler(request):
        raise httpx.RemoteProtocolError("peer closed connection", request=request)

    fetcher = _fetcher(handler)

    with caplog.at_level(logging.WARNING, logger="qlview.stats"):
        assert await fetcher.fetch_enhanced_players(ADDRESS) is None

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert errors and "Failed to fetch QLStats data" in errors[0].getMessage()


@pytest.mark.asyncio
async def test_timeout_is_passed_to_client():
    seen = {}

    def handler(request):
        seen.update(request.extensions["timeout"])
        return httpx.Response(200, json=PAYLOAD)

    fetcher = _fetcher(handler, stats_timeout_ms=2500)
    await fetcher.fetch_enhanced_players(ADDRESS)

    assert seen["read"] == 2.5


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open():
    fetcher = _fetcher(_json_handler(PAYLOAD))
    client = fetcher._client

    await fetcher.close()

    assert client.is_closed is False
    await client.aclose()
