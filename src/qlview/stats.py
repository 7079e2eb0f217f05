"""Stats fetcher for the qlstats.net per-server players API.

``StatsFetcher.fetch_enhanced_players(address)`` returns the rated player
list for one server, or ``None`` when the API is unavailable for any
reason. The caller contract is uniform: the cause (DNS/connection
failure, timeout, non-200, malformed body) only changes the log message.
``None`` results are never cached, so the next call tries again.

Expected body::

    {"ok": true, "players": [{"steamid": "...", "name": "^1Foo", "team": 1,
                              "rating": 1500, "rd": 60}, ...]}
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from qlview.cache import TTLCache
from qlview.config import TelemetryConfig
from qlview.exceptions import StatsTimeout, StatsUnavailable
from qlview.identity import clean_player_name, team_name
from qlview.models import EnhancedPlayerList, EnhancedPlayerRecord
from qlview.singleflight import SingleFlight
from qlview.user_agents import UserAgentRotator

logger = logging.getLogger(__name__)

_ACCEPT_JSON = "application/json, text/javascript, */*; q=0.01"


class _UpstreamPlayer(BaseModel):
    """One entry of the upstream ``players`` array.

    Each field is coerced on its own: nulls and unparseable numbers become
    zero, so one odd value does not cost the whole server its ratings.
    """

    steamid: str = ""
    name: str = ""
    team: int = 0
    rating: float = 0.0
    rd: float = 0.0

    @field_validator("steamid", "name", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("team", mode="before")
    @classmethod
    def coerce_team(cls, v: Any) -> int:
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0

    @field_validator("rating", "rd", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0


class _PlayersResponse(BaseModel):
    ok: bool
    players: list[_UpstreamPlayer]

    @field_validator("ok")
    @classmethod
    def must_be_ok(cls, v: bool) -> bool:
        if not v:
            raise ValueError("ok flag is false")
        return v

    @field_validator("players", mode="before")
    @classmethod
    def drop_non_objects(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        kept = [p for p in v if isinstance(p, dict)]
        if len(kept) != len(v):
            logger.warning("Dropped %d non-object QLStats player entries", len(v) - len(kept))
        return kept


def to_enhanced_player(player: _UpstreamPlayer) -> EnhancedPlayerRecord:
    return EnhancedPlayerRecord(
        steam_id=player.steamid,
        name=player.name,
        cleaned_name=clean_player_name(player.name),
        team=player.team,
        rating=player.rating,
        rating_deviation=player.rd,
        team_name=team_name(player.team),
    )


class StatsFetcher:
    """Cached, single-flight client for the stats players endpoint.

    Pass an ``httpx.AsyncClient`` to share a connection pool (or to fake the
    transport in tests); otherwise one is created on first use and closed
    by ``close()``.
    """

    def __init__(
        self,
        config: TelemetryConfig,
        cache: TTLCache,
        client: httpx.AsyncClient | None = None,
        user_agents: UserAgentRotator | None = None,
    ):
        self._config = config
        self._cache = cache
        self._client = client
        self._owns_client = client is None
        self._user_agents = user_agents or UserAgentRotator()
        self._flights = SingleFlight()

    @staticmethod
    def cache_key(server_address: str) -> str:
        return f"qlstats_{server_address}"

    def players_url(self, server_address: str) -> str:
        return f"{self._config.stats_base_url.rstrip('/')}/api/server/{server_address}/players"

    async def fetch_enhanced_players(self, server_address: str) -> EnhancedPlayerList | None:
        """Fetch the rated player list for *server_address*.

        Args:
            server_address: ``ip:port`` of the game server.

        Returns:
            EnhancedPlayerList on success, None if the API is unavailable.

        Raises:
            ValueError: If *server_address* is empty.
        """
        if not server_address:
            raise ValueError("Server address is required")

        key = self.cache_key(server_address)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        return await self._flights.do(key, lambda: self._fetch(server_address))

    async def _fetch(self, server_address: str) -> EnhancedPlayerList | None:
        url = self.players_url(server_address)
        logger.info("Fetching QLStats data for %s", server_address)

        try:
            players = await self._request_players(url)
        except StatsTimeout:
            logger.warning(
                "QLStats request for %s timed out after %dms",
                server_address, self._config.stats_timeout_ms,
            )
            return None
        except StatsUnavailable as exc:
            logger.warning("QLStats unavailable for %s: %s", server_address, exc)
            return None
        except Exception as exc:
            logger.error("Failed to fetch QLStats data for %s: %s", server_address, exc)
            return None

        result = EnhancedPlayerList(
            server_address=server_address,
            player_count=len(players),
            players=[to_enhanced_player(p) for p in players],
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
        self._cache.set(self.cache_key(server_address), result)
        logger.info(
            "Fetched QLStats data for %s (%d players)", server_address, result.player_count
        )
        return result

    async def _request_players(self, url: str) -> list[_UpstreamPlayer]:
        """GET *url* and validate the body.

        Raises:
            StatsTimeout: The request exceeded the configured timeout.
            StatsUnavailable: Connection/DNS failure, non-200, or bad schema.
        """
        client = self._get_client()
        try:
            resp = await client.get(
                url,
                headers=self._user_agents.get_headers(accept=_ACCEPT_JSON),
                timeout=self._config.stats_timeout,
            )
        except httpx.TimeoutException as exc:
            raise StatsTimeout(f"Request to {url} timed out", url=url) from exc
        except httpx.ConnectError as exc:
            raise StatsUnavailable(
                f"QLStats appears to be unavailable ({exc})", url=url
            ) from exc

        if resp.status_code != 200:
            raise StatsUnavailable(
                f"QLStats API returned status {resp.status_code}",
                url=url,
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise StatsUnavailable("QLStats API returned non-JSON body", url=url) from exc

        try:
            return _PlayersResponse.model_validate(body).players
        except ValidationError as exc:
            raise StatsUnavailable(
                f"QLStats API returned unexpected data structure "
                f"({exc.error_count()} errors)",
                url=url,
                status_code=resp.status_code,
            ) from exc

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
