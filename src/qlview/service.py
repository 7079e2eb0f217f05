"""Telemetry service: the surface the bot and dashboard call.

One ``TelemetryService`` owns both caches, the browser session, the
region scraper and the stats fetcher. Construct one per process (or one
per test) and pass it to whatever needs server data; nothing in this
package keeps module-level state.

Usage::

    async with TelemetryService(TelemetryConfig.from_env()) as service:
        servers = await service.fetch_region_servers()
        view = await service.get_enhanced_server_data(servers[0].address, servers[0])
"""

import logging
from typing import Any

import httpx

from qlview.browser import BrowserSession
from qlview.cache import TTLCache
from qlview.config import TelemetryConfig
from qlview.fusion import get_enhanced_server_data
from qlview.models import (
    EnhancedPlayerList,
    MergedServerView,
    ServerDetail,
    ServerRecord,
)
from qlview.region import OCEANIA, RegionFilter
from qlview.scraper import RegionScraper
from qlview.stats import StatsFetcher
from qlview.user_agents import UserAgentRotator

logger = logging.getLogger(__name__)


class TelemetryService:
    """Aggregates the server browser and the stats API behind one object."""

    def __init__(
        self,
        config: TelemetryConfig | None = None,
        *,
        session: BrowserSession | None = None,
        http_client: httpx.AsyncClient | None = None,
        region: RegionFilter = OCEANIA,
        user_agents: UserAgentRotator | None = None,
    ):
        if config is None:
            config = TelemetryConfig()

        self._config = config
        user_agents = user_agents or UserAgentRotator()
        self.session = session or BrowserSession()
        self.region_cache = TTLCache(config.region_ttl, name="region")
        self.stats_cache = TTLCache(config.stats_ttl, name="stats")
        self.scraper = RegionScraper(
            config,
            self.region_cache,
            self.session,
            region=region,
            user_agents=user_agents,
        )
        self.stats = StatsFetcher(
            config,
            self.stats_cache,
            client=http_client,
            user_agents=user_agents,
        )

    @property
    def config(self) -> TelemetryConfig:
        return self._config

    async def fetch_region_servers(self) -> list[ServerRecord]:
        """Region server list; raises on scrape failure."""
        return await self.scraper.fetch_region_servers()

    async def get_server_details(self, server_address: str) -> ServerDetail | None:
        """Summary of one server from the region list.

        Returns None if the server is not in the region or the scrape
        failed; scrape errors are logged, not raised.
        """
        try:
            servers = await self.fetch_region_servers()
        except Exception as exc:
            logger.error("Failed to get server details for %s: %s", server_address, exc)
            return None

        server = next((s for s in servers if s.address == server_address), None)
        if server is None:
            logger.debug("Server %s not found in %s region data", server_address, self.scraper.cache_key)
            return None

        return ServerDetail(
            server_name=server.name,
            address=server.address,
            current_map=server.map,
            game_type=server.game_mode,
            player_count=server.player_count_raw,
            ranked_players=list(server.players),
        )

    async def fetch_enhanced_players(self, server_address: str) -> EnhancedPlayerList | None:
        """Rated players for one server, or None if the stats API is unavailable."""
        return await self.stats.fetch_enhanced_players(server_address)

    async def get_enhanced_server_data(
        self, server_address: str, basic_view: ServerRecord | None = None
    ) -> MergedServerView:
        """Fused view of one server. Never raises."""
        return await get_enhanced_server_data(self.stats, server_address, basic_view)

    def clear_cache(self) -> None:
        """Drop every cached region list and player list."""
        self.region_cache.clear()
        self.stats_cache.clear()
        logger.info("Telemetry caches cleared")

    def cache_stats(self) -> dict[str, Any]:
        """Combined ``{size, keys, oldest_entry_timestamp}`` over both caches."""
        region = self.region_cache.stats()
        stats = self.stats_cache.stats()
        timestamps = [
            ts for ts in (region["oldest_entry_timestamp"], stats["oldest_entry_timestamp"])
            if ts is not None
        ]
        return {
            "size": region["size"] + stats["size"],
            "keys": region["keys"] + stats["keys"],
            "oldest_entry_timestamp": min(timestamps, default=None),
        }

    async def close_browser_session(self) -> None:
        """Stop the browser process. Idempotent; used by signal handlers."""
        await self.session.close()

    async def close(self) -> None:
        """Release the browser and the HTTP client."""
        await self.close_browser_session()
        await self.stats.close()

    async def __aenter__(self) -> "TelemetryService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
