"""Telemetry configuration with sensible defaults for the Quake Live sources."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SYNCORE_SERVERS_URL = "https://ql.syncore.org/servers"
QLSTATS_BASE_URL = "https://qlstats.net"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    # 0 is treated as unset, matching the upstream env conventions
    return value or default


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() == "true"


@dataclass
class TelemetryConfig:
    """Configuration for the telemetry layer.

    Cache durations are in minutes, the stats timeout in milliseconds, all
    browser timings in seconds. Values are read once at startup; the
    surrounding bot validates the environment before it gets here.
    """

    # Region scrape cache (ql.syncore.org server list)
    region_cache_minutes: int = 5

    # Stats API cache (qlstats.net per-server players)
    stats_cache_minutes: int = 3

    # Bounded timeout for the stats HTTP call
    stats_timeout_ms: int = 8000

    # Administrative off-switch for the browser scrape
    scraping_enabled: bool = False

    # Gates verbose page-structure diagnostics
    debug_logging: bool = False

    servers_url: str = SYNCORE_SERVERS_URL
    stats_base_url: str = QLSTATS_BASE_URL

    # Timeout around tab navigation
    navigation_timeout: float = 30.0

    # CDP evaluate timeout (asyncio.wait_for around tab.evaluate())
    evaluate_timeout: float = 15.0

    # How long to poll for the server table before giving up
    selector_timeout: float = 15.0
    selector_poll_interval: float = 0.25

    # The DataTable keeps populating after the first row appears
    settle_wait: float = 2.0

    @property
    def region_ttl(self) -> float:
        """Region cache TTL in seconds."""
        return self.region_cache_minutes * 60.0

    @property
    def stats_ttl(self) -> float:
        """Stats cache TTL in seconds."""
        return self.stats_cache_minutes * 60.0

    @property
    def stats_timeout(self) -> float:
        """Stats request timeout in seconds."""
        return self.stats_timeout_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "TelemetryConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
            **overrides: Field values that take precedence over the environment.

        Returns:
            A populated TelemetryConfig.
        """
        if environ is None:
            environ = os.environ

        values = {
            "region_cache_minutes": _env_int(
                environ, "SYNCORE_CACHE_MINUTES", cls.region_cache_minutes
            ),
            "stats_cache_minutes": _env_int(
                environ, "QLSTATS_CACHE_MINUTES", cls.stats_cache_minutes
            ),
            "stats_timeout_ms": _env_int(
                environ, "QLSTATS_TIMEOUT_MS", cls.stats_timeout_ms
            ),
            "scraping_enabled": _env_flag(environ, "ENABLE_SYNCORE_SCRAPING"),
            "debug_logging": _env_flag(environ, "ENABLE_QUAKE_DEBUG_LOGGING"),
        }
        values.update(overrides)
        return cls(**values)
