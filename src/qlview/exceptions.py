"""Custom exception hierarchy for the telemetry layer.

Exception tree:
    TelemetryError
    +-- BrowserLaunchError   (headless browser could not be started)
    +-- ScrapeError          (server list could not be reached or read)
    |   +-- ScrapeTimeout        (navigation or selector wait timed out)
    |   +-- StructuralMismatch   (page loaded but the table is not there)
    +-- StatsUnavailable     (stats API unreachable, non-200, bad schema)
        +-- StatsTimeout         (stats request exceeded its timeout)

Scrape and launch errors reach the caller. Stats errors never do: the
stats fetcher logs them and returns ``None``.
"""

from typing import Optional


class TelemetryError(Exception):
    """Base exception for all telemetry errors."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class BrowserLaunchError(TelemetryError):
    """The browser process failed to start. Fatal to any pending scrape."""

    pass


class ScrapeError(TelemetryError):
    """The server list page could not be rendered or read."""

    pass


class ScrapeTimeout(ScrapeError):
    """Navigation or the table wait exceeded its timeout.

    Raised rather than degraded: the caller has no data and decides
    whether to try again later.
    """

    pass


class StructuralMismatch(ScrapeError):
    """The page finished loading but the expected server table is absent.

    Usually means the upstream layout changed.
    """

    pass


class StatsUnavailable(TelemetryError):
    """The stats API could not provide a usable player list."""

    pass


class StatsTimeout(StatsUnavailable):
    """The stats request exceeded its timeout."""

    pass
