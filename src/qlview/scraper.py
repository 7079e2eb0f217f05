"""Region scraper for the ql.syncore.org server browser.

The server list is a DataTable populated client-side, so it can only be
read from a rendered page. ``RegionScraper.fetch_region_servers()``:

1. serves the cached list while it is fresh,
2. returns ``[]`` untouched when scraping is administratively disabled,
3. otherwise opens a tab with a realistic User-Agent, navigates, polls
   the DOM for the table, lets the table settle, pulls the table's
   outerHTML, parses it (``row_parser``), filters it to the region
   (``region``) and caches the result.

Failures to reach the data at all (navigation error or timeout, missing
table, evaluation error) are raised. Concurrent cold-cache calls share
one scrape via ``SingleFlight``.

Each call also records a ``ScrapeReport`` so operators can tell a parse
that lost rows (DEGRADED) from a region that is simply quiet (EMPTY).
"""

import asyncio
import enum
import json
import logging
import time
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed,
)

from qlview.browser import BrowserSession
from qlview.cache import TTLCache
from qlview.config import TelemetryConfig
from qlview.exceptions import ScrapeError, ScrapeTimeout, StructuralMismatch
from qlview.models import ServerRecord
from qlview.region import OCEANIA, RegionFilter
from qlview.row_parser import ROW_SELECTOR, parse_server_table
from qlview.singleflight import SingleFlight
from qlview.user_agents import UserAgentRotator

logger = logging.getLogger(__name__)

# Pull only the server table out of the live DOM rather than the full page.
_TABLE_EXTRACTOR = """(function(){
    var t=document.querySelector('#serverList');
    return t?t.outerHTML:'';
})()"""

# Page-structure diagnostics, logged only with debug logging enabled.
_PAGE_INFO = """(function(){
    var t=document.querySelector('table');
    return JSON.stringify({
        title: document.title,
        url: location.href,
        hasTable: !!t,
        tableCount: document.querySelectorAll('table').length,
        rowCount: document.querySelectorAll('tr').length,
        tdCount: document.querySelectorAll('td').length,
        serverDivs: document.querySelectorAll('.server-row, .server, [class*="server"]').length,
        bodyContent: document.body ? document.body.innerText.substring(0, 500) : '',
        tableHTML: t ? t.outerHTML.substring(0, 1000) : 'No table found'
    });
})()"""


class _SelectorPending(Exception):
    """The awaited selector has not matched yet."""


class ScrapeOutcome(enum.Enum):
    OK = "ok"
    EMPTY = "empty"          # table parsed cleanly, no servers in region
    DEGRADED = "degraded"    # some rows broke the column contract
    DISABLED = "disabled"    # scraping switched off
    CACHED = "cached"        # served from cache, no scrape


@dataclass
class ScrapeReport:
    """What the most recent ``fetch_region_servers()`` call did."""

    outcome: ScrapeOutcome
    rows_seen: int = 0
    rows_rejected: int = 0
    servers_parsed: int = 0
    servers_in_region: int = 0
    elapsed: float = 0.0


class RegionScraper:
    """Scrapes the server browser and filters it to one region."""

    def __init__(
        self,
        config: TelemetryConfig,
        cache: TTLCache,
        session: BrowserSession,
        region: RegionFilter = OCEANIA,
        user_agents: UserAgentRotator | None = None,
    ):
        self._config = config
        self._cache = cache
        self._session = session
        self._region = region
        self._user_agents = user_agents or UserAgentRotator()
        self._flights = SingleFlight()
        self.last_report: ScrapeReport | None = None

    @property
    def cache_key(self) -> str:
        return f"{self._region.name}_servers"

    async def fetch_region_servers(self) -> list[ServerRecord]:
        """Return the region's servers, scraping on a cache miss.

        Raises:
            BrowserLaunchError: If the browser could not be started.
            ScrapeTimeout: If navigation or the table wait timed out.
            StructuralMismatch: If the page loaded without the server table.
            ScrapeError: On any other navigation/evaluation failure.
        """
        cached = self._cache.get(self.cache_key)
        if cached is not None:
            self.last_report = ScrapeReport(
                ScrapeOutcome.CACHED, servers_in_region=len(cached)
            )
            return cached

        if not self._config.scraping_enabled:
            logger.debug("Server browser scraping disabled via configuration")
            self.last_report = ScrapeReport(ScrapeOutcome.DISABLED)
            return []

        return await self._flights.do(self.cache_key, self._scrape)

    async def _scrape(self) -> list[ServerRecord]:
        url = self._config.servers_url
        start = time.monotonic()
        logger.info("Starting server browser scrape for %s region", self._region.name)

        try:
            async with self._session.page(self._user_agents.get()) as tab:
                html = await self._load_table(tab, url)
        except ScrapeError as exc:
            logger.error("Failed to scrape server browser: %s", exc)
            raise

        parsed = parse_server_table(html)
        servers = self._region.select(parsed.servers)

        if parsed.degraded:
            outcome = ScrapeOutcome.DEGRADED
            logger.warning(
                "Server table partially unreadable: %d of %d rows broke the "
                "column contract (%d %s servers kept)",
                parsed.rows_rejected, parsed.rows_seen,
                len(servers), self._region.name,
            )
        elif not servers:
            outcome = ScrapeOutcome.EMPTY
        else:
            outcome = ScrapeOutcome.OK

        self.last_report = ScrapeReport(
            outcome=outcome,
            rows_seen=parsed.rows_seen,
            rows_rejected=parsed.rows_rejected,
            servers_parsed=len(parsed.servers),
            servers_in_region=len(servers),
            elapsed=time.monotonic() - start,
        )
        logger.info(
            "Scraped %d %s servers (%d rows, outcome=%s)",
            len(servers), self._region.name, parsed.rows_seen, outcome.value,
        )

        self._cache.set(self.cache_key, servers)
        return servers

    async def _load_table(self, tab, url: str) -> str:
        """Navigate *tab* to *url* and return the server table's outerHTML."""
        try:
            await asyncio.wait_for(tab.get(url), timeout=self._config.navigation_timeout)
        except asyncio.TimeoutError as exc:
            raise ScrapeTimeout(
                f"Navigation to {url} timed out after "
                f"{self._config.navigation_timeout:.0f}s",
                url=url,
            ) from exc
        except Exception as exc:
            raise ScrapeError(f"Failed to navigate to {url}: {exc}", url=url) from exc

        await self._wait_for_selector(tab, url, ROW_SELECTOR)
        # The DataTable keeps filling rows after the first one matches.
        await asyncio.sleep(self._config.settle_wait)

        if self._config.debug_logging:
            await self._log_page_info(tab)

        try:
            html = await self._evaluate(tab, _TABLE_EXTRACTOR, url)
        except ScrapeError:
            raise
        except Exception as exc:
            raise ScrapeError(f"Failed to read server table on {url}: {exc}", url=url) from exc
        # nodriver may return ExceptionDetails instead of str on error
        if not isinstance(html, str) or not html:
            raise StructuralMismatch(
                f"Server table disappeared from {url} after render", url=url
            )
        return html

    async def _wait_for_selector(self, tab, url: str, selector: str) -> None:
        """Poll the live DOM until *selector* matches.

        Raises StructuralMismatch if the page finished loading without the
        element, ScrapeTimeout if it was still loading when time ran out.
        """
        js = f"!!document.querySelector({selector!r})"

        async def _probe() -> None:
            if await self._evaluate(tab, js, url) is not True:
                raise _SelectorPending(selector)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(_SelectorPending),
                stop=stop_after_delay(self._config.selector_timeout),
                wait=wait_fixed(self._config.selector_poll_interval),
                reraise=True,
            ):
                with attempt:
                    await _probe()
        except _SelectorPending:
            pass
        except ScrapeError:
            raise
        except Exception as exc:
            raise ScrapeError(
                f"Failed to query {selector!r} on {url}: {exc}", url=url
            ) from exc
        else:
            return

        try:
            ready = await self._evaluate(tab, "document.readyState === 'complete'", url)
        except Exception:
            ready = False
        if ready is True:
            raise StructuralMismatch(
                f"Selector {selector!r} not found on loaded page {url}", url=url
            )
        raise ScrapeTimeout(
            f"Selector {selector!r} not found on {url} after "
            f"{self._config.selector_timeout:.0f}s",
            url=url,
        )

    async def _evaluate(self, tab, js: str, url: str):
        """``tab.evaluate(js)`` bounded by the evaluate timeout.

        Raises:
            ScrapeTimeout: If the CDP call does not answer in time.
        """
        try:
            return await asyncio.wait_for(
                tab.evaluate(js), timeout=self._config.evaluate_timeout
            )
        except asyncio.TimeoutError as exc:
            raise ScrapeTimeout(
                f"Page evaluation on {url} timed out after "
                f"{self._config.evaluate_timeout:.0f}s",
                url=url,
            ) from exc

    async def _log_page_info(self, tab) -> None:
        try:
            raw = await self._evaluate(tab, _PAGE_INFO, self._config.servers_url)
            info = json.loads(raw) if isinstance(raw, str) else {"raw": repr(raw)}
        except Exception as exc:
            logger.debug("Page structure analysis failed: %s", exc)
            return
        logger.debug("Page structure analysis: %s", info)
