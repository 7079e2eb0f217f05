"""Headless browser session for rendering the server browser page.

Owns a single reusable nodriver (real Chromium) process. The process is
launched lazily on the first ``acquire()`` and lives until ``close()``,
which the host wires to SIGINT/SIGTERM so Chrome is never orphaned.

States::

    CLOSED -> LAUNCHING -> READY -> CLOSING -> CLOSED

``acquire()`` holds an asyncio.Lock across the launch, so concurrent
callers that find the session CLOSED wait for the one launch in progress
instead of each starting a process.

Usage::

    session = BrowserSession()
    async with session.page(user_agent) as tab:
        await tab.get("https://ql.syncore.org/servers")
    await session.close()
"""

import asyncio
import enum
import logging
import signal
from contextlib import asynccontextmanager

import nodriver
import psutil
from nodriver import cdp

from qlview.exceptions import BrowserLaunchError

logger = logging.getLogger(__name__)

# Hardened flag set: no sandbox (containers), no GPU, no background
# throttling so timers in a hidden tab still populate the DataTable.
BROWSER_ARGS: tuple[str, ...] = (
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
)


class SessionState(enum.Enum):
    CLOSED = "closed"
    LAUNCHING = "launching"
    READY = "ready"
    CLOSING = "closing"


class BrowserSession:
    """Lazily launched, reusable headless browser.

    At most one browser process exists per session object. The service
    layer owns one session and injects it into the region scraper.
    """

    def __init__(self, headless: bool = True, stop_grace: float = 0.3):
        self._headless = headless
        self._stop_grace = stop_grace
        self._browser: nodriver.Browser | None = None
        self._state = SessionState.CLOSED
        self._lock = asyncio.Lock()
        self._launch_count = 0
        self._close_requested = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def launch_count(self) -> int:
        """Number of browser processes started over this session's life."""
        return self._launch_count

    @property
    def is_connected(self) -> bool:
        """Check if the browser process is still alive."""
        if self._browser is None:
            return False
        proc = getattr(self._browser, "_process", None)
        return proc is not None and proc.returncode is None

    async def acquire(self) -> nodriver.Browser:
        """Return the live browser, launching one if needed.

        Raises:
            BrowserLaunchError: If the browser process fails to start.
        """
        if self._state is SessionState.READY and self.is_connected:
            return self._browser

        async with self._lock:
            # Another caller may have finished launching while we waited.
            if self._state is SessionState.READY and self.is_connected:
                return self._browser

            if self._browser is not None:
                logger.warning("Browser process is gone, relaunching")
                await self._shutdown_browser()

            self._state = SessionState.LAUNCHING
            self._close_requested = False
            try:
                self._browser = await nodriver.start(
                    headless=self._headless,
                    browser_args=list(BROWSER_ARGS),
                    sandbox=False,
                )
            except Exception as exc:
                self._browser = None
                self._state = SessionState.CLOSED
                logger.error("Failed to launch browser: %s", exc)
                raise BrowserLaunchError(f"Failed to launch browser: {exc}") from exc

            self._launch_count += 1
            if self._close_requested:
                # close() arrived mid-launch; the new process must not outlive it
                self._close_requested = False
                self._state = SessionState.CLOSING
                try:
                    await self._shutdown_browser()
                finally:
                    self._state = SessionState.CLOSED
                logger.info("Browser instance closed during launch")
                raise BrowserLaunchError("Browser session was closed during launch")

            self._state = SessionState.READY
            logger.info("Browser instance initialized for server browser scraping")
            return self._browser

    @asynccontextmanager
    async def page(self, user_agent: str | None = None):
        """Open a fresh tab for the duration of the ``async with`` block.

        The tab is closed on the way out, success or failure.
        """
        browser = await self.acquire()
        tab = await browser.get("about:blank", new_tab=True)
        try:
            if user_agent:
                await tab.send(cdp.network.set_user_agent_override(user_agent=user_agent))
            yield tab
        finally:
            try:
                await tab.close()
            except Exception as exc:
                logger.debug("Ignoring error while closing tab: %s", exc)

    async def close(self) -> None:
        """Stop the browser. A no-op when already closed.

        Safe to call from a termination-signal callback and safe to call
        repeatedly. A close that arrives while a launch is in progress
        waits for it and stops the new process; the pending ``acquire()``
        raises BrowserLaunchError.
        """
        if self._state is SessionState.LAUNCHING:
            self._close_requested = True

        async with self._lock:
            if self._browser is None:
                self._state = SessionState.CLOSED
                return

            self._state = SessionState.CLOSING
            try:
                await self._shutdown_browser()
            finally:
                self._state = SessionState.CLOSED
            logger.info("Browser instance closed")

    async def _shutdown_browser(self) -> None:
        """Stop Chrome and kill any surviving child processes."""
        browser = self._browser
        self._browser = None
        if browser is None:
            return

        proc = getattr(browser, "_process", None)
        pid = getattr(proc, "pid", None)

        try:
            browser.stop()
        except Exception as exc:
            logger.debug("browser.stop() failed: %s", exc)

        # Give Chrome a moment to exit before sweeping leftovers.
        await asyncio.sleep(self._stop_grace)

        if isinstance(pid, int):
            _kill_process_tree(pid)


def _kill_process_tree(pid: int) -> None:
    """SIGKILL *pid* and its descendants if any are still alive."""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return  # Already dead, good
    for proc in [*parent.children(recursive=True), parent]:
        try:
            proc.send_signal(signal.SIGKILL)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            pass
