"""Termination-signal wiring for the browser session.

``ShutdownHandler`` installs SIGINT/SIGTERM handlers that schedule an
idempotent ``close()`` coroutine on the running event loop, so the
headless browser is stopped when the host process is asked to exit.

Uses ``signal.signal(...)`` which works on both Windows and Unix (unlike
``loop.add_signal_handler`` which raises ``NotImplementedError`` on
Windows). A second signal while the close is pending force-exits.
"""

import asyncio
import logging
import signal
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

_SIGNALS = tuple(
    s for s in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None))
    if s is not None
)


class ShutdownHandler:
    """Run *on_shutdown* once when the process receives SIGINT or SIGTERM."""

    def __init__(self, on_shutdown: Callable[[], Awaitable[None]]) -> None:
        self._on_shutdown = on_shutdown
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._original_handlers: dict[int, object] = {}
        self.task: asyncio.Task | None = None

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Save the current handlers and install ours.

        Must be called from the thread running *loop* (default: the
        running loop).
        """
        self._loop = loop or asyncio.get_running_loop()
        for sig in _SIGNALS:
            self._original_handlers[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle)

    def _handle(self, sig, frame) -> None:  # noqa: ANN001
        if self._event.is_set():
            logger.warning("Force shutdown")
            raise SystemExit(1)
        logger.info("Received %s, closing browser session", signal.Signals(sig).name)
        self._event.set()
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._schedule)

    def _schedule(self) -> None:
        self.task = asyncio.ensure_future(self._on_shutdown())

    @property
    def is_set(self) -> bool:
        """Whether a shutdown has been requested."""
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until a signal arrives."""
        await self._event.wait()

    def restore(self) -> None:
        """Restore the handlers that were in place before ``install()``."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
