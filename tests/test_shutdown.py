"""Tests for termination-signal wiring."""

import asyncio
import signal
from unittest.mock import AsyncMock

import pytest

from qlview.shutdown import ShutdownHandler


async def _drain(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_signal_schedules_close():
    close = AsyncMock()
    handler = ShutdownHandler(close)
    handler.install()
    try:
        handler._handle(signal.SIGTERM, None)
        await _drain()
    finally:
        handler.restore()

    assert handler.is_set is True
    close.assert_awaited_once()


@pytest.mark.asyncio
async def test_second_signal_forces_exit():
    handler = ShutdownHandler(AsyncMock())
    handler.install()
    try:
        handler._handle(signal.SIGINT, None)
        with pytest.raises(SystemExit):
            handler._handle(signal.SIGINT, None)
        await _drain()
    finally:
        handler.restore()


@pytest.mark.asyncio
async def test_restore_reinstates_previous_handlers():
    before = signal.getsignal(signal.SIGTERM)
    handler = ShutdownHandler(AsyncMock())
    handler.install()
    assert signal.getsignal(signal.SIGTERM) == handler._handle
    handler.restore()
    assert signal.getsignal(signal.SIGTERM) == before


def test_initial_state():
    handler = ShutdownHandler(AsyncMock())
    assert handler.is_set is False
