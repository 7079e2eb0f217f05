"""CLI entry point for qlview.

Provides ``main()`` as the sync entry point for the ``qlview`` console
script, and ``async_main(args)`` which sets up logging, builds a
TelemetryService from the environment, runs one command and prints the
result as JSON.

Usage::

    qlview servers                         # Oceania server list
    qlview players 45.125.247.91:27960     # rated players from qlstats
    qlview view 45.125.247.91:27960        # fused server view
"""

import argparse
import asyncio
import json
import logging
import sys

from qlview.config import TelemetryConfig
from qlview.logging_config import setup_logging
from qlview.service import TelemetryService
from qlview.shutdown import ShutdownHandler

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the qlview CLI."""
    parser = argparse.ArgumentParser(
        prog="qlview",
        description="Unified Quake Live server view from ql.syncore.org and qlstats.net",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging, including page-structure diagnostics",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Also write a DEBUG log file to this directory",
    )
    parser.add_argument(
        "--enable-scraping",
        action="store_true",
        help="Scrape the server browser even if ENABLE_SYNCORE_SCRAPING is unset",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("servers", help="List servers in the region")
    players = sub.add_parser("players", help="Rated players for one server")
    players.add_argument("address", help="Server ip:port")
    view = sub.add_parser("view", help="Server browser data fused with ratings")
    view.add_argument("address", help="Server ip:port")
    return parser


async def run_command(service: TelemetryService, args: argparse.Namespace):
    """Run the selected command and return a JSON-serializable result."""
    if args.command == "servers":
        servers = await service.fetch_region_servers()
        return [s.model_dump() for s in servers]

    if args.command == "players":
        result = await service.fetch_enhanced_players(args.address)
        return result.model_dump() if result is not None else None

    if args.command == "view":
        servers = await service.fetch_region_servers()
        basic = next((s for s in servers if s.address == args.address), None)
        view = await service.get_enhanced_server_data(args.address, basic)
        return view.model_dump()

    raise ValueError(f"Unknown command {args.command!r}")


async def async_main(args: argparse.Namespace) -> int:
    """Async entry point: set up components, run one command, print JSON."""
    overrides = {}
    if args.debug:
        overrides["debug_logging"] = True
    if args.enable_scraping:
        overrides["scraping_enabled"] = True
    config = TelemetryConfig.from_env(**overrides)

    setup_logging(debug=config.debug_logging, log_dir=args.log_dir)
    logger.info(
        "Starting qlview %s: scraping=%s, region_cache=%dm, stats_cache=%dm",
        args.command, config.scraping_enabled,
        config.region_cache_minutes, config.stats_cache_minutes,
    )

    service = TelemetryService(config)
    shutdown = ShutdownHandler(service.close_browser_session)
    shutdown.install()
    try:
        result = await run_command(service, args)
    except Exception as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    finally:
        await service.close()
        shutdown.restore()

    print(json.dumps(result, indent=2))
    return 0


def main() -> None:
    """Sync entry point for the qlview console script."""
    # Suppress nodriver's unclosed transport errors on shutdown.
    # These are harmless "Exception ignored in __del__" from asyncio pipe
    # transports that fire after the event loop closes Chrome subprocesses.
    _original_hook = sys.unraisablehook

    def _quiet_transport_cleanup(unraisable):
        if unraisable.object and "Transport" in type(unraisable.object).__name__:
            return
        _original_hook(unraisable)

    sys.unraisablehook = _quiet_transport_cleanup

    args = build_parser().parse_args()
    exit_code = 1
    try:
        exit_code = asyncio.run(async_main(args))
    except KeyboardInterrupt:
        pass  # Already handled by ShutdownHandler
    finally:
        sys.unraisablehook = _original_hook
        logging.shutdown()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
