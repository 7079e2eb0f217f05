"""Logging configuration for the telemetry layer.

Console logging always; an optional file log captures DEBUG+ with full
timestamps and logger names.
"""

import logging
from datetime import datetime
from pathlib import Path


def setup_logging(debug: bool = False, log_dir: str | None = None) -> Path | None:
    """Configure the root logger.

    Existing handlers on the root logger are cleared first so that calling
    this function multiple times (e.g. in tests) does not produce duplicate
    output.

    Args:
        debug: Show DEBUG records on the console (page diagnostics, cache
            hits). INFO otherwise.
        log_dir: If set, also write a timestamped DEBUG log file here.

    Returns:
        Path to the log file, or None when only console logging is active.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.INFO)
    console.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-5s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(console)

    log_file = None
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H%M%S")
        log_file = directory / f"qlview-{timestamp}.log"

        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-5s [%(name)s] %(message)s")
        )
        root.addHandler(file_handler)

    # Suppress noisy third-party loggers.
    for name in ("nodriver", "uc", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
