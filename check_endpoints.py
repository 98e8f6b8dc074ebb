"""Command line entry point: run one pass over the endpoint list.

Meant to be invoked from cron or a systemd timer. Exits non-zero only when
configuration is missing or invalid.
"""

import argparse
import logging
import os
import signal
import threading
from typing import List, Optional

from dotenv import load_dotenv

from uptimelib.config import ConfigError, Settings, load_endpoints
from uptimelib.notify import build_sink
from uptimelib.runner import run

logger = logging.getLogger("check_endpoints")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "-e",
        "--endpoints",
        help="endpoint list file (default: $ENDPOINTS_FILE or endpoints.txt)",
    )
    parser.add_argument(
        "--env-file",
        help="dotenv file with secrets; it is an error if it does not exist",
    )
    parser.add_argument(
        "-w", "--workers", type=int, help="number of endpoints checked in parallel"
    )
    return parser.parse_args(argv)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load the dotenv file into the environment and build settings from it."""
    if env_file:
        if not os.path.isfile(env_file):
            raise ConfigError(f"secrets file not found: {env_file}")
        load_dotenv(env_file)
    else:
        load_dotenv()
    return Settings.from_env()


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.env_file)
        logging.getLogger().setLevel(settings.log_level)
        endpoints = load_endpoints(args.endpoints or settings.endpoints_file)
        workers = args.workers if args.workers is not None else settings.workers
        if workers < 1:
            raise ConfigError("--workers must be at least 1")
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        return 1

    logger.info("checking %d endpoints", len(endpoints))
    cancel = threading.Event()
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: cancel.set())
    try:
        run(endpoints, settings, build_sink(settings), workers=workers, cancel=cancel)
    finally:
        signal.signal(signal.SIGTERM, previous)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
