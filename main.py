# main.py

"""Entry point for the drink_picker catalog service."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("drink_picker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="drink_picker",
        description="Youzan catalog sync service for the drink picker.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--sync",
        action="store_true",
        default=False,
        help="Run one catalog sync and exit.",
    )
    mode.add_argument(
        "--status",
        action="store_true",
        default=False,
        help="Print the persisted catalog and exit.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Bind address for the API server (default: HOST or 0.0.0.0).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the API server (default: PORT or 3001).",
    )
    return parser


def main() -> None:
    """Serve the API (default), or run a one-shot sync / status print."""
    log_file = setup_logging()
    logger.info("drink_picker starting, log file: %s", log_file)

    args = _build_parser().parse_args()

    from src.cli import runner

    if args.sync:
        sys.exit(asyncio.run(runner.cli_sync()))
    if args.status:
        sys.exit(runner.print_status())
    try:
        runner.serve(args.host, args.port)
    except Exception:
        logger.critical("Fatal error in API server", exc_info=True)
        raise
    finally:
        logger.info("drink_picker shutting down")


if __name__ == "__main__":
    main()
