"""Command line interface for the Teddy upgrader."""

from __future__ import annotations

import argparse
import asyncio
import time

from teddy_upgrader import __version__
from teddy_upgrader.config import get_settings
from teddy_upgrader.logging import get_logger, setup_logging
from teddy_upgrader.pipeline import Upgrader

BANNER = r"""
           _     _
          ( \---/ )
           ) . . (
 ____,--._(___Y___)_,--.____
     `--'           `--'
            TEDDY
         teddyful.com
 ___________________________
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="teddy-upgrader",
        description="Upgrade a locally installed instance of Teddy to the latest release.",
    )
    parser.add_argument(
        "--path",
        required=True,
        help="Absolute path to the locally installed instance of Teddy (required)",
    )
    parser.add_argument(
        "--delete-backup",
        action="store_true",
        help="Delete the backup of the pre-upgraded instance of Teddy after a successful upgrade",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Upgrade without asking for confirmation",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the upgrade and return the exit status."""
    args = build_parser().parse_args(argv)
    print(BANNER)

    setup_logging()
    log = get_logger("teddy_upgrader.cli")
    settings = get_settings()
    log.info("upgrader_started", version=__version__)

    upgrader = Upgrader(
        args.path,
        settings,
        delete_backup=args.delete_backup,
        assume_yes=args.yes,
    )
    status_code = asyncio.run(upgrader.upgrade())

    log.info("upgrader_exiting", exit_code=status_code)
    # Give asynchronous handlers time to flush before the process exits
    time.sleep(settings.exit_delay_seconds)
    return status_code
