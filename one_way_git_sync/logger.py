"""Logging setup shared by the CLI commands."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False) -> None:
    """
    Route the package loggers through rich on stderr.

    INFO and above are shown by default; ``verbose`` adds the per-step
    DEBUG lines (clone path, extracted marker, commit title and body, push
    confirmation).
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )
    logging.getLogger("one_way_git_sync").setLevel(
        logging.DEBUG if verbose else logging.INFO
    )
