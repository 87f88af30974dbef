"""Logging for CLI runs: one RichHandler on stderr."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Install a stderr RichHandler on the root logger at *level*.

    Stdout stays clean for ``--json`` output.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # requests/urllib3 connection chatter carries full URLs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
