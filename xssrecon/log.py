"""
Logging setup for xssrecon.

Diagnostics go to stderr through rich so stdout carries only results.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, color: bool = True) -> Console:
    """Route the xssrecon loggers to a rich stderr console."""
    console = Console(stderr=True, no_color=not color, highlight=False)
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )

    logger = logging.getLogger("xssrecon")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    return console
