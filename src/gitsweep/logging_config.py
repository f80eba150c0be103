"""Logging configuration for gitsweep."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging for the application.

    Log records go to stderr so they never mix with command output.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages with timestamps and paths
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=debug,
        show_path=debug,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter(fmt="[%(name)s] %(message)s"))
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module, without the package prefix."""
    if name.startswith("gitsweep."):
        name = name[len("gitsweep.") :]
    return logging.getLogger(name)
