"""Centralized logging configuration for the quire CLI."""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["console", "configure_logging"]

_LOG_LEVEL_ENV: Final[str] = "QUIRE_LOG_LEVEL"
_DEFAULT_LEVEL_NAME: Final[str] = "WARNING"

console = Console()


def _resolve_level(verbose: bool) -> int:
    """Return the logging level from the verbose flag or the environment."""
    if verbose:
        return logging.DEBUG
    level_name = os.getenv(_LOG_LEVEL_ENV, _DEFAULT_LEVEL_NAME).upper()
    level = getattr(logging, level_name, logging.WARNING)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(*, verbose: bool = False) -> None:
    """Install a single Rich handler on the root logger."""
    root_logger = logging.getLogger()

    managed = [handler for handler in root_logger.handlers if getattr(handler, "_quire_managed", False)]
    if not managed:
        handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._quire_managed = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    root_logger.setLevel(_resolve_level(verbose))
    logging.captureWarnings(True)
