"""Shared modules for clicompat."""

from .logging import configure_logging, get_logger, verbosity_to_level

__all__ = [
    "configure_logging",
    "get_logger",
    "verbosity_to_level",
]
