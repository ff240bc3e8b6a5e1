"""Logging for clicompat.

Harness events (process launched, timed out, step failed) go through structlog
on top of stdlib logging. Output goes to stderr so it never mixes with the
stdout of ``clicompat exec``. The console renderer suits terminals, the JSON
renderer suits CI log collection.
"""

import logging
import sys
from pathlib import Path

import structlog

LEVELS = ("debug", "info", "warning", "error", "critical")


def _handler(log_level: int, log_file: str | Path | None) -> logging.Handler:
    if log_file:
        handler: logging.Handler = logging.FileHandler(str(log_file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    return handler


def _processors(json_output: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
) -> None:
    """Configure stdlib logging and structlog for the harness.

    May be called again to switch level or destination; existing handlers are
    replaced and loggers pick up the new processors on their next call.

    Args:
        level: Log level name (debug, info, warning, error, critical)
        log_file: Write to this file instead of stderr
        json_output: Render one JSON object per event
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        level=log_level,
        handlers=[_handler(log_level, log_file)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def verbosity_to_level(verbose: int) -> str:
    """Map a repeated -v flag count to a log level name."""
    if verbose >= 2:
        return "debug"
    if verbose == 1:
        return "info"
    return "warning"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger; ``name`` is usually ``__name__``."""
    return structlog.get_logger(name)
