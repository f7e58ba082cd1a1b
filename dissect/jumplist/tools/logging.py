from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Processors that enrich both structlog and foreign (stdlib) log entries
SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def stringify_values(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[str, Any]:
    """Render every event value with ``str()``, paths and enum members included."""
    return {key: str(value) for key, value in event_dict.items()}


def drop_stacktrace_above_debug(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> dict[str, Any]:
    """Replace the exception info by the exception message, unless the logger allows ``DEBUG``."""
    if event_dict.get("exc_info") and logger.getEffectiveLevel() > logging.DEBUG:
        event_dict.pop("exc_info")
        _, exc, _ = sys.exc_info()
        event_dict["exc"] = str(exc)
    return event_dict


def verbosity_level(verbose: int, quiet: bool) -> int:
    """Map the ``-v`` count and ``-q`` flag to a log level.

    Quiet wins over verbose. Without either the level is ``WARNING``, ``-v`` gives ``INFO`` and ``-vv`` ``DEBUG``.
    """
    if quiet:
        return logging.CRITICAL
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbose: int, quiet: bool) -> None:
    """Configure structlog and the level of the ``dissect`` logger for the command line tools."""
    renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event=10)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            stringify_values,
            drop_stacktrace_above_debug,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.captureWarnings(True)
    logging.getLogger("dissect").setLevel(verbosity_level(verbose, quiet))

    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=SHARED_PROCESSORS))
    logging.getLogger().handlers = [handler]
