from __future__ import annotations

import logging
import sys
from typing import Any, Mapping

import structlog

from . import __version__
from .config import Settings

APP_NAME = "topology-publisher"


def _add_app_context(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: Mapping[str, Any],
) -> Mapping[str, Any]:
    """
    Enrich log records with basic app context (name, version).
    """
    event_dict["app"] = APP_NAME
    event_dict["version"] = __version__
    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog + stdlib logging.

    Called once by the entrypoint. Before settings are available (or when
    they fail to load) it is called without arguments, which gives JSON
    logs at INFO so configuration errors are still reported.
    """
    level_name = settings.log_level if settings is not None else "INFO"
    level = getattr(logging, level_name.upper(), logging.INFO)
    log_format = settings.log_format if settings is not None else "json"

    # Configure root logging for libraries (kubernetes client, urllib3)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    # Reduce noise: urllib3 logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    renderer: Any
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    processors = [
        structlog.contextvars.merge_contextvars,  # include bound contextvars
        _add_app_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
