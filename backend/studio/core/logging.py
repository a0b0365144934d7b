"""Structured logging for the recording studio backend.

structlog over stdlib logging. Two formats:
- console: human-readable for development (default)
- json: one object per line for production
"""
from __future__ import annotations

import logging
import os

import structlog

_configured = False


def configure_logging(
    log_format: str | None = None,
    level: str | None = None,
) -> None:
    """Configure structured logging once per process.

    Args:
        log_format: "json" or "console". Default via STUDIO_LOG_FORMAT env or "console".
        level: Log level name. Default via STUDIO_LOG_LEVEL env or "INFO".
    """
    global _configured
    if _configured:
        return

    resolved_format = log_format or os.environ.get("STUDIO_LOG_FORMAT", "console")
    resolved_level = level or os.environ.get("STUDIO_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if resolved_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, resolved_level.upper(), logging.INFO))

    _configured = True


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to a component name (e.g. "audio_store", "ledger")."""
    configure_logging()
    return structlog.get_logger().bind(component=component)  # type: ignore[no-any-return]
