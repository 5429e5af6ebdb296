"""Logging configuration for TranscriptQA using structlog.

Structured console logging with context binding, stage timing and a
configurable log level.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Any

import structlog


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "colored",
    log_timestamps: bool = True,
) -> None:
    """Configure structlog with console output.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format - "colored" for dev, "plain" for redirection
        log_timestamps: Whether to include timestamps
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso" if log_timestamps else None),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "colored":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    # Provider SDKs log every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("chromadb").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        BoundLogger with structured logging capabilities
    """
    return structlog.get_logger(name)


class Timer:
    """Context manager for timing operations and logging duration.

    Example:
        with Timer(logger, "ingest_batch", batch_index=3) as timer:
            ids = await store.upsert(chunks)
            timer.complete(upserted=len(ids))
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ) -> None:
        self.logger = logger.bind(operation=operation, **context)
        self.operation = operation
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self._completed = False

    def __enter__(self) -> Timer:
        self.start_time = time.monotonic()
        self.logger.debug(f"{self.operation}_started")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.monotonic()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=round(duration_ms, 2),
                error_type=exc_type.__name__,
                error=str(exc_val) if exc_val else None,
            )
        elif not self._completed:
            self.logger.info(
                f"{self.operation}_completed",
                duration_ms=round(duration_ms, 2),
            )

    def complete(self, **extra_context: Any) -> None:
        """Mark operation as complete with additional context.

        Args:
            **extra_context: Additional fields to include in completion log
        """
        self.end_time = time.monotonic()
        duration_ms = (self.end_time - self.start_time) * 1000
        self._completed = True

        self.logger.info(
            f"{self.operation}_completed",
            duration_ms=round(duration_ms, 2),
            **extra_context,
        )
