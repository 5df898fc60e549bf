"""Structured logging infrastructure.

This module provides logging that works for:
- Local development (readable console output)
- Deployed services (JSON structured logs)

Usage:
    from leftjoin.core.logging import get_logger, configure_logging

    # Configure at startup
    configure_logging(log_level="INFO", log_format="console")

    # Get logger in any module
    logger = get_logger(__name__)

    # Log with structured context
    logger.info("query_executed", relation="books", rows=4)

    # Use context managers for automatic context propagation
    with log_context(request_id="req-123"):
        logger.info("preload_batch", association="category", keys=2)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Context variables for correlation
_run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)


@dataclass
class QueryMetrics:
    """Metrics collected while executing one query specification."""

    relation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None

    db_queries: int = 0
    rows_fetched: int = 0
    preload_batches: int = 0

    # Sub-operation timings (seconds)
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        """Get duration in seconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return (datetime.now(UTC) - self.start_time).total_seconds()

    def record_timing(self, operation: str, seconds: float) -> None:
        """Record timing for a sub-operation."""
        self.timings[operation] = self.timings.get(operation, 0.0) + seconds

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "relation": self.relation,
            "duration_seconds": self.duration_seconds,
            "db_queries": self.db_queries,
            "rows_fetched": self.rows_fetched,
            "preload_batches": self.preload_batches,
            "timings": self.timings,
        }


_current_metrics: ContextVar[QueryMetrics | None] = ContextVar("current_metrics", default=None)


def start_query_metrics(relation: str) -> QueryMetrics:
    """Start collecting metrics for a query."""
    metrics = QueryMetrics(relation=relation)
    _current_metrics.set(metrics)
    return metrics


def get_query_metrics() -> QueryMetrics | None:
    """Get current query metrics."""
    return _current_metrics.get()


def end_query_metrics() -> QueryMetrics | None:
    """End query metrics collection."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.end_time = datetime.now(UTC)
        _current_metrics.set(None)
    return metrics


def _add_run_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add run context to log events."""
    context = _run_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _add_metrics_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add current metrics context."""
    metrics = _current_metrics.get()
    if metrics:
        event_dict["_relation"] = metrics.relation
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" for development, "json" for production)
        show_timestamps: Whether to show timestamps in console mode
        color: Whether to use colors in console mode
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_run_context,
        _add_metrics_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if show_timestamps:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure stdlib logging for libraries (sqlalchemy.engine echo)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Context manager for adding context to logs within a scope."""

    def __init__(self, **context: Any):
        self.context = context
        self.token: Any = None

    def __enter__(self) -> LogContext:
        current = _run_context.get() or {}
        new_context = {**current, **self.context}
        self.token = _run_context.set(new_context)
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token:
            _run_context.reset(self.token)


def log_context(**context: Any) -> LogContext:
    """Create a context manager for scoped logging context.

    Usage:
        with log_context(request_id="abc"):
            logger.info("query_executed")  # Will include request_id
    """
    return LogContext(**context)


def increment_db_query() -> None:
    """Increment database query counter in current query metrics."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.db_queries += 1


def increment_preload_batch() -> None:
    """Increment preload batch counter in current query metrics."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.preload_batches += 1


def record_rows_fetched(count: int) -> None:
    """Record rows fetched in current query metrics."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.rows_fetched += count


def record_operation_timing(operation: str, seconds: float) -> None:
    """Record timing for a sub-operation in current query metrics."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.record_timing(operation, seconds)


# Initialize with default configuration
configure_logging()
