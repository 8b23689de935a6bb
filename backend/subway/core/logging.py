"""Logging configuration for the application.

Configures structlog on top of Python's logging module so that:
- structlog events and stdlib records share one formatter and handler
- log levels are preserved for uvicorn, SQLAlchemy and alembic records
- events carry the OpenTelemetry trace/span ids of the active request
"""

import logging
import sys
from collections.abc import Mapping, MutableMapping
from typing import Any

import structlog
from opentelemetry import trace

# Attributes that the OTLP exporter cannot serialise (structlog's bound logger)
OTLP_DROPPED_ATTRIBUTES = frozenset({"_logger", "_name"})

NOISY_LOGGERS = (
    "sqlalchemy.engine",  # SQL statements
    "sqlalchemy.pool",  # Connection checkout logs
    "aiosqlite",  # Per-statement debug logs in tests
    "asyncio",  # Selector debug messages
    "opentelemetry.exporter.otlp.proto.http",  # OTLP export logs
    "uvicorn.access",  # Replaced by AccessLoggingMiddleware
)


def _add_otel_context(
    logger: logging.Logger, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Add OpenTelemetry trace and span IDs to log events for correlation."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def filter_otlp_attributes(attributes: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """
    Drop log record attributes the OTLP exporter cannot serialise.

    Args:
        attributes: Attributes extracted from a log record

    Returns:
        A copy without the dropped keys, or None when there were no attributes
    """
    if attributes is None:
        return None
    return {key: value for key, value in attributes.items() if key not in OTLP_DROPPED_ATTRIBUTES}


def _build_otlp_handler(level: int, logger_provider: Any) -> logging.Handler:  # noqa: ANN401
    # The OTEL SDK is only imported when log export is enabled
    from opentelemetry.sdk._logs import LoggingHandler  # noqa: PLC0415

    class FilteredLoggingHandler(LoggingHandler):
        @staticmethod
        def _get_attributes(record: logging.LogRecord) -> Any:  # noqa: ANN401
            return filter_otlp_attributes(LoggingHandler._get_attributes(record))

    return FilteredLoggingHandler(level=level, logger_provider=logger_provider)


def configure_logging(*, log_level: str = "INFO") -> None:
    """
    Configure structlog and the root logger.

    Console output is coloured at INFO and above and JSON at DEBUG. When
    OpenTelemetry is enabled, records are also exported over OTLP.

    Args:
        log_level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    normalized_level = log_level.upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_otel_context,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if normalized_level == "DEBUG":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, normalized_level))

    # Lazy import: telemetry logs through structlog during its own setup
    from subway.core.config import settings  # noqa: PLC0415

    if settings.OTEL_ENABLED:
        from subway.core.telemetry import get_logger_provider  # noqa: PLC0415

        if logger_provider := get_logger_provider():
            otel_level = getattr(logging, settings.OTEL_LOG_LEVEL)
            root_logger.addHandler(_build_otlp_handler(otel_level, logger_provider))
            structlog.get_logger(__name__).info(
                "otel_logging_handler_attached",
                level=settings.OTEL_LOG_LEVEL,
                endpoint=settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT,
            )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
