"""structlog setup shared by the API and its tests.

LOG_FORMAT=json, or an Application Insights connection string, switches the
output to one JSON object per line. Anything else renders for a terminal.
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_TELEMETRY_ENABLED = bool(os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING"))

# Chatty at INFO, capped at WARNING
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


def _add_trace_ids(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    if not _TELEMETRY_ENABLED:
        return event_dict

    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _get_log_level() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def _is_json_format() -> bool:
    match os.environ.get("LOG_FORMAT", "").lower():
        case "json":
            return True
        case "console":
            return False
    return _TELEMETRY_ENABLED


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _add_trace_ids,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _render_chain(use_json: bool) -> list[Processor]:
    if use_json:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    # ConsoleRenderer formats exc_info itself
    return [
        structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    ]


def configure_logging() -> None:
    """Send structlog events and stdlib records through one stdout handler.

    Call once at startup. Records from libraries that log through stdlib
    run through the same pre-chain, so uvicorn and SQLAlchemy lines carry
    the same keys as our own events.
    """
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_render_chain(_is_json_format()),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_get_log_level())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger for dotted events, e.g. ``logger.info("checkin.logged", user_id=...)``."""
    return structlog.stdlib.get_logger(name)
