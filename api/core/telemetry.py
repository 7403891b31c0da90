"""Telemetry and monitoring utilities for performance tracking."""

import inspect
import os
import time
import uuid
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

TELEMETRY_ENABLED = bool(os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING"))

SERVICE_NAME = os.getenv("SERVICE_NAME", "waddletracker-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

# Requests slower than this are always logged
SLOW_REQUEST_MS = 1000

if TELEMETRY_ENABLED:
    from opentelemetry import trace
    from opentelemetry.trace import Status, StatusCode

    tracer = trace.get_tracer(__name__)
else:
    trace = None
    tracer = None
    Status = None
    StatusCode = None

P = ParamSpec("P")
R = TypeVar("R")


def instrument_sqlalchemy_engine(engine: Any) -> None:
    """Add OpenTelemetry instrumentation for query tracing."""
    if not TELEMETRY_ENABLED:
        return

    try:
        from opentelemetry.instrumentation.sqlalchemy import (
            SQLAlchemyInstrumentor,
        )

        SQLAlchemyInstrumentor().instrument(
            engine=engine.sync_engine,
            enable_commenter=True,
        )
        logger.info("sqlalchemy.instrumentation.enabled")
    except Exception as e:
        logger.warning("sqlalchemy.instrumentation.failed", error=str(e))


class SecurityHeadersMiddleware:
    """Adds security headers suitable for a JSON-only API."""

    SECURITY_HEADERS: list[tuple[bytes, bytes]] = [
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"referrer-policy", b"no-referrer"),
        (b"content-security-policy", b"default-src 'none'; frame-ancestors 'none'"),
        (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
    ]

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.extend(self.SECURITY_HEADERS)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


class RequestTimingMiddleware:
    """Times each request and emits one wide event when the response ends.

    Errors, slow requests and requests that touched a user are always
    logged; other successful requests are dropped.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        request_id = str(uuid.uuid4())

        wide_event = init_wide_event()
        wide_event["service_name"] = SERVICE_NAME
        wide_event["service_version"] = SERVICE_VERSION
        wide_event["request_id"] = request_id
        wide_event["http_method"] = method
        wide_event["http_path"] = path

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                route = scope.get("route")
                route_path = getattr(route, "path", None) or path

                if (
                    tracer is not None
                    and trace is not None
                    and Status is not None
                    and StatusCode is not None
                    and response_status is not None
                ):
                    span = trace.get_current_span()
                    span.set_attribute("http.route", route_path)
                    span.set_attribute("http.status_code", response_status)
                    if response_status >= 500:
                        span.set_status(
                            Status(StatusCode.ERROR, f"HTTP {response_status}")
                        )

                event = get_wide_event()
                event["http_route"] = route_path
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                should_emit = (
                    response_status is None
                    or response_status >= 400
                    or duration_ms > SLOW_REQUEST_MS
                    or event.get("user_id")
                )
                if should_emit:
                    logger.info("request.completed", **event)

                clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            event = get_wide_event()
            event["duration_ms"] = round(duration_ms, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            clear_wide_event()
            raise


def track_operation(operation_name: str):
    """Decorator to trace a business operation as an OpenTelemetry span.

    A no-op wrapper when telemetry is disabled.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                if tracer is None:
                    return await func(*args, **kwargs)

                with tracer.start_as_current_span(
                    operation_name, attributes={"operation.name": operation_name}
                ) as span:
                    start_time = time.perf_counter()
                    try:
                        result = await func(*args, **kwargs)
                        span.set_attribute("operation.success", True)
                        return result
                    except Exception as e:
                        span.set_attribute("operation.success", False)
                        span.record_exception(e)
                        raise
                    finally:
                        duration_ms = (time.perf_counter() - start_time) * 1000
                        span.set_attribute("operation.duration_ms", duration_ms)

            return cast(Callable[P, R], async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if tracer is None:
                return func(*args, **kwargs)

            with tracer.start_as_current_span(
                operation_name, attributes={"operation.name": operation_name}
            ) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    raise

        return sync_wrapper

    return decorator


def add_custom_attribute(key: str, value: str | int | float | bool) -> None:
    """Add a custom attribute to the current span."""
    if trace is None:
        return

    span = trace.get_current_span()
    if span:
        span.set_attribute(key, value)


def log_business_event(
    name: str, value: float, properties: dict[str, str] | None = None
) -> None:
    """Log a structured business event (e.g. ``checkins.logged``)."""
    logger.info("business.event", event_name=name, value=value, **(properties or {}))


def configure_telemetry() -> None:
    """Configure Azure Monitor exporters when a connection string is set.

    Must run before the FastAPI app is created so auto-instrumentation
    sees the framework classes.
    """
    if not TELEMETRY_ENABLED:
        return

    try:
        from azure.monitor.opentelemetry import configure_azure_monitor

        configure_azure_monitor(
            instrumentation_options={
                "fastapi": {"enabled": True},
                "psycopg2": {"enabled": False},
                "django": {"enabled": False},
                "flask": {"enabled": False},
            },
        )
        logger.info("telemetry.azure_monitor.configured")
    except Exception as e:
        logger.warning("telemetry.azure_monitor.failed", error=str(e))
