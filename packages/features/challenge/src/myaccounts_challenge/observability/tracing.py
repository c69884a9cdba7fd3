"""Challenge tracing helpers for OpenTelemetry integration."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

_logger = logging.getLogger(__name__)

# Try to import OpenTelemetry (optional dependency)
try:
    from opentelemetry import trace
    from opentelemetry.trace import Status, StatusCode

    HAS_OTEL = True
except ImportError:
    HAS_OTEL = False
    trace = None
    Status = None
    StatusCode = None


class _TracerRegistry:
    """Lazy tracer initialization."""

    def __init__(self) -> None:
        self._tracer = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        if HAS_OTEL and trace:
            self._tracer = trace.get_tracer("myaccounts-challenge")
        self._initialized = True

    @property
    def tracer(self) -> Any:
        self._ensure_initialized()
        return self._tracer


_registry = _TracerRegistry()


class ChallengeTracing:
    """Span helpers for challenge backend calls.

    No-op when OpenTelemetry is not installed. Codes and passwords are never
    attached to spans.
    """

    @staticmethod
    @contextmanager
    def span(
        operation: str,
        *,
        purpose: str = "unknown",
        channel: str = "unknown",
        attributes: dict[str, Any] | None = None,
    ) -> Generator[Any, None, None]:
        """Context manager for a traced challenge operation.

        Yields:
            Span object or None if tracing disabled.
        """
        tracer = _registry.tracer
        if not tracer:
            yield None
            return

        with tracer.start_as_current_span(f"challenge.{operation}") as span:
            try:
                span.set_attribute("challenge.operation", operation)
                span.set_attribute("challenge.purpose", purpose)
                span.set_attribute("challenge.channel", channel)

                if attributes:
                    for key, value in attributes.items():
                        span.set_attribute(key, str(value))

                yield span

            except Exception as e:
                if Status and StatusCode:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                raise

    @staticmethod
    def set_result(span: Any, result: str) -> None:
        """Attach the typed outcome to a span."""
        if span is None:
            return
        try:
            span.set_attribute("challenge.result", result)
        except Exception:
            _logger.debug("Failed to set span result")


__all__: list[str] = ["ChallengeTracing", "HAS_OTEL"]
