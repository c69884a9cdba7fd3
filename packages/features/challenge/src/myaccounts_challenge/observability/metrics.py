"""Challenge metrics helpers for Prometheus integration.

Usage:
    ```python
    from myaccounts_challenge.observability import ChallengeMetrics

    with ChallengeMetrics.operation("verify", purpose="login_mfa", channel="sms"):
        verdict = await verifier.verify_code(...)
    ```
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Generator

    from ..audit.events import ChallengeAuditEvent


class _ChallengeMetricsRegistry:
    """Registry for challenge Prometheus metrics.

    Lazily initializes Prometheus metrics on first use.
    """

    def __init__(self) -> None:
        self._histogram: Any = None
        self._counter: Any = None
        self._lockout_counter: Any = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        try:
            from prometheus_client import Counter, Histogram

            self._histogram = Histogram(
                "challenge_operation_duration_seconds",
                "Challenge backend call duration",
                ["purpose", "channel", "operation"],
            )
            self._counter = Counter(
                "challenge_operations_total",
                "Challenge operation count",
                ["purpose", "channel", "operation", "result"],
            )
            self._lockout_counter = Counter(
                "challenge_lockouts_total",
                "Challenges locked after repeated failures",
                ["purpose"],
            )
        except ImportError:
            _logger.debug("prometheus_client not available, metrics disabled")

        self._initialized = True

    @property
    def histogram(self) -> Any:
        self._ensure_initialized()
        return self._histogram

    @property
    def counter(self) -> Any:
        self._ensure_initialized()
        return self._counter

    @property
    def lockout_counter(self) -> Any:
        self._ensure_initialized()
        return self._lockout_counter


_registry = _ChallengeMetricsRegistry()


class ChallengeMetrics:
    """Metrics helpers for challenge operations.

    Integrates with Prometheus when available and is a no-op otherwise.
    """

    @staticmethod
    @contextmanager
    def operation(
        operation: str,
        *,
        purpose: str = "unknown",
        channel: str = "unknown",
    ) -> Generator[None, None, None]:
        """Time a backend call (dispatch, verify, redeem, regenerate).

        Args:
            operation: Operation name.
            purpose: Challenge purpose value.
            channel: Channel value.
        """
        result = "success"
        start = time.monotonic()

        try:
            yield
        except Exception:
            result = "error"
            raise
        finally:
            duration = time.monotonic() - start

            if _registry.histogram:
                try:
                    _registry.histogram.labels(
                        purpose=purpose,
                        channel=channel,
                        operation=operation,
                    ).observe(duration)
                except Exception:
                    _logger.debug("Failed to record histogram")

            if _registry.counter:
                try:
                    _registry.counter.labels(
                        purpose=purpose,
                        channel=channel,
                        operation=operation,
                        result=result,
                    ).inc()
                except Exception:
                    _logger.debug("Failed to record counter")

    @staticmethod
    def record_event(event: ChallengeAuditEvent) -> None:
        """Count an audit event."""
        if not _registry.counter:
            return

        try:
            _registry.counter.labels(
                purpose=event.purpose or "unknown",
                channel=event.channel or "unknown",
                operation=event.event_type.value,
                result="success" if event.success else "failure",
            ).inc()
        except Exception:
            _logger.debug("Failed to record audit event metric")


def record_lockout(purpose: str) -> None:
    """Count a lockout."""
    if _registry.lockout_counter:
        try:
            _registry.lockout_counter.labels(purpose=purpose).inc()
        except Exception:
            _logger.debug("Failed to record lockout metric")


__all__: list[str] = ["ChallengeMetrics", "record_lockout"]
