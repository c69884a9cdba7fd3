"""Challenge observability helpers for metrics and tracing.

Both integrations are optional: without ``prometheus_client`` or
``opentelemetry`` installed every helper is a no-op.
"""

from __future__ import annotations

from .metrics import ChallengeMetrics, record_lockout
from .tracing import HAS_OTEL, ChallengeTracing

__all__: list[str] = [
    "ChallengeMetrics",
    "record_lockout",
    "ChallengeTracing",
    "HAS_OTEL",
]
