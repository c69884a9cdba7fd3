"""Wall-clock abstraction.

Lockout, trust and re-auth expiry are absolute UTC timestamps compared
against ``Clock.now()``. Injecting the clock keeps those comparisons
deterministic in tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current time (timezone-aware UTC)."""

    def now(self) -> datetime: ...


class SystemClock(Clock):
    """Clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__: list[str] = ["Clock", "SystemClock"]
