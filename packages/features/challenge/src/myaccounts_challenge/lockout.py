"""Attempt-based lockout policy.

``AttemptLimiter`` is a pure policy over a ``LockoutState`` value: it never
stores anything itself. Lockout is tracked per (identity, purpose), so the
owning session keeps the state across channel switches.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

DEFAULT_THRESHOLD = 5
DEFAULT_LOCK_SECONDS = 30


@dataclass(frozen=True)
class LockoutState:
    """Failure bookkeeping for one challenge.

    Attributes:
        attempt_count: Failed verifications since creation or last success.
        lock_until: Absolute UTC instant until which verification is refused.
    """

    attempt_count: int = 0
    lock_until: datetime | None = None


@dataclass(frozen=True)
class FailureOutcome:
    """Result of ``AttemptLimiter.record_failure``.

    Attributes:
        state: The next lockout state.
        newly_locked: True when this failure is the one that set the lock.
    """

    state: LockoutState
    newly_locked: bool


class AttemptLimiter:
    """Counts failed verifications and imposes a timed lockout.

    Once ``attempt_count`` reaches ``threshold`` the lock is set
    ``lock_seconds`` out and the count stays at the threshold; the lock, not
    the count, gates retries. A failure after an expired lock therefore
    re-locks immediately.

    ``lock_until`` is only ever compared against the wall clock; it is never
    derived from a countdown, and a new lock never moves it earlier.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        lock_seconds: int = DEFAULT_LOCK_SECONDS,
    ) -> None:
        self.threshold = threshold
        self.lock_seconds = lock_seconds

    def record_failure(self, state: LockoutState, now: datetime) -> FailureOutcome:
        count = state.attempt_count + 1
        if count < self.threshold:
            return FailureOutcome(replace(state, attempt_count=count), False)

        lock_until = now + timedelta(seconds=self.lock_seconds)
        if state.lock_until is not None and state.lock_until > lock_until:
            lock_until = state.lock_until
        return FailureOutcome(
            LockoutState(attempt_count=self.threshold, lock_until=lock_until),
            True,
        )

    def record_success(self, state: LockoutState) -> LockoutState:
        return LockoutState()

    def is_locked(self, state: LockoutState, now: datetime) -> bool:
        return state.lock_until is not None and now < state.lock_until

    def remaining_seconds(self, state: LockoutState, now: datetime) -> int:
        """Whole seconds left on the lock, rounded up; 0 when unlocked.

        Capped at ``lock_seconds`` so a clock that jumped backwards cannot
        report a longer wait than the policy allows.
        """
        if not self.is_locked(state, now):
            return 0
        assert state.lock_until is not None
        left = math.ceil((state.lock_until - now).total_seconds())
        return max(1, min(left, self.lock_seconds))


__all__: list[str] = [
    "AttemptLimiter",
    "LockoutState",
    "FailureOutcome",
    "DEFAULT_THRESHOLD",
    "DEFAULT_LOCK_SECONDS",
]
