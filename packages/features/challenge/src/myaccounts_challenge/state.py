"""Session states and typed operation results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChallengeState(Enum):
    """Where a challenge session is in its lifecycle.

    ``LOCKED`` is a reporting state: it is shown while the lockout is active
    and falls back to ``AWAITING_CODE`` once it expires.
    """

    IDLE = "idle"
    AWAITING_DISPATCH = "awaiting_dispatch"
    AWAITING_CODE = "awaiting_code"
    VERIFYING = "verifying"
    LOCKED = "locked"
    VERIFIED = "verified"
    ABANDONED = "abandoned"


class ChallengeOutcome(Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    ABANDONED = "abandoned"


class DispatchStatus(Enum):
    NOT_SENT = "not_sent"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchState:
    """Delivery state of the code for the current channel.

    Attributes:
        status: NOT_SENT, SENT or FAILED.
        sent_at: When the backend accepted the dispatch (SENT only).
    """

    status: DispatchStatus = DispatchStatus.NOT_SENT
    sent_at: datetime | None = None

    @classmethod
    def not_sent(cls) -> DispatchState:
        return cls()

    @classmethod
    def sent(cls, at: datetime) -> DispatchState:
        return cls(status=DispatchStatus.SENT, sent_at=at)

    @classmethod
    def failed(cls) -> DispatchState:
        return cls(status=DispatchStatus.FAILED)


# ═══════════════════════════════════════════════════════════════
# OPERATION RESULTS
# ═══════════════════════════════════════════════════════════════


class DispatchResultStatus(Enum):
    SENT = "sent"
    DELIVERY_FAILED = "delivery_failed"
    STALE = "stale"


@dataclass(frozen=True)
class DispatchResult:
    """Result of ``ChallengeSession.dispatch``.

    ``DELIVERY_FAILED`` is retryable and never consumes an attempt.
    ``STALE`` means the session moved on (abandoned or switched channel)
    while the call was outstanding; the response was discarded.
    """

    status: DispatchResultStatus
    cooldown_seconds: int = 0
    error: str | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is DispatchResultStatus.SENT


class VerificationStatus(Enum):
    VERIFIED = "verified"
    INCORRECT = "incorrect"
    EXPIRED = "expired"
    LOCKED = "locked"
    LOCKED_OUT = "locked_out"
    UNAVAILABLE = "unavailable"
    STALE = "stale"


@dataclass(frozen=True)
class VerificationResult:
    """Result of ``ChallengeSession.submit``.

    Attributes:
        status: VERIFIED; INCORRECT/EXPIRED (attempt consumed); LOCKED (this
            failure triggered the lockout); LOCKED_OUT (rejected locally, no
            backend call); UNAVAILABLE (backend fault, no attempt consumed);
            STALE (response discarded).
        attempt_count: Failed attempts after this submission.
        lock_remaining_seconds: Seconds left on the lockout, 0 if none.
        message: User-facing copy for the banner.
    """

    status: VerificationStatus
    attempt_count: int = 0
    lock_remaining_seconds: int = 0
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.VERIFIED


__all__: list[str] = [
    "ChallengeState",
    "ChallengeOutcome",
    "DispatchStatus",
    "DispatchState",
    "DispatchResultStatus",
    "DispatchResult",
    "VerificationStatus",
    "VerificationResult",
]
