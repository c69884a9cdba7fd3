"""Audit events for challenge operations.

Every security-relevant transition of the engine produces one event:
dispatches, verdicts, lockouts, recovery redemptions, trust changes and
step-up grants. Caller misuse never produces one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from myaccounts_core.correlation import get_correlation_id

if TYPE_CHECKING:
    from ..channels import ChallengePurpose, Channel


class ChallengeEventType(Enum):
    """Types of challenge audit events.

    Event naming follows the pattern: `challenge.<resource>.<action>`
    """

    # Code events
    CODE_DISPATCHED = "challenge.code.dispatched"
    DISPATCH_FAILED = "challenge.code.dispatch_failed"
    CODE_VERIFIED = "challenge.code.verified"
    CODE_REJECTED = "challenge.code.rejected"

    # Lockout
    LOCKED_OUT = "challenge.session.locked"
    CHALLENGE_ABANDONED = "challenge.session.abandoned"

    # Recovery codes
    RECOVERY_REDEEMED = "challenge.recovery.redeemed"
    RECOVERY_REJECTED = "challenge.recovery.rejected"
    RECOVERY_REGENERATED = "challenge.recovery.regenerated"

    # Device trust
    DEVICE_TRUSTED = "challenge.device.trusted"
    DEVICE_TRUST_CLEARED = "challenge.device.trust_cleared"

    # Step-up
    REAUTH_GRANTED = "challenge.reauth.granted"


@dataclass(frozen=True)
class ChallengeAuditEvent:
    """Challenge audit event.

    Attributes:
        event_type: The type of event.
        identity: The identity being challenged.
        purpose: Challenge purpose value (e.g. ``login_mfa``).
        channel: Channel value (e.g. ``sms``), if any.
        timestamp: When the event occurred (UTC).
        success: Whether the operation succeeded.
        error_code: Machine-readable failure reason.
        correlation_id: Correlation ID of the surrounding journey.
        metadata: Additional event-specific data.
    """

    event_type: ChallengeEventType
    identity: str | None = None
    purpose: str | None = None
    channel: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_code: str | None = None
    correlation_id: str | None = field(default_factory=get_correlation_id)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate event data."""
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "UNKNOWN_ERROR")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "identity": self.identity,
            "purpose": self.purpose,
            "channel": self.channel,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "error_code": self.error_code,
            "correlation_id": self.correlation_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChallengeAuditEvent:
        """Create event from dictionary.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        event_type_str = data.get("event_type")
        if event_type_str is None:
            raise ValueError("Missing required 'event_type'")

        try:
            event_type = ChallengeEventType(event_type_str)
        except ValueError as e:
            raise ValueError(f"Invalid event_type: {event_type_str}") from e

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
        elif timestamp is None:
            timestamp = datetime.now(timezone.utc)

        return cls(
            event_type=event_type,
            identity=data.get("identity"),
            purpose=data.get("purpose"),
            channel=data.get("channel"),
            timestamp=timestamp,
            success=data.get("success", True),
            error_code=data.get("error_code"),
            correlation_id=data.get("correlation_id"),
            metadata=data.get("metadata", {}),
        )


def challenge_event(
    event_type: ChallengeEventType,
    identity: str,
    *,
    purpose: ChallengePurpose | None = None,
    channel: Channel | None = None,
    timestamp: datetime | None = None,
    success: bool = True,
    error_code: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ChallengeAuditEvent:
    """Build an event from engine enums."""
    return ChallengeAuditEvent(
        event_type=event_type,
        identity=identity,
        purpose=purpose.value if purpose is not None else None,
        channel=channel.value if channel is not None else None,
        timestamp=timestamp or datetime.now(timezone.utc),
        success=success,
        error_code=error_code,
        metadata=metadata or {},
    )


__all__: list[str] = [
    "ChallengeEventType",
    "ChallengeAuditEvent",
    "challenge_event",
]
