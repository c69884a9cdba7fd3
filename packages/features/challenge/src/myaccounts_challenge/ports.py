"""Collaborator ports (protocols) consumed by the challenge engine.

The engine never delivers codes, checks codes, checks passwords or stores
recovery codes itself. Applications implement these ports against their
backend; the ``adapters`` package ships in-memory and file-backed versions
for development and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .audit.events import ChallengeAuditEvent, ChallengeEventType
    from .channels import ChallengePurpose, Channel
    from .recovery.models import RecoveryCodeSet


# ═══════════════════════════════════════════════════════════════
# BACKEND VERDICTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DeliveryReceipt:
    """Answer of the code-delivery collaborator.

    Attributes:
        accepted: True when the backend queued the code for delivery.
        error: Backend reason when not accepted.
    """

    accepted: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> DeliveryReceipt:
        return cls(accepted=True)

    @classmethod
    def failed(cls, error: str) -> DeliveryReceipt:
        return cls(accepted=False, error=error)


class CodeVerdict(Enum):
    """Backend answer for a one-time code."""

    VERIFIED = "verified"
    INCORRECT = "incorrect"
    EXPIRED = "expired"


class PasswordVerdict(Enum):
    """Backend answer for a password check."""

    VERIFIED = "verified"
    INCORRECT = "incorrect"


class RecoveryVerdict(Enum):
    """Backend answer for a recovery code."""

    VERIFIED = "verified"
    INVALID = "invalid"
    ALREADY_USED = "already_used"


# ═══════════════════════════════════════════════════════════════
# BACKEND COLLABORATORS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ICodeDeliveryGateway(Protocol):
    """Triggers delivery of a one-time code over SMS, WhatsApp or email."""

    async def dispatch_code(
        self,
        channel: Channel,
        purpose: ChallengePurpose,
        identity: str,
    ) -> DeliveryReceipt:
        """Ask the backend to send a fresh code.

        Args:
            channel: Delivery channel (never the authenticator app).
            purpose: Why the code is requested.
            identity: Target identity (user id, phone or email).

        Returns:
            DeliveryReceipt. Implementations may also raise on transport
            errors; the engine maps any exception to a delivery failure.
        """
        ...


@runtime_checkable
class ICodeVerifier(Protocol):
    """Backend authority on one-time code correctness."""

    async def verify_code(
        self,
        channel: Channel,
        purpose: ChallengePurpose,
        identity: str,
        code: str,
    ) -> CodeVerdict:
        """Check ``code`` for the identity/purpose/channel triple.

        Returns:
            CodeVerdict.VERIFIED, INCORRECT or EXPIRED.
        """
        ...


@runtime_checkable
class IPasswordVerifier(Protocol):
    """Password check used by step-up re-authentication only."""

    async def verify_password(self, identity: str, password: str) -> PasswordVerdict:
        """Check the identity's current password."""
        ...


@runtime_checkable
class IRecoveryCodeGateway(Protocol):
    """Backend for single-use recovery codes."""

    async def redeem_recovery_code(self, identity: str, code: str) -> RecoveryVerdict:
        """Consume ``code`` if it belongs to the identity's current batch."""
        ...

    async def fetch_recovery_code_set(self, identity: str) -> RecoveryCodeSet:
        """Return the identity's current batch."""
        ...

    async def regenerate_recovery_code_set(self, identity: str) -> RecoveryCodeSet:
        """Issue a new batch, invalidating every code of the previous one."""
        ...


# ═══════════════════════════════════════════════════════════════
# LOCAL DEVICE STORAGE PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ILocalDeviceStore(Protocol):
    """Key-value storage local to this device.

    Holds the trusted-device record, the device marker, cached recovery
    code sets and channel preferences. Never synced across devices.
    """

    async def store(
        self, key: str, data: dict[str, Any], ttl: int | None = None
    ) -> None:
        """Store data under ``key``.

        Args:
            key: Storage key.
            data: JSON-serialisable dictionary.
            ttl: Time-to-live in seconds (optional).
        """
        ...

    async def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve data, or None if missing or expired."""
        ...

    async def delete(self, key: str) -> None:
        """Delete ``key`` if present."""
        ...

    async def exists(self, key: str) -> bool:
        """True when ``key`` is present and not expired."""
        ...


# ═══════════════════════════════════════════════════════════════
# AUDIT PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IChallengeAuditStore(Protocol):
    """Storage for challenge security events."""

    async def record(self, event: ChallengeAuditEvent) -> None:
        """Record an audit event."""
        ...

    async def get_events(
        self,
        identity: str,
        *,
        event_types: list[ChallengeEventType] | None = None,
        limit: int = 100,
    ) -> list[ChallengeAuditEvent]:
        """Events for an identity, most recent first."""
        ...

    async def get_events_by_type(
        self,
        event_type: ChallengeEventType,
        *,
        limit: int = 100,
    ) -> list[ChallengeAuditEvent]:
        """Events of one type across identities, most recent first."""
        ...


__all__: list[str] = [
    "DeliveryReceipt",
    "CodeVerdict",
    "PasswordVerdict",
    "RecoveryVerdict",
    "ICodeDeliveryGateway",
    "ICodeVerifier",
    "IPasswordVerifier",
    "IRecoveryCodeGateway",
    "ILocalDeviceStore",
    "IChallengeAuditStore",
]
