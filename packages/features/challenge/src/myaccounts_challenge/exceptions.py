"""Challenge-engine domain exceptions.

All challenge errors inherit from ChallengeError which extends DomainError
from myaccounts_core. Backend verdicts (incorrect code, delivery failure,
lockout) are NOT exceptions: they are reported as typed results. Exceptions
are reserved for caller misuse, which is rejected before any backend call.
"""

from __future__ import annotations

from myaccounts_core.primitives.exceptions import DomainError

# ═══════════════════════════════════════════════════════════════
# BASE CHALLENGE ERROR
# ═══════════════════════════════════════════════════════════════


class ChallengeError(DomainError):
    """Base class for all challenge-engine errors."""


class ChannelCatalogError(ChallengeError):
    """Raised when a purpose has no channels configured.

    This is a configuration fault of the caller, not a runtime condition.
    """


class DeviceStoreError(ChallengeError):
    """Raised when local device storage cannot be read or written."""


# ═══════════════════════════════════════════════════════════════
# CALLER MISUSE
# ═══════════════════════════════════════════════════════════════


class CallerMisuseError(ChallengeError):
    """Raised when an operation is invoked out of contract.

    Misuse is rejected synchronously, never reaches a backend collaborator
    and is never recorded as a security event.
    """


class IncompleteCodeError(CallerMisuseError):
    """Raised on submit while code slots (or the password) are still empty."""


class CodeNotSentError(CallerMisuseError):
    """Raised on submit for a dispatch channel before a code was sent."""


class ChannelNotAllowedError(CallerMisuseError):
    """Raised when selecting a channel the session does not allow."""


class ChallengeClosedError(CallerMisuseError):
    """Raised when mutating a session that is Verified or Abandoned."""


class RequestInFlightError(CallerMisuseError):
    """Raised when a dispatch/verify is requested while another is outstanding."""


class NotResendableError(CallerMisuseError):
    """Raised when a send is requested for a channel that has no delivery.

    The authenticator app (and the password pseudo-channel) generate or hold
    the secret locally, so there is nothing to send.
    """


class CooldownActiveError(CallerMisuseError):
    """Raised when a resend is requested before the cooldown has elapsed.

    Attributes:
        remaining_seconds: Seconds until a resend is permitted.
    """

    def __init__(
        self,
        message: str = "Resend is not yet permitted",
        remaining_seconds: int = 0,
    ) -> None:
        super().__init__(message)
        self.remaining_seconds = remaining_seconds


# ═══════════════════════════════════════════════════════════════
# STEP-UP
# ═══════════════════════════════════════════════════════════════


class ReauthRequiredError(ChallengeError):
    """Raised when a sensitive action lacks a valid step-up assertion.

    Attributes:
        action: The action that was being guarded.
    """

    def __init__(
        self,
        message: str = "Re-authentication required",
        action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.action = action


__all__: list[str] = [
    "ChallengeError",
    "ChannelCatalogError",
    "DeviceStoreError",
    "CallerMisuseError",
    "IncompleteCodeError",
    "CodeNotSentError",
    "ChannelNotAllowedError",
    "ChallengeClosedError",
    "RequestInFlightError",
    "NotResendableError",
    "CooldownActiveError",
    "ReauthRequiredError",
]
