"""Engine configuration.

All knobs are frozen dataclasses handed to constructors; the library never
reads the environment itself.
"""

from __future__ import annotations

from dataclasses import dataclass

from myaccounts_core.primitives.exceptions import ValidationError


@dataclass(frozen=True)
class ChallengeConfig:
    """Challenge session configuration.

    Attributes:
        code_length: Number of digit slots in the code entry.
        cooldown_seconds: Seconds a resend stays blocked after a dispatch.
        lockout_threshold: Failed verifications that trigger a lockout.
        lockout_seconds: Lockout duration.
        expired_code_resets_cooldown: When the backend reports an expired
            code, release the resend cooldown so a new code can be requested
            immediately.
    """

    code_length: int = 6
    cooldown_seconds: int = 30
    lockout_threshold: int = 5
    lockout_seconds: int = 30
    expired_code_resets_cooldown: bool = True

    def __post_init__(self) -> None:
        errors: dict[str, list[str]] = {}
        if self.code_length < 1:
            errors["code_length"] = ["must be positive"]
        if self.cooldown_seconds < 0:
            errors["cooldown_seconds"] = ["must not be negative"]
        if self.lockout_seconds < 0:
            errors["lockout_seconds"] = ["must not be negative"]
        if self.lockout_threshold < 1:
            errors["lockout_threshold"] = ["must be positive"]
        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class TrustConfig:
    """Trusted-device configuration."""

    trust_days: int = 30

    def __post_init__(self) -> None:
        if self.trust_days < 1:
            raise ValidationError({"trust_days": ["must be positive"]})


@dataclass(frozen=True)
class ReauthConfig:
    """Step-up re-authentication configuration.

    Attributes:
        assertion_ttl_seconds: How long a granted re-auth assertion stays
            usable for the guarded action.
    """

    assertion_ttl_seconds: int = 300

    def __post_init__(self) -> None:
        if self.assertion_ttl_seconds < 1:
            raise ValidationError({"assertion_ttl_seconds": ["must be positive"]})


@dataclass(frozen=True)
class RecoveryConfig:
    """Recovery code generation configuration."""

    code_length: int = 8
    batch_size: int = 10

    def __post_init__(self) -> None:
        errors: dict[str, list[str]] = {}
        if self.code_length < 1:
            errors["code_length"] = ["must be positive"]
        if self.batch_size < 1:
            errors["batch_size"] = ["must be positive"]
        if errors:
            raise ValidationError(errors)


__all__: list[str] = [
    "ChallengeConfig",
    "TrustConfig",
    "ReauthConfig",
    "RecoveryConfig",
]
