"""myaccounts-challenge: multi-channel authentication-challenge engine.

One engine drives every screen that asks for a one-time code: sign-in MFA,
phone and email verification, and step-up re-authentication before a
sensitive action. It owns channel selection, code entry, resend cooldowns,
attempt lockout, the recovery-code escape hatch and the trusted-device flag.
Code delivery and verification, password checks and recovery-code storage
belong to the backend and are consumed through the ports in ``ports``.

Example:
    ```python
    from myaccounts_challenge import ChallengeEngine, ChallengePurpose, Channel

    engine = ChallengeEngine(delivery=backend, verifier=backend)
    session = await engine.open_session("u1", ChallengePurpose.LOGIN_MFA)
    session.select_channel(Channel.SMS)
    await session.dispatch()
    session.paste("123456")
    result = await session.submit()
    ```
"""

from __future__ import annotations

from .audit import ChallengeAuditEvent, ChallengeEventType, InMemoryChallengeAuditStore
from .channels import ChallengePurpose, Channel, ChannelCatalog, ChannelInfo
from .clock import Clock, SystemClock
from .code_entry import CodeEntry
from .config import ChallengeConfig, ReauthConfig, RecoveryConfig, TrustConfig
from .cooldown import CooldownTimer
from .device import (
    ChannelPreferenceStore,
    DeviceMarkerProvider,
    TrustedDeviceMarker,
    TrustedDeviceRecord,
)
from .engine import ChallengeEngine
from .exceptions import (
    CallerMisuseError,
    ChallengeClosedError,
    ChallengeError,
    ChannelCatalogError,
    ChannelNotAllowedError,
    CodeNotSentError,
    CooldownActiveError,
    DeviceStoreError,
    IncompleteCodeError,
    NotResendableError,
    ReauthRequiredError,
    RequestInFlightError,
)
from .lockout import AttemptLimiter, FailureOutcome, LockoutState
from .masking import mask_email, mask_phone
from .ports import (
    CodeVerdict,
    DeliveryReceipt,
    IChallengeAuditStore,
    ICodeDeliveryGateway,
    ICodeVerifier,
    ILocalDeviceStore,
    IPasswordVerifier,
    IRecoveryCodeGateway,
    PasswordVerdict,
    RecoveryVerdict,
)
from .recovery import (
    RecoveryCode,
    RecoveryCodeManager,
    RecoveryCodeSet,
    RecoveryFallback,
    RecoveryResult,
    RecoveryStatus,
    normalize_recovery_code,
)
from .session import ChallengeSession
from .state import (
    ChallengeOutcome,
    ChallengeState,
    DispatchResult,
    DispatchResultStatus,
    DispatchState,
    DispatchStatus,
    VerificationResult,
    VerificationStatus,
)
from .stepup import ReauthAssertion, StepUpReauthenticator, require_reauth
from .ticker import CooldownTicker

__all__: list[str] = [
    # Engine
    "ChallengeEngine",
    "ChallengeSession",
    "StepUpReauthenticator",
    "ReauthAssertion",
    "require_reauth",
    "CooldownTicker",
    # Building blocks
    "ChallengePurpose",
    "Channel",
    "ChannelInfo",
    "ChannelCatalog",
    "CodeEntry",
    "CooldownTimer",
    "AttemptLimiter",
    "LockoutState",
    "FailureOutcome",
    "mask_email",
    "mask_phone",
    # State and results
    "ChallengeState",
    "ChallengeOutcome",
    "DispatchStatus",
    "DispatchState",
    "DispatchResult",
    "DispatchResultStatus",
    "VerificationResult",
    "VerificationStatus",
    # Recovery
    "RecoveryCode",
    "RecoveryCodeSet",
    "RecoveryCodeManager",
    "RecoveryFallback",
    "RecoveryResult",
    "RecoveryStatus",
    "normalize_recovery_code",
    # Device
    "TrustedDeviceMarker",
    "TrustedDeviceRecord",
    "DeviceMarkerProvider",
    "ChannelPreferenceStore",
    # Config
    "ChallengeConfig",
    "TrustConfig",
    "ReauthConfig",
    "RecoveryConfig",
    "Clock",
    "SystemClock",
    # Ports
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
    # Audit
    "ChallengeEventType",
    "ChallengeAuditEvent",
    "InMemoryChallengeAuditStore",
    # Exceptions
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

__version__ = "0.1.0"
