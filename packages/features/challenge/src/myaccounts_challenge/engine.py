"""ChallengeEngine: the single entry point screens use.

Wires the collaborators once and opens sessions for every purpose: sign-in
MFA, phone and email verification, and step-up re-authentication. Also owns
the device-local state (trust, channel preference, cached recovery codes).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .adapters.memory import InMemoryDeviceStore
from .audit.events import ChallengeEventType, challenge_event
from .audit.recorder import emit_event
from .channels import ChallengePurpose, Channel, ChannelCatalog
from .clock import Clock, SystemClock
from .config import ChallengeConfig, ReauthConfig, TrustConfig
from .device import ChannelPreferenceStore, DeviceMarkerProvider, TrustedDeviceMarker
from .exceptions import CallerMisuseError
from .recovery import RecoveryCodeManager, RecoveryFallback
from .session import ChallengeSession
from .state import ChallengeOutcome
from .stepup import StepUpReauthenticator
from .ticker import CooldownTicker

if TYPE_CHECKING:
    from .device import TrustedDeviceRecord
    from .ports import (
        IChallengeAuditStore,
        ICodeDeliveryGateway,
        ICodeVerifier,
        ILocalDeviceStore,
        IPasswordVerifier,
        IRecoveryCodeGateway,
    )
    from .recovery import RecoveryCodeSet, RecoveryResult
    from .stepup import ReauthAssertion

logger = logging.getLogger(__name__)


class ChallengeEngine:
    """Facade over sessions, recovery codes and device trust.

    Example:
        ```python
        engine = ChallengeEngine(
            delivery=backend,
            verifier=backend,
            password_verifier=passwords,
            recovery_gateway=recovery_backend,
            device_store=JsonFileDeviceStore("device.json"),
        )

        if await engine.needs_challenge("u1", ChallengePurpose.LOGIN_MFA):
            session = await engine.open_session("u1", ChallengePurpose.LOGIN_MFA)
            async with engine.ticker(session):
                ...
            await engine.finish_login(session, trust_device=True)
        ```
    """

    def __init__(
        self,
        *,
        delivery: ICodeDeliveryGateway,
        verifier: ICodeVerifier,
        password_verifier: IPasswordVerifier | None = None,
        recovery_gateway: IRecoveryCodeGateway | None = None,
        device_store: ILocalDeviceStore | None = None,
        catalog: ChannelCatalog | None = None,
        config: ChallengeConfig | None = None,
        trust_config: TrustConfig | None = None,
        reauth_config: ReauthConfig | None = None,
        clock: Clock | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        self._delivery = delivery
        self._verifier = verifier
        self._password_verifier = password_verifier
        self.catalog = catalog or ChannelCatalog()
        self.config = config or ChallengeConfig()
        self.reauth_config = reauth_config or ReauthConfig()
        self.clock = clock or SystemClock()
        self._audit_store = audit_store

        store = device_store or InMemoryDeviceStore(self.clock)
        self.device_store = store
        self.markers = DeviceMarkerProvider(store)
        self.trust = TrustedDeviceMarker(
            store,
            clock=self.clock,
            config=trust_config,
            markers=self.markers,
            audit_store=audit_store,
        )
        self.preferences = ChannelPreferenceStore(store)

        self.recovery_codes: RecoveryCodeManager | None = None
        self.recovery: RecoveryFallback | None = None
        if recovery_gateway is not None:
            self.recovery_codes = RecoveryCodeManager(
                recovery_gateway, store, clock=self.clock, audit_store=audit_store
            )
            self.recovery = RecoveryFallback(
                recovery_gateway,
                manager=self.recovery_codes,
                audit_store=audit_store,
            )

    # ─────────────────────────────────────────────────────────────
    # Opening sessions
    # ─────────────────────────────────────────────────────────────

    async def needs_challenge(self, identity: str, purpose: ChallengePurpose) -> bool:
        """False only for sign-in MFA on a device the identity trusts."""
        if purpose is not ChallengePurpose.LOGIN_MFA:
            return True
        trusted = await self.trust.is_trusted(self.clock.now(), identity=identity)
        if trusted:
            logger.info("Skipping sign-in MFA for %s on a trusted device", identity)
        return not trusted

    async def open_session(
        self,
        identity: str,
        purpose: ChallengePurpose,
        *,
        allowed_channels: Iterable[Channel] | None = None,
        initial_channel: Channel | None = None,
    ) -> ChallengeSession:
        """Open a challenge for sign-in MFA or contact verification.

        The channel last used for ``purpose`` on this device is preselected
        when ``initial_channel`` is not given and it is still allowed.

        Raises:
            CallerMisuseError: For step-up; use ``open_step_up``.
            ChannelCatalogError: If no channel is available.
        """
        if purpose is ChallengePurpose.STEP_UP_REAUTH:
            raise CallerMisuseError("Use open_step_up for step-up re-authentication")

        allowed = tuple(allowed_channels) if allowed_channels is not None else None
        channel = initial_channel or await self._preferred(purpose, allowed)
        return ChallengeSession(
            identity,
            purpose,
            delivery=self._delivery,
            verifier=self._verifier,
            catalog=self.catalog,
            allowed_channels=allowed,
            initial_channel=channel,
            config=self.config,
            clock=self.clock,
            audit_store=self._audit_store,
        )

    async def open_step_up(
        self,
        identity: str,
        action: str,
        *,
        allowed_channels: Iterable[Channel] | None = None,
        initial_channel: Channel | None = None,
    ) -> StepUpReauthenticator:
        """Open a step-up challenge guarding ``action``.

        Device trust is never consulted. Without a password verifier the
        password channel is not offered.
        """
        return StepUpReauthenticator(
            identity,
            action=action,
            delivery=self._delivery,
            verifier=self._verifier,
            password_verifier=self._password_verifier,
            catalog=self.catalog,
            allowed_channels=allowed_channels,
            initial_channel=initial_channel,
            config=self.config,
            reauth_config=self.reauth_config,
            clock=self.clock,
            audit_store=self._audit_store,
        )

    def ticker(self, session: ChallengeSession) -> CooldownTicker:
        """A cooldown ticker owned by the caller (use ``async with``)."""
        return CooldownTicker(session)

    async def _preferred(
        self, purpose: ChallengePurpose, allowed: tuple[Channel, ...] | None
    ) -> Channel | None:
        remembered = await self.preferences.recall(purpose)
        if remembered is None:
            return None
        if remembered not in self.catalog.available_channels(purpose):
            return None
        if allowed is not None and remembered not in allowed:
            return None
        return remembered

    # ─────────────────────────────────────────────────────────────
    # Finishing sessions
    # ─────────────────────────────────────────────────────────────

    async def remember_channel(self, session: ChallengeSession) -> None:
        """Store the channel a verified session used, for next time."""
        if session.outcome is not ChallengeOutcome.VERIFIED:
            return
        if session.selected_channel is None or session.verified_via == "recovery_code":
            return
        await self.preferences.remember(session.purpose, session.selected_channel)

    async def finish_login(
        self, session: ChallengeSession, *, trust_device: bool = False
    ) -> TrustedDeviceRecord | None:
        """Post-success bookkeeping for sign-in MFA.

        Remembers the channel and, when the user opted in, trusts this
        device for the configured window.

        Raises:
            CallerMisuseError: If the session is not a verified sign-in MFA.
        """
        if session.purpose is not ChallengePurpose.LOGIN_MFA:
            raise CallerMisuseError("Only sign-in MFA can finish a login")
        if session.outcome is not ChallengeOutcome.VERIFIED:
            raise CallerMisuseError("The challenge has not been verified")

        await self.remember_channel(session)
        if not trust_device:
            return None
        return await self.trust.mark_trusted(identity=session.identity)

    async def abandon(self, session: ChallengeSession) -> None:
        """Abandon ``session`` and record it. No-op when already terminal."""
        if session.is_terminal:
            return
        session.abandon()
        await emit_event(
            self._audit_store,
            challenge_event(
                ChallengeEventType.CHALLENGE_ABANDONED,
                session.identity,
                purpose=session.purpose,
                channel=session.selected_channel,
                timestamp=self.clock.now(),
                metadata={
                    "session_id": session.session_id,
                    "attempt_count": session.attempt_count,
                },
            ),
        )

    # ─────────────────────────────────────────────────────────────
    # Recovery codes
    # ─────────────────────────────────────────────────────────────

    def _require_recovery(self) -> tuple[RecoveryFallback, RecoveryCodeManager]:
        if self.recovery is None or self.recovery_codes is None:
            raise CallerMisuseError("No recovery-code backend is configured")
        return self.recovery, self.recovery_codes

    async def redeem_recovery_code(
        self, session: ChallengeSession, code: str
    ) -> RecoveryResult:
        fallback, _ = self._require_recovery()
        return await fallback.redeem(session, code)

    async def fetch_recovery_codes(self, identity: str) -> RecoveryCodeSet | None:
        _, manager = self._require_recovery()
        return await manager.fetch(identity)

    async def regenerate_recovery_codes(
        self, identity: str, assertion: ReauthAssertion | None
    ) -> RecoveryCodeSet | None:
        """Issue a new batch; needs a step-up for ``regenerate_recovery_codes``.

        Raises:
            ReauthRequiredError: Without a valid assertion.
        """
        _, manager = self._require_recovery()
        return await manager.regenerate(identity, assertion)


__all__: list[str] = ["ChallengeEngine"]
