"""Step-up re-authentication.

A sensitive action (regenerating recovery codes, changing a password,
removing a device) asks the user to confirm their identity again. The
confirmation is a ``ChallengeSession`` whose purpose is step-up and which
additionally offers a password pseudo-channel. Success yields a
``ReauthAssertion`` that is valid for a few minutes and only for the action
it was granted for. Device trust never exempts a step-up.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from myaccounts_core.domain.value_object import ValueObject
from myaccounts_core.primitives.id_generator import UUID4Generator

from .audit.events import ChallengeEventType
from .channels import ChallengePurpose, Channel, ChannelCatalog
from .config import ChallengeConfig, ReauthConfig
from .exceptions import ReauthRequiredError
from .ports import CodeVerdict, PasswordVerdict
from .session import ChallengeSession

if TYPE_CHECKING:
    from .clock import Clock
    from .ports import (
        IChallengeAuditStore,
        ICodeDeliveryGateway,
        ICodeVerifier,
        IPasswordVerifier,
    )

logger = logging.getLogger(__name__)


class ReauthAssertion(ValueObject):
    """Proof of a recent re-authentication for one action.

    Attributes:
        assertion_id: Unique id of the grant.
        identity: Identity that re-authenticated.
        action: Sensitive action the grant covers.
        channel: Channel value used to re-authenticate.
        issued_at: When the step-up completed.
        expires_at: When the grant stops being usable.
    """

    assertion_id: str
    identity: str
    action: str
    channel: str
    issued_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return self.issued_at <= now < self.expires_at

    def remaining_seconds(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds()))

    def covers(self, identity: str, action: str, now: datetime) -> bool:
        return (
            self.identity == identity and self.action == action and self.is_valid(now)
        )


class StepUpReauthenticator(ChallengeSession):
    """Challenge session for step-up re-authentication.

    Same lockout and cooldown semantics as any other session. The password
    channel is checked by ``password_verifier`` and needs no dispatch; without
    a password verifier the password channel is not offered.

    Example:
        ```python
        step_up = StepUpReauthenticator(
            "u1",
            action="regenerate_recovery_codes",
            delivery=backend,
            verifier=backend,
            password_verifier=passwords,
        )
        step_up.enter_password("hunter2")
        result = await step_up.submit()
        if result.ok:
            codes = await engine.regenerate_recovery_codes("u1", step_up.assertion)
        ```
    """

    def __init__(
        self,
        identity: str,
        *,
        action: str,
        delivery: ICodeDeliveryGateway,
        verifier: ICodeVerifier,
        password_verifier: IPasswordVerifier | None = None,
        catalog: ChannelCatalog | None = None,
        allowed_channels: Iterable[Channel] | None = None,
        initial_channel: Channel | None = None,
        config: ChallengeConfig | None = None,
        reauth_config: ReauthConfig | None = None,
        clock: Clock | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        self.action = action
        self.reauth_config = reauth_config or ReauthConfig()
        self.assertion: ReauthAssertion | None = None
        self._password_verifier = password_verifier
        if password_verifier is None:
            offered = (
                allowed_channels
                if allowed_channels is not None
                else (catalog or ChannelCatalog()).available_channels(
                    ChallengePurpose.STEP_UP_REAUTH
                )
            )
            allowed_channels = tuple(c for c in offered if not c.is_password)
        super().__init__(
            identity,
            ChallengePurpose.STEP_UP_REAUTH,
            delivery=delivery,
            verifier=verifier,
            catalog=catalog,
            allowed_channels=allowed_channels,
            initial_channel=initial_channel,
            config=config,
            clock=clock,
            audit_store=audit_store,
        )

    def _default_channel(self) -> Channel | None:
        if Channel.PASSWORD in self.channels:
            return Channel.PASSWORD
        return None

    async def _check(self, channel: Channel, secret: str) -> CodeVerdict:
        if not channel.is_password or self._password_verifier is None:
            return await super()._check(channel, secret)
        verdict = await self._password_verifier.verify_password(self.identity, secret)
        if verdict is PasswordVerdict.VERIFIED:
            return CodeVerdict.VERIFIED
        return CodeVerdict.INCORRECT

    async def _on_verified(self, now: datetime) -> None:
        channel = self.selected_channel.value if self.selected_channel else "unknown"
        if self.verified_via == "recovery_code":
            channel = "recovery_code"
        self.assertion = ReauthAssertion(
            assertion_id=UUID4Generator().next_id(),
            identity=self.identity,
            action=self.action,
            channel=channel,
            issued_at=now,
            expires_at=now
            + timedelta(seconds=self.reauth_config.assertion_ttl_seconds),
        )
        logger.info(
            "Step-up for %s granted to %s until %s",
            self.action,
            self.identity,
            self.assertion.expires_at.isoformat(),
        )
        await self._audit(
            ChallengeEventType.REAUTH_GRANTED,
            channel=self.selected_channel,
            metadata={
                "action": self.action,
                "via": self.verified_via,
                "expires_at": self.assertion.expires_at.isoformat(),
            },
        )


def require_reauth(
    assertion: ReauthAssertion | None,
    identity: str,
    action: str,
    now: datetime,
) -> ReauthAssertion:
    """Guard a sensitive action.

    Returns:
        The assertion, when it covers ``identity`` and ``action`` at ``now``.

    Raises:
        ReauthRequiredError: If the assertion is missing, expired or was
            granted for another identity or action.
    """
    if assertion is None:
        raise ReauthRequiredError(f"Re-authenticate to {action}", action=action)
    if assertion.identity != identity or assertion.action != action:
        raise ReauthRequiredError(
            f"Re-authentication was granted for another action than {action}",
            action=action,
        )
    if not assertion.is_valid(now):
        raise ReauthRequiredError(
            f"Re-authentication for {action} has expired", action=action
        )
    return assertion


__all__: list[str] = ["ReauthAssertion", "StepUpReauthenticator", "require_reauth"]
