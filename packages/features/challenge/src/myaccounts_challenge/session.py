"""ChallengeSession: the one-time-code state machine.

One session drives a single identity through channel selection, code
dispatch, code entry and verification for one purpose. Every screen that
asks for a code (sign-in MFA, phone/email verification, step-up) uses this
class with a different ``purpose``.

Concurrency model: single-threaded asyncio. ``dispatch()`` and ``submit()``
are the only suspension points; at most one of them is outstanding per
session. Each request carries a sequence number, and a response whose
number is no longer current (the session was abandoned or switched channel
meanwhile) is discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from myaccounts_core.primitives.id_generator import UUID4Generator

from .audit.events import ChallengeEventType, challenge_event
from .audit.recorder import emit_event
from .channels import ChallengePurpose, Channel, ChannelCatalog
from .clock import Clock, SystemClock
from .code_entry import CodeEntry
from .config import ChallengeConfig
from .cooldown import CooldownTimer
from .exceptions import (
    CallerMisuseError,
    ChallengeClosedError,
    ChannelCatalogError,
    ChannelNotAllowedError,
    CodeNotSentError,
    CooldownActiveError,
    IncompleteCodeError,
    NotResendableError,
    RequestInFlightError,
)
from .lockout import AttemptLimiter, LockoutState
from .observability import ChallengeMetrics, ChallengeTracing, record_lockout
from .ports import CodeVerdict, DeliveryReceipt
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

if TYPE_CHECKING:
    from .ports import IChallengeAuditStore, ICodeDeliveryGateway, ICodeVerifier

logger = logging.getLogger(__name__)

_TERMINAL = (ChallengeState.VERIFIED, ChallengeState.ABANDONED)


class ChallengeSession:
    """One in-progress verification for an identity and purpose.

    Example:
        ```python
        session = ChallengeSession(
            "u1",
            ChallengePurpose.LOGIN_MFA,
            delivery=backend,
            verifier=backend,
        )
        session.select_channel(Channel.SMS)
        await session.dispatch()
        session.enter_digit(0, "123456")
        result = await session.submit()
        if result.ok:
            ...
        ```
    """

    def __init__(
        self,
        identity: str,
        purpose: ChallengePurpose,
        *,
        delivery: ICodeDeliveryGateway,
        verifier: ICodeVerifier,
        catalog: ChannelCatalog | None = None,
        allowed_channels: Iterable[Channel] | None = None,
        initial_channel: Channel | None = None,
        config: ChallengeConfig | None = None,
        clock: Clock | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        """Open a session.

        Args:
            identity: Target identity.
            purpose: Why the challenge is opened.
            delivery: Code-delivery collaborator.
            verifier: Code-verification collaborator.
            catalog: Channel catalog (default catalog if omitted).
            allowed_channels: Further restricts the catalog's channels.
            initial_channel: Channel to preselect. Defaults to the
                authenticator app for LoginMfa when it is allowed.
            config: Timing and lockout constants.
            clock: Wall clock.
            audit_store: Where security events are recorded.

        Raises:
            ChannelCatalogError: If no channel is available for the purpose.
        """
        self.identity = identity
        self.purpose = purpose
        self.session_id = UUID4Generator().next_id()
        self.config = config or ChallengeConfig()
        self._delivery = delivery
        self._verifier = verifier
        self._clock = clock or SystemClock()
        self._audit_store = audit_store

        catalog = catalog or ChannelCatalog()
        channels = catalog.available_channels(purpose)
        if allowed_channels is not None:
            allowed = set(allowed_channels)
            channels = tuple(c for c in channels if c in allowed)
        if not channels:
            raise ChannelCatalogError(f"No channels available for {purpose.value}")
        self.channels: tuple[Channel, ...] = channels
        self.catalog = catalog

        self._limiter = AttemptLimiter(
            threshold=self.config.lockout_threshold,
            lock_seconds=self.config.lockout_seconds,
        )
        self.code = CodeEntry(self.config.code_length)
        self._password: str | None = None
        self.selected_channel: Channel | None = None
        self.dispatch_state = DispatchState.not_sent()
        self.lockout = LockoutState()
        self.outcome = ChallengeOutcome.PENDING
        self.cooldown: CooldownTimer | None = None
        self.last_error: str | None = None
        self.verified_at: datetime | None = None
        self.verified_via: str | None = None

        self._state = ChallengeState.IDLE
        self._request_seq = 0
        self._in_flight: int | None = None

        default = initial_channel or self._default_channel()
        if default is not None:
            self.select_channel(default)

    def _default_channel(self) -> Channel | None:
        if (
            self.purpose is ChallengePurpose.LOGIN_MFA
            and Channel.AUTHENTICATOR_APP in self.channels
        ):
            return Channel.AUTHENTICATOR_APP
        return None

    # ─────────────────────────────────────────────────────────────
    # Read-only views
    # ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> ChallengeState:
        if self._state in (ChallengeState.AWAITING_CODE, ChallengeState.LOCKED):
            if self.is_locked():
                return ChallengeState.LOCKED
            return ChallengeState.AWAITING_CODE
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in _TERMINAL

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    @property
    def attempt_count(self) -> int:
        return self.lockout.attempt_count

    @property
    def lock_until(self) -> datetime | None:
        return self.lockout.lock_until

    @property
    def code_digits(self) -> tuple[str | None, ...]:
        return self.code.digits

    def now(self) -> datetime:
        return self._clock.now()

    def is_locked(self) -> bool:
        return self._limiter.is_locked(self.lockout, self._clock.now())

    def lock_remaining_seconds(self) -> int:
        return self._limiter.remaining_seconds(self.lockout, self._clock.now())

    @property
    def cooldown_remaining_seconds(self) -> int:
        return self.cooldown.remaining_seconds if self.cooldown else 0

    @property
    def can_resend(self) -> bool:
        """True when a (re)send of the current channel would be accepted."""
        channel = self.selected_channel
        return (
            not self.is_terminal
            and channel is not None
            and channel.requires_dispatch
            and self._in_flight is None
            and (self.cooldown is None or self.cooldown.can_send())
        )

    def help_text(self, destination: str | None = None) -> str:
        if self.selected_channel is None:
            return ""
        return self.catalog.describe(self.selected_channel, destination)

    # ─────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────

    def select_channel(self, channel: Channel) -> None:
        """Switch to ``channel``.

        Clears the code entry, the banner and the dispatch state, and
        discards the previous channel's cooldown. Lockout state is kept:
        it belongs to the identity and purpose, not the channel. A request
        still outstanding for the previous channel becomes stale.

        Raises:
            ChallengeClosedError: If the session is terminal.
            ChannelNotAllowedError: If ``channel`` is not offered.
        """
        self._ensure_open()
        if channel not in self.channels:
            raise ChannelNotAllowedError(
                f"{channel.display_name} is not available for {self.purpose.value}"
            )
        if channel is self.selected_channel:
            return

        if self._in_flight is not None:
            logger.debug(
                "Channel switch on session %s discards outstanding request",
                self.session_id,
            )
            self._invalidate_requests()

        self._release_cooldown()
        self.selected_channel = channel
        self.code.clear()
        self._password = None
        self.dispatch_state = DispatchState.not_sent()
        self.last_error = None
        self._state = (
            ChallengeState.AWAITING_DISPATCH
            if channel.requires_dispatch
            else ChallengeState.AWAITING_CODE
        )

    def enter_digit(self, index: int, value: str) -> int:
        """Type (or paste) into slot ``index``; returns the next focus slot."""
        self._ensure_open()
        self._ensure_no_request()
        self._require_code_channel()
        return self.code.enter(index, value)

    def paste(self, value: str, index: int = 0) -> int:
        return self.enter_digit(index, value)

    def backspace(self, index: int) -> int:
        self._ensure_open()
        self._ensure_no_request()
        self._require_code_channel()
        return self.code.backspace(index)

    def enter_password(self, password: str) -> None:
        self._ensure_open()
        self._ensure_no_request()
        if self._require_channel() is not Channel.PASSWORD:
            raise CallerMisuseError("The selected channel does not take a password")
        self._password = password

    def tick(self) -> None:
        """Advance the resend cooldown by one second."""
        if self.cooldown is not None:
            self.cooldown.tick()

    def abandon(self) -> None:
        """Close the session without success.

        Safe at any time, including while a request is outstanding: that
        request's response will be discarded. No-op on a terminal session.
        """
        if self.is_terminal:
            return
        self._invalidate_requests()
        self._release_cooldown()
        self._password = None
        self.outcome = ChallengeOutcome.ABANDONED
        self._state = ChallengeState.ABANDONED
        logger.debug("Challenge session %s abandoned", self.session_id)

    # ─────────────────────────────────────────────────────────────
    # Backend calls
    # ─────────────────────────────────────────────────────────────

    async def dispatch(self) -> DispatchResult:
        """Ask the backend to send (or resend) a code on the current channel.

        Raises:
            ChallengeClosedError: If the session is terminal.
            NotResendableError: If the channel has nothing to send.
            RequestInFlightError: If another request is outstanding.
            CooldownActiveError: If the resend cooldown is still running.
        """
        self._ensure_open()
        channel = self._require_channel()
        if not channel.requires_dispatch:
            raise NotResendableError(
                f"{channel.display_name} codes are not sent, nothing to dispatch"
            )
        if self._in_flight is not None:
            raise RequestInFlightError("A request is already in progress")
        if self.cooldown is not None and not self.cooldown.can_send():
            raise CooldownActiveError(
                f"Resend in {self.cooldown.remaining_seconds}s",
                remaining_seconds=self.cooldown.remaining_seconds,
            )

        seq = self.begin_request()
        with ChallengeTracing.span(
            "dispatch", purpose=self.purpose.value, channel=channel.value
        ) as span:
            try:
                with ChallengeMetrics.operation(
                    "dispatch", purpose=self.purpose.value, channel=channel.value
                ):
                    receipt = await self._delivery.dispatch_code(
                        channel, self.purpose, self.identity
                    )
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Code delivery over %s failed for session %s",
                    channel.value,
                    self.session_id,
                    exc_info=True,
                )
                receipt = DeliveryReceipt.failed(type(exc).__name__)
            finally:
                current = self.finish_request(seq)
            ChallengeTracing.set_result(
                span, "accepted" if receipt.accepted else "failed"
            )

        if not current:
            logger.debug("Discarding stale dispatch response for %s", self.session_id)
            return DispatchResult(DispatchResultStatus.STALE)

        now = self._clock.now()
        if receipt.accepted:
            self.dispatch_state = DispatchState.sent(now)
            self._state = ChallengeState.AWAITING_CODE
            self.last_error = None
            self.cooldown = CooldownTimer(self.config.cooldown_seconds)
            self.cooldown.start(channel)
            await self._audit(ChallengeEventType.CODE_DISPATCHED, channel=channel)
            return DispatchResult(
                DispatchResultStatus.SENT,
                cooldown_seconds=self.cooldown.remaining_seconds,
                message=channel.info.sent_message,
            )

        self.dispatch_state = DispatchState.failed()
        self._state = ChallengeState.AWAITING_DISPATCH
        self.last_error = "We couldn't send the code. Please try again."
        await self._audit(
            ChallengeEventType.DISPATCH_FAILED,
            channel=channel,
            success=False,
            error_code=receipt.error or "DELIVERY_FAILED",
        )
        return DispatchResult(
            DispatchResultStatus.DELIVERY_FAILED,
            error=receipt.error,
            message=self.last_error,
        )

    async def submit(self) -> VerificationResult:
        """Verify the entered code (or password) with the backend.

        Raises:
            ChallengeClosedError: If the session is terminal.
            RequestInFlightError: If another request is outstanding.
            IncompleteCodeError: If a slot (or the password) is empty.
            CodeNotSentError: If the channel needs a dispatch that has not
                succeeded yet.
        """
        self._ensure_open()
        if self._in_flight is not None:
            raise RequestInFlightError("A request is already in progress")
        channel = self._require_channel()
        secret = self._collect_secret(channel)

        now = self._clock.now()
        if self._limiter.is_locked(self.lockout, now):
            remaining = self._limiter.remaining_seconds(self.lockout, now)
            self._state = ChallengeState.LOCKED
            self.last_error = f"Too many attempts. Try again in {remaining}s."
            logger.info(
                "Rejected submit on locked session %s (%ss left)",
                self.session_id,
                remaining,
            )
            return VerificationResult(
                VerificationStatus.LOCKED_OUT,
                attempt_count=self.attempt_count,
                lock_remaining_seconds=remaining,
                message=self.last_error,
            )

        seq = self.begin_request()
        self._state = ChallengeState.VERIFYING
        verdict: CodeVerdict | None = None
        with ChallengeTracing.span(
            "verify", purpose=self.purpose.value, channel=channel.value
        ) as span:
            try:
                with ChallengeMetrics.operation(
                    "verify", purpose=self.purpose.value, channel=channel.value
                ):
                    verdict = await self._check(channel, secret)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Verification over %s failed for session %s",
                    channel.value,
                    self.session_id,
                    exc_info=True,
                )
            finally:
                current = self.finish_request(seq)
                if current and verdict is None:
                    self._state = ChallengeState.AWAITING_CODE
            ChallengeTracing.set_result(
                span, verdict.value if verdict else "unavailable"
            )

        if not current:
            logger.debug("Discarding stale verify response for %s", self.session_id)
            return VerificationResult(
                VerificationStatus.STALE, attempt_count=self.attempt_count
            )
        return await self._apply_verdict(channel, verdict)

    async def _check(self, channel: Channel, secret: str) -> CodeVerdict:
        return await self._verifier.verify_code(
            channel, self.purpose, self.identity, secret
        )

    async def _apply_verdict(
        self, channel: Channel, verdict: CodeVerdict | None
    ) -> VerificationResult:
        if verdict is None:
            self._state = ChallengeState.AWAITING_CODE
            self.last_error = "Verification is unavailable right now. Please try again."
            return VerificationResult(
                VerificationStatus.UNAVAILABLE,
                attempt_count=self.attempt_count,
                message=self.last_error,
            )

        if verdict is CodeVerdict.VERIFIED:
            await self.complete(via="password" if channel.is_password else "code")
            await self._audit(ChallengeEventType.CODE_VERIFIED, channel=channel)
            return VerificationResult(
                VerificationStatus.VERIFIED, message="Verification complete."
            )

        now = self._clock.now()
        failure = self._limiter.record_failure(self.lockout, now)
        self.lockout = failure.state

        expired = verdict is CodeVerdict.EXPIRED
        if expired and self.config.expired_code_resets_cooldown and self.cooldown:
            self.cooldown.stop()

        if failure.newly_locked:
            remaining = self._limiter.remaining_seconds(self.lockout, now)
            self._state = ChallengeState.LOCKED
            self.last_error = f"Too many attempts. Locked for {remaining}s."
            logger.info(
                "Session %s locked after %d failed attempts",
                self.session_id,
                self.attempt_count,
            )
            record_lockout(self.purpose.value)
            await self._audit(
                ChallengeEventType.LOCKED_OUT,
                channel=channel,
                success=False,
                error_code="LOCKED_OUT",
                metadata={"lock_until": self.lockout.lock_until.isoformat()}
                if self.lockout.lock_until
                else None,
            )
            return VerificationResult(
                VerificationStatus.LOCKED,
                attempt_count=self.attempt_count,
                lock_remaining_seconds=remaining,
                message=self.last_error,
            )

        self._state = ChallengeState.AWAITING_CODE
        if expired:
            self.last_error = "This code has expired. Request a new one."
        elif channel.is_password:
            self.last_error = "Incorrect password."
        else:
            self.last_error = "Incorrect code."
        await self._audit(
            ChallengeEventType.CODE_REJECTED,
            channel=channel,
            success=False,
            error_code="EXPIRED_CODE" if expired else "INCORRECT_CODE",
            metadata={"attempt_count": self.attempt_count},
        )
        return VerificationResult(
            VerificationStatus.EXPIRED if expired else VerificationStatus.INCORRECT,
            attempt_count=self.attempt_count,
            message=self.last_error,
        )

    # ─────────────────────────────────────────────────────────────
    # Request serialisation, shared with RecoveryFallback
    # ─────────────────────────────────────────────────────────────

    def begin_request(self) -> int:
        """Reserve the session's single request slot; returns its number.

        Raises:
            ChallengeClosedError: If the session is terminal.
            RequestInFlightError: If the slot is taken.
        """
        self._ensure_open()
        if self._in_flight is not None:
            raise RequestInFlightError("A request is already in progress")
        self._request_seq += 1
        self._in_flight = self._request_seq
        return self._request_seq

    def finish_request(self, seq: int) -> bool:
        """Release the slot; True when the response may still be applied."""
        if self._in_flight == seq:
            self._in_flight = None
        return seq == self._request_seq and not self.is_terminal

    async def complete(self, *, via: str) -> None:
        """Complete the session successfully.

        Resets the lockout, releases the cooldown and makes the session
        terminal. ``via`` records how the user proved their identity
        (``code``, ``password`` or ``recovery_code``).

        Raises:
            ChallengeClosedError: If the session is already terminal.
        """
        self._ensure_open()
        now = self._clock.now()
        self.lockout = self._limiter.record_success(self.lockout)
        self._release_cooldown()
        self._password = None
        self.last_error = None
        self.outcome = ChallengeOutcome.VERIFIED
        self._state = ChallengeState.VERIFIED
        self.verified_at = now
        self.verified_via = via
        await self._on_verified(now)

    async def _on_verified(self, now: datetime) -> None:
        """Hook for subclasses; runs once the session is Verified."""

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    def _invalidate_requests(self) -> None:
        self._request_seq += 1
        self._in_flight = None

    def _release_cooldown(self) -> None:
        if self.cooldown is not None:
            self.cooldown.stop()
            self.cooldown = None

    def _ensure_open(self) -> None:
        if self.is_terminal:
            raise ChallengeClosedError(
                f"Challenge session is {self._state.value} and accepts no changes"
            )

    def _ensure_no_request(self) -> None:
        if self._in_flight is not None:
            raise RequestInFlightError("A request is already in progress")

    def _require_channel(self) -> Channel:
        if self.selected_channel is None:
            raise CallerMisuseError("Select a channel first")
        return self.selected_channel

    def _require_code_channel(self) -> Channel:
        channel = self._require_channel()
        if channel.is_password:
            raise CallerMisuseError("The password channel has no digit slots")
        return channel

    def _collect_secret(self, channel: Channel) -> str:
        if channel.is_password:
            if not self._password:
                raise IncompleteCodeError("Please enter your password.")
            return self._password
        if not self.code.is_complete:
            raise IncompleteCodeError("Please enter the full code.")
        if (
            channel.requires_dispatch
            and self.dispatch_state.status is not DispatchStatus.SENT
        ):
            raise CodeNotSentError("Please send the code first.")
        return self.code.value()

    async def _audit(
        self,
        event_type: ChallengeEventType,
        *,
        channel: Channel | None = None,
        success: bool = True,
        error_code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        event = challenge_event(
            event_type,
            self.identity,
            purpose=self.purpose,
            channel=channel,
            timestamp=self._clock.now(),
            success=success,
            error_code=error_code,
            metadata={"session_id": self.session_id, **(metadata or {})},
        )
        await emit_event(self._audit_store, event)

    def __repr__(self) -> str:
        channel = self.selected_channel.value if self.selected_channel else None
        return (
            f"ChallengeSession(identity={self.identity!r}, "
            f"purpose={self.purpose.value!r}, channel={channel!r}, "
            f"state={self.state.value!r}, attempts={self.attempt_count})"
        )


__all__: list[str] = ["ChallengeSession"]
