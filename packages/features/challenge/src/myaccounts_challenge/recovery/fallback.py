"""Recovery-code escape hatch for an open challenge.

Redeeming a recovery code completes the owning session without touching its
lockout: a locked session can still be completed with a recovery code, and a
rejected recovery code never counts against the code-attempt budget. There
is no local throttle on recovery attempts; the backend owns that policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..audit.events import ChallengeEventType, challenge_event
from ..audit.recorder import emit_event
from ..exceptions import IncompleteCodeError
from ..observability import ChallengeMetrics, ChallengeTracing
from ..ports import RecoveryVerdict
from .models import normalize_recovery_code

if TYPE_CHECKING:
    from ..ports import IChallengeAuditStore, IRecoveryCodeGateway
    from ..session import ChallengeSession
    from .manager import RecoveryCodeManager

logger = logging.getLogger(__name__)


class RecoveryStatus(Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    ALREADY_USED = "already_used"
    UNAVAILABLE = "unavailable"
    STALE = "stale"


@dataclass(frozen=True)
class RecoveryResult:
    """Result of ``RecoveryFallback.redeem``.

    ``UNAVAILABLE`` means the backend could not be reached; ``STALE`` means
    the session was abandoned while the call was outstanding.
    """

    status: RecoveryStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is RecoveryStatus.VERIFIED


_MESSAGES = {
    RecoveryStatus.VERIFIED: "Recovery code accepted.",
    RecoveryStatus.INVALID: "That recovery code is not valid.",
    RecoveryStatus.ALREADY_USED: "That recovery code has already been used.",
    RecoveryStatus.UNAVAILABLE: "Recovery is unavailable right now. Please try again.",
    RecoveryStatus.STALE: "",
}

_FROM_VERDICT = {
    RecoveryVerdict.VERIFIED: RecoveryStatus.VERIFIED,
    RecoveryVerdict.INVALID: RecoveryStatus.INVALID,
    RecoveryVerdict.ALREADY_USED: RecoveryStatus.ALREADY_USED,
}


class RecoveryFallback:
    """Complete a challenge session with a single-use recovery code.

    Example:
        ```python
        fallback = RecoveryFallback(backend)
        result = await fallback.redeem(session, "abcd-efgh")
        if result.ok:
            assert session.outcome is ChallengeOutcome.VERIFIED
        ```
    """

    def __init__(
        self,
        gateway: IRecoveryCodeGateway,
        *,
        manager: RecoveryCodeManager | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        """Initialize the fallback.

        Args:
            gateway: Recovery-code backend.
            manager: Optional local cache of the identity's code set; the
                redeemed code is marked used there as well.
            audit_store: Where redemption events are recorded.
        """
        self._gateway = gateway
        self._manager = manager
        self._audit_store = audit_store

    async def redeem(self, session: ChallengeSession, code: str) -> RecoveryResult:
        """Redeem ``code`` against the session's identity.

        Accepted from every non-terminal state, not only ``AWAITING_CODE``
        and ``LOCKED``: a user who cannot receive a code at all (``IDLE`` or
        ``AWAITING_DISPATCH``) needs the escape hatch most. The attempt
        limiter is never consulted.

        Raises:
            ChallengeClosedError: If the session is terminal.
            RequestInFlightError: If the session has a request outstanding.
            IncompleteCodeError: If ``code`` is empty after normalisation.
        """
        normalized = normalize_recovery_code(code)
        if not normalized.replace("-", ""):
            raise IncompleteCodeError("Please enter a recovery code.")

        seq = session.begin_request()
        verdict: RecoveryVerdict | None = None
        purpose = session.purpose.value
        with ChallengeTracing.span(
            "redeem", purpose=purpose, channel="recovery_code"
        ) as span:
            try:
                with ChallengeMetrics.operation(
                    "redeem", purpose=purpose, channel="recovery_code"
                ):
                    verdict = await self._gateway.redeem_recovery_code(
                        session.identity, normalized
                    )
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Recovery code redemption failed for session %s",
                    session.session_id,
                    exc_info=True,
                )
            finally:
                current = session.finish_request(seq)
            ChallengeTracing.set_result(
                span, verdict.value if verdict else "unavailable"
            )

        if not current:
            logger.debug(
                "Discarding stale recovery response for %s", session.session_id
            )
            return RecoveryResult(RecoveryStatus.STALE)

        if verdict is None:
            return self._result(RecoveryStatus.UNAVAILABLE)

        status = _FROM_VERDICT[verdict]
        if status is RecoveryStatus.VERIFIED:
            await session.complete(via="recovery_code")
            if self._manager is not None:
                await self._manager.mark_used(session.identity, normalized)
            logger.info("Session %s completed with a recovery code", session.session_id)
            await self._audit(session, ChallengeEventType.RECOVERY_REDEEMED)
        else:
            await self._audit(
                session,
                ChallengeEventType.RECOVERY_REJECTED,
                error_code=status.name,
            )
        return self._result(status)

    @staticmethod
    def _result(status: RecoveryStatus) -> RecoveryResult:
        return RecoveryResult(status, message=_MESSAGES[status])

    async def _audit(
        self,
        session: ChallengeSession,
        event_type: ChallengeEventType,
        *,
        error_code: str | None = None,
    ) -> None:
        event = challenge_event(
            event_type,
            session.identity,
            purpose=session.purpose,
            timestamp=session.now(),
            success=error_code is None,
            error_code=error_code,
            metadata={"session_id": session.session_id},
        )
        await emit_event(self._audit_store, event)


__all__: list[str] = ["RecoveryFallback", "RecoveryResult", "RecoveryStatus"]
