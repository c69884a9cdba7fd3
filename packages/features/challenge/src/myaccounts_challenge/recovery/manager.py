"""Recovery code set management.

Fetches the identity's current batch for display, caches it in local device
storage and regenerates it behind a step-up re-authentication.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..audit.events import ChallengeEventType, challenge_event
from ..audit.recorder import emit_event
from ..channels import ChallengePurpose
from ..clock import Clock, SystemClock
from ..observability import ChallengeMetrics
from ..stepup import require_reauth
from .models import RecoveryCodeSet

if TYPE_CHECKING:
    from ..ports import IChallengeAuditStore, ILocalDeviceStore, IRecoveryCodeGateway
    from ..stepup import ReauthAssertion

logger = logging.getLogger(__name__)

REGENERATE_RECOVERY_CODES = "regenerate_recovery_codes"


class RecoveryCodeManager:
    """Read and regenerate an identity's recovery codes.

    Example:
        ```python
        manager = RecoveryCodeManager(backend, device_store)
        codes = await manager.fetch("u1")
        print(f"{codes.remaining} of {codes.total} left")

        # Regeneration needs a fresh step-up for this exact action
        new_codes = await manager.regenerate("u1", step_up.assertion)
        ```
    """

    KEY_PREFIX = "recovery_codes:"

    def __init__(
        self,
        gateway: IRecoveryCodeGateway,
        store: ILocalDeviceStore,
        *,
        clock: Clock | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._clock = clock or SystemClock()
        self._audit_store = audit_store

    def _key(self, identity: str) -> str:
        return f"{self.KEY_PREFIX}{identity}"

    async def cached(self, identity: str) -> RecoveryCodeSet | None:
        """The locally cached batch, if any."""
        data = await self._store.get(self._key(identity))
        if data is None:
            return None
        return RecoveryCodeSet.from_storage(data)

    async def fetch(self, identity: str) -> RecoveryCodeSet | None:
        """Current batch from the backend, refreshing the local cache.

        Falls back to the cached batch when the backend fails; returns None
        when neither is available.
        """
        try:
            with ChallengeMetrics.operation("fetch_recovery_codes"):
                code_set = await self._gateway.fetch_recovery_code_set(identity)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Fetching recovery codes for %s failed, using cache",
                identity,
                exc_info=True,
            )
            return await self.cached(identity)
        await self._store.store(self._key(identity), code_set.to_storage())
        return code_set

    async def regenerate(
        self, identity: str, assertion: ReauthAssertion | None
    ) -> RecoveryCodeSet | None:
        """Replace the identity's batch with a new one.

        Every code of the previous batch stops working as soon as the
        backend issues the new one.

        Returns:
            The new batch, or None when the backend failed (the previous
            batch stays in force).

        Raises:
            ReauthRequiredError: Without a valid step-up assertion for
                ``regenerate_recovery_codes``.
        """
        now = self._clock.now()
        require_reauth(assertion, identity, REGENERATE_RECOVERY_CODES, now)

        try:
            with ChallengeMetrics.operation("regenerate_recovery_codes"):
                code_set = await self._gateway.regenerate_recovery_code_set(identity)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Regenerating recovery codes for %s failed", identity, exc_info=True
            )
            return None

        await self._store.store(self._key(identity), code_set.to_storage())
        logger.info(
            "Recovery codes regenerated for %s (batch %s)", identity, code_set.batch_id
        )
        await emit_event(
            self._audit_store,
            challenge_event(
                ChallengeEventType.RECOVERY_REGENERATED,
                identity,
                purpose=ChallengePurpose.STEP_UP_REAUTH,
                timestamp=now,
                metadata={"batch_id": code_set.batch_id, "count": code_set.total},
            ),
        )
        return code_set

    async def mark_used(self, identity: str, code: str) -> None:
        """Mark ``code`` used in the cached batch, if it is cached."""
        code_set = await self.cached(identity)
        if code_set is None or code_set.find(code) is None:
            return
        await self._store.store(
            self._key(identity), code_set.mark_used(code).to_storage()
        )

    async def forget(self, identity: str) -> None:
        await self._store.delete(self._key(identity))


__all__: list[str] = ["RecoveryCodeManager", "REGENERATE_RECOVERY_CODES"]
