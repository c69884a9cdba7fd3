"""Trusted-device marker.

After a successful sign-in MFA the user may opt to trust this device. For
the trust window, later sign-ins on this device skip the MFA challenge.
Step-up re-authentication ignores device trust.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from myaccounts_core.domain.value_object import ValueObject
from myaccounts_core.primitives.exceptions import ValidationError

from ..audit.events import ChallengeEventType, challenge_event
from ..audit.recorder import emit_event
from ..channels import ChallengePurpose
from ..clock import Clock, SystemClock
from ..config import TrustConfig
from .marker import DeviceMarkerProvider

if TYPE_CHECKING:
    from ..ports import IChallengeAuditStore, ILocalDeviceStore

logger = logging.getLogger(__name__)


class TrustedDeviceRecord(ValueObject):
    """Locally stored trust grant.

    Attributes:
        device_marker: Marker of the device the grant belongs to.
        trusted_until: End of the trust window.
        identity: Identity that opted in; trust does not carry over to
            another account signing in on the same device.
    """

    device_marker: str
    trusted_until: datetime
    identity: str | None = None

    def is_active(self, now: datetime) -> bool:
        return now < self.trusted_until


class TrustedDeviceMarker:
    """Read and write the trusted-device record for this device.

    Example:
        ```python
        marker = TrustedDeviceMarker(device_store)
        if not await marker.is_trusted(identity="u1"):
            session = engine.open_session("u1", ChallengePurpose.LOGIN_MFA)
            ...
            await marker.mark_trusted(identity="u1")
        ```
    """

    KEY_PREFIX = "trusted_device:"

    def __init__(
        self,
        store: ILocalDeviceStore,
        *,
        clock: Clock | None = None,
        config: TrustConfig | None = None,
        markers: DeviceMarkerProvider | None = None,
        audit_store: IChallengeAuditStore | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self.config = config or TrustConfig()
        self._markers = markers or DeviceMarkerProvider(store)
        self._audit_store = audit_store

    async def _key(self) -> tuple[str, str]:
        marker = await self._markers.get_or_create()
        return marker, f"{self.KEY_PREFIX}{marker}"

    async def record(self) -> TrustedDeviceRecord | None:
        """The stored record, expired or not."""
        _, key = await self._key()
        data = await self._store.get(key)
        if data is None:
            return None
        return TrustedDeviceRecord.model_validate(data)

    async def mark_trusted(
        self,
        *,
        identity: str | None = None,
        scope_duration_days: int | None = None,
    ) -> TrustedDeviceRecord:
        """Trust this device for ``scope_duration_days`` (30 by default)."""
        days = (
            self.config.trust_days
            if scope_duration_days is None
            else scope_duration_days
        )
        if days <= 0:
            raise ValidationError({"scope_duration_days": ["must be positive"]})

        now = self._clock.now()
        marker, key = await self._key()
        record = TrustedDeviceRecord(
            device_marker=marker,
            trusted_until=now + timedelta(days=days),
            identity=identity,
        )
        await self._store.store(
            key, record.model_dump(mode="json"), ttl=days * 24 * 60 * 60
        )
        logger.info("Device %s trusted until %s", marker, record.trusted_until)
        await emit_event(
            self._audit_store,
            challenge_event(
                ChallengeEventType.DEVICE_TRUSTED,
                identity or "unknown",
                purpose=ChallengePurpose.LOGIN_MFA,
                timestamp=now,
                metadata={
                    "device_marker": marker,
                    "trusted_until": record.trusted_until.isoformat(),
                },
            ),
        )
        return record

    async def is_trusted(
        self, now: datetime | None = None, *, identity: str | None = None
    ) -> bool:
        """True while an unexpired grant exists for this device.

        When ``identity`` is given the grant must also belong to it.
        """
        record = await self.record()
        if record is None:
            return False
        if identity is not None and record.identity not in (None, identity):
            return False
        return record.is_active(now or self._clock.now())

    async def clear(self) -> None:
        marker, key = await self._key()
        record = await self.record()
        await self._store.delete(key)
        if record is None:
            return
        logger.info("Trust cleared for device %s", marker)
        await emit_event(
            self._audit_store,
            challenge_event(
                ChallengeEventType.DEVICE_TRUST_CLEARED,
                record.identity or "unknown",
                purpose=ChallengePurpose.LOGIN_MFA,
                timestamp=self._clock.now(),
                metadata={"device_marker": marker},
            ),
        )


__all__: list[str] = ["TrustedDeviceRecord", "TrustedDeviceMarker"]
