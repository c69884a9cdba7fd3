"""Stable local device marker."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from myaccounts_core.primitives.id_generator import IIDGenerator, UUID4Generator

if TYPE_CHECKING:
    from ..ports import ILocalDeviceStore

logger = logging.getLogger(__name__)


class DeviceMarkerProvider:
    """Generates the device marker once and reads it back afterwards.

    The marker is an opaque identifier that never leaves the device; trust
    records are keyed by it.
    """

    KEY = "device_marker"

    def __init__(
        self,
        store: ILocalDeviceStore,
        id_generator: IIDGenerator | None = None,
    ) -> None:
        self._store = store
        self._id_generator = id_generator or UUID4Generator()

    async def get_or_create(self) -> str:
        data = await self._store.get(self.KEY)
        if data and data.get("marker"):
            return str(data["marker"])
        marker = self._id_generator.next_id()
        await self._store.store(self.KEY, {"marker": marker})
        logger.debug("Created device marker %s", marker)
        return marker

    async def peek(self) -> str | None:
        """The marker if one was created, without creating it."""
        data = await self._store.get(self.KEY)
        return str(data["marker"]) if data and data.get("marker") else None


__all__: list[str] = ["DeviceMarkerProvider"]
