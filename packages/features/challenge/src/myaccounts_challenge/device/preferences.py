"""Last-used channel per purpose.

Pure convenience: the remembered channel is only used to preselect a
channel when a session opens, and only if it is still allowed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..channels import ChallengePurpose, Channel

if TYPE_CHECKING:
    from ..ports import ILocalDeviceStore


class ChannelPreferenceStore:
    KEY_PREFIX = "channel_preference:"

    def __init__(self, store: ILocalDeviceStore) -> None:
        self._store = store

    def _key(self, purpose: ChallengePurpose) -> str:
        return f"{self.KEY_PREFIX}{purpose.value}"

    async def remember(self, purpose: ChallengePurpose, channel: Channel) -> None:
        await self._store.store(self._key(purpose), {"channel": channel.value})

    async def recall(self, purpose: ChallengePurpose) -> Channel | None:
        data = await self._store.get(self._key(purpose))
        if not data:
            return None
        try:
            return Channel(data.get("channel"))
        except ValueError:
            return None

    async def forget(self, purpose: ChallengePurpose) -> None:
        await self._store.delete(self._key(purpose))


__all__: list[str] = ["ChannelPreferenceStore"]
