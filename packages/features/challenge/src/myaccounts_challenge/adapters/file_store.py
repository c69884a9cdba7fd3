"""Durable device store backed by a JSON file."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from ..clock import Clock, SystemClock
from ..exceptions import DeviceStoreError
from ..ports import ILocalDeviceStore

logger = logging.getLogger(__name__)


def _json_serializer(obj: Any) -> Any:
    """Serialize datetime and other non-JSON types."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonFileDeviceStore(ILocalDeviceStore):
    """``ILocalDeviceStore`` persisted to a single JSON file.

    The whole file is rewritten on every change (write to a temporary file,
    then replace). Expired entries are dropped when read.

    Example:
        ```python
        store = JsonFileDeviceStore(Path.home() / ".myaccounts" / "device.json")
        marker = TrustedDeviceMarker(store)
        ```
    """

    def __init__(
        self, path: str | os.PathLike[str], clock: Clock | None = None
    ) -> None:
        self.path = Path(path)
        self._clock = clock or SystemClock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise DeviceStoreError(f"Cannot read device store {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise DeviceStoreError(f"Device store {self.path} is not a JSON object")
        return raw

    def _save(self, entries: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(entries, default=_json_serializer, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise DeviceStoreError(f"Cannot write device store {self.path}: {e}") from e

    async def store(
        self, key: str, data: dict[str, Any], ttl: int | None = None
    ) -> None:
        entries = self._load()
        expires_at: str | None = None
        if ttl is not None and ttl > 0:
            expires_at = (self._clock.now() + timedelta(seconds=ttl)).isoformat()
        entries[key] = {"data": data, "expires_at": expires_at}
        self._save(entries)

    async def get(self, key: str) -> dict[str, Any] | None:
        entries = self._load()
        entry = entries.get(key)
        if entry is None:
            return None

        expires_at = entry.get("expires_at")
        if expires_at and self._clock.now() >= datetime.fromisoformat(expires_at):
            del entries[key]
            self._save(entries)
            logger.debug("Dropped expired device entry %s", key)
            return None

        data = entry.get("data")
        return data if isinstance(data, dict) else None

    async def delete(self, key: str) -> None:
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._save(entries)

    async def exists(self, key: str) -> bool:
        data = await self.get(key)
        return data is not None


__all__: list[str] = ["JsonFileDeviceStore"]
