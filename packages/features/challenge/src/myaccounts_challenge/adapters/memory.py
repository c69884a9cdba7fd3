"""In-memory collaborators for development and testing.

WARNING: These implementations are NOT suitable for production use.
Codes and recovery codes are kept in plain text in process memory.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from myaccounts_core.primitives.id_generator import UUID4Generator

from ..channels import ChallengePurpose, Channel
from ..clock import Clock, SystemClock
from ..config import RecoveryConfig
from ..ports import (
    CodeVerdict,
    DeliveryReceipt,
    ICodeDeliveryGateway,
    ICodeVerifier,
    ILocalDeviceStore,
    IRecoveryCodeGateway,
    RecoveryVerdict,
)
from ..recovery.models import (
    RecoveryCode,
    RecoveryCodeSet,
    compact_recovery_code,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# LOCAL DEVICE STORE
# ═══════════════════════════════════════════════════════════════


class InMemoryDeviceStore(ILocalDeviceStore):
    """In-memory device store for development and testing only.

    Example:
        ```python
        store = InMemoryDeviceStore()
        await store.store("trusted_device:abc", {"trusted_until": "..."}, ttl=60)
        data = await store.get("trusted_device:abc")
        ```
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._store: dict[str, tuple[dict[str, Any], datetime | None]] = {}

    async def store(
        self, key: str, data: dict[str, Any], ttl: int | None = None
    ) -> None:
        expires_at: datetime | None = None
        if ttl is not None and ttl > 0:
            expires_at = self._clock.now() + timedelta(seconds=ttl)
        self._store[key] = (dict(data), expires_at)

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._store.get(key)
        if entry is None:
            return None

        data, expires_at = entry
        if expires_at is not None and self._clock.now() >= expires_at:
            del self._store[key]
            return None

        return dict(data)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def exists(self, key: str) -> bool:
        data = await self.get(key)
        return data is not None

    def clear_all(self) -> None:
        """Clear all stored data.

        Useful for testing cleanup.
        """
        self._store.clear()


# ═══════════════════════════════════════════════════════════════
# ONE-TIME CODES
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SentCode:
    """A code handed to the (simulated) delivery channel."""

    identity: str
    purpose: ChallengePurpose
    channel: Channel
    code: str
    expires_at: datetime


class InMemoryCodeBackend(ICodeDeliveryGateway, ICodeVerifier):
    """Dispatch and verify SMS, WhatsApp and email codes in memory.

    Each dispatch replaces the previous code for the same identity, purpose
    and channel. A verified code is consumed. Codes past their TTL verify
    as EXPIRED. Authenticator-app codes are delegated to ``authenticator``
    when one is given.

    Example:
        ```python
        backend = InMemoryCodeBackend(ttl_seconds=300)
        await backend.dispatch_code(Channel.SMS, ChallengePurpose.LOGIN_MFA, "u1")
        code = backend.last_code("u1", ChallengePurpose.LOGIN_MFA, Channel.SMS)
        ```
    """

    def __init__(
        self,
        *,
        code_length: int = 6,
        ttl_seconds: int = 300,
        clock: Clock | None = None,
        authenticator: ICodeVerifier | None = None,
    ) -> None:
        self.code_length = code_length
        self.ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._authenticator = authenticator
        self._codes: dict[tuple[str, ChallengePurpose, Channel], SentCode] = {}
        self.sent: list[SentCode] = []

    def _generate_code(self) -> str:
        code = secrets.randbelow(10**self.code_length)
        return str(code).zfill(self.code_length)

    async def dispatch_code(
        self,
        channel: Channel,
        purpose: ChallengePurpose,
        identity: str,
    ) -> DeliveryReceipt:
        if not channel.requires_dispatch:
            return DeliveryReceipt.failed("UNSUPPORTED_CHANNEL")

        sent = SentCode(
            identity=identity,
            purpose=purpose,
            channel=channel,
            code=self._generate_code(),
            expires_at=self._clock.now() + timedelta(seconds=self.ttl_seconds),
        )
        self._codes[(identity, purpose, channel)] = sent
        self.sent.append(sent)
        logger.debug("Code for %s queued on %s", identity, channel.value)
        return DeliveryReceipt.ok()

    async def verify_code(
        self,
        channel: Channel,
        purpose: ChallengePurpose,
        identity: str,
        code: str,
    ) -> CodeVerdict:
        if channel is Channel.AUTHENTICATOR_APP:
            if self._authenticator is None:
                return CodeVerdict.INCORRECT
            return await self._authenticator.verify_code(
                channel, purpose, identity, code
            )

        key = (identity, purpose, channel)
        sent = self._codes.get(key)
        if sent is None:
            return CodeVerdict.INCORRECT
        if self._clock.now() >= sent.expires_at:
            del self._codes[key]
            return CodeVerdict.EXPIRED
        if not secrets.compare_digest(sent.code, code):
            return CodeVerdict.INCORRECT

        del self._codes[key]
        return CodeVerdict.VERIFIED

    def last_code(
        self, identity: str, purpose: ChallengePurpose, channel: Channel
    ) -> str | None:
        """The outstanding code, for tests and local development."""
        sent = self._codes.get((identity, purpose, channel))
        return sent.code if sent else None


# ═══════════════════════════════════════════════════════════════
# RECOVERY CODES
# ═══════════════════════════════════════════════════════════════


class InMemoryRecoveryCodeBackend(IRecoveryCodeGateway):
    """Recovery code batches kept in memory.

    Regenerating replaces the whole batch: codes from earlier batches are
    simply unknown afterwards and redeem as INVALID.
    """

    # Characters used in recovery codes (exclude ambiguous: 0, O, 1, I)
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(
        self,
        *,
        config: RecoveryConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or RecoveryConfig()
        self._clock = clock or SystemClock()
        self._ids = UUID4Generator()
        self._sets: dict[str, RecoveryCodeSet] = {}

    def _generate_code(self) -> str:
        return "".join(
            secrets.choice(self.ALPHABET) for _ in range(self.config.code_length)
        )

    def _format_code(self, code: str) -> str:
        """Group in fours for readability (e.g. "ABCD-EFGH")."""
        return "-".join(code[i : i + 4] for i in range(0, len(code), 4))

    def _new_batch(self) -> RecoveryCodeSet:
        codes: list[RecoveryCode] = []
        seen: set[str] = set()
        while len(codes) < self.config.batch_size:
            raw = self._generate_code()
            if raw in seen:
                continue
            seen.add(raw)
            codes.append(RecoveryCode(value=self._format_code(raw)))
        return RecoveryCodeSet(
            batch_id=self._ids.next_id(),
            codes=tuple(codes),
            generated_at=self._clock.now(),
        )

    async def redeem_recovery_code(self, identity: str, code: str) -> RecoveryVerdict:
        code_set = self._sets.get(identity)
        if code_set is None or not compact_recovery_code(code):
            return RecoveryVerdict.INVALID

        match = code_set.find(code)
        if match is None:
            return RecoveryVerdict.INVALID
        if match.used:
            return RecoveryVerdict.ALREADY_USED

        self._sets[identity] = code_set.mark_used(code)
        return RecoveryVerdict.VERIFIED

    async def fetch_recovery_code_set(self, identity: str) -> RecoveryCodeSet:
        if identity not in self._sets:
            self._sets[identity] = self._new_batch()
        return self._sets[identity]

    async def regenerate_recovery_code_set(self, identity: str) -> RecoveryCodeSet:
        self._sets[identity] = self._new_batch()
        logger.debug("Issued recovery batch for %s", identity)
        return self._sets[identity]


__all__: list[str] = [
    "InMemoryDeviceStore",
    "SentCode",
    "InMemoryCodeBackend",
    "InMemoryRecoveryCodeBackend",
]
