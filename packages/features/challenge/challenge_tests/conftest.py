"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from myaccounts_challenge import (
    ChallengePurpose,
    ChallengeSession,
    Channel,
    CodeVerdict,
    DeliveryReceipt,
    InMemoryChallengeAuditStore,
    PasswordVerdict,
)

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests that require external services",
    )


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)

    def rewind(self, seconds: float) -> None:
        self._now = self._now - timedelta(seconds=seconds)


class FakeDelivery:
    """Records dispatches; accepts, rejects, raises or blocks on demand."""

    def __init__(self) -> None:
        self.calls: list[tuple[Channel, ChallengePurpose, str]] = []
        self.receipt = DeliveryReceipt.ok()
        self.error: Exception | None = None
        self.gate: asyncio.Future[None] | None = None

    async def dispatch_code(
        self, channel: Channel, purpose: ChallengePurpose, identity: str
    ) -> DeliveryReceipt:
        self.calls.append((channel, purpose, identity))
        if self.gate is not None:
            await self.gate
        if self.error is not None:
            raise self.error
        return self.receipt


class FakeVerifier:
    """Accepts ``correct_code``; can be scripted, made to raise or block."""

    def __init__(self, correct_code: str = "123456") -> None:
        self.correct_code = correct_code
        self.calls: list[tuple[Channel, ChallengePurpose, str, str]] = []
        self.script: list[CodeVerdict] = []
        self.error: Exception | None = None
        self.gate: asyncio.Future[None] | None = None

    async def verify_code(
        self, channel: Channel, purpose: ChallengePurpose, identity: str, code: str
    ) -> CodeVerdict:
        self.calls.append((channel, purpose, identity, code))
        if self.gate is not None:
            await self.gate
        if self.error is not None:
            raise self.error
        if self.script:
            return self.script.pop(0)
        if code == self.correct_code:
            return CodeVerdict.VERIFIED
        return CodeVerdict.INCORRECT


class FakePasswordVerifier:
    def __init__(self, password: str = "correct horse") -> None:
        self.password = password
        self.calls: list[tuple[str, str]] = []

    async def verify_password(self, identity: str, password: str) -> PasswordVerdict:
        self.calls.append((identity, password))
        if password == self.password:
            return PasswordVerdict.VERIFIED
        return PasswordVerdict.INCORRECT


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def delivery() -> FakeDelivery:
    return FakeDelivery()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def password_verifier() -> FakePasswordVerifier:
    return FakePasswordVerifier()


@pytest.fixture
def audit_store() -> InMemoryChallengeAuditStore:
    return InMemoryChallengeAuditStore()


@pytest.fixture
def make_session(
    clock: FakeClock,
    delivery: FakeDelivery,
    verifier: FakeVerifier,
    audit_store: InMemoryChallengeAuditStore,
) -> Callable[..., ChallengeSession]:
    """Factory for sessions wired to the fakes."""

    def _make(
        purpose: ChallengePurpose = ChallengePurpose.LOGIN_MFA,
        identity: str = "u1",
        **kwargs: Any,
    ) -> ChallengeSession:
        return ChallengeSession(
            identity,
            purpose,
            delivery=delivery,
            verifier=verifier,
            clock=clock,
            audit_store=audit_store,
            **kwargs,
        )

    return _make
