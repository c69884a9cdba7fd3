"""Tests for challenge audit events and the in-memory audit store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from myaccounts_challenge import (
    ChallengeAuditEvent,
    ChallengeEventType,
    ChallengePurpose,
    Channel,
    InMemoryChallengeAuditStore,
)
from myaccounts_challenge.audit import challenge_event, emit_event
from myaccounts_core.correlation import set_correlation_id


class TestChallengeAuditEvent:
    def test_failure_gets_error_code(self) -> None:
        event = ChallengeAuditEvent(
            event_type=ChallengeEventType.CODE_REJECTED, success=False
        )
        assert event.error_code == "UNKNOWN_ERROR"

    def test_dict_round_trip(self) -> None:
        event = challenge_event(
            ChallengeEventType.CODE_DISPATCHED,
            "u1",
            purpose=ChallengePurpose.LOGIN_MFA,
            channel=Channel.SMS,
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
            metadata={"session_id": "s1"},
        )

        data = event.to_dict()

        assert data["event_type"] == "challenge.code.dispatched"
        assert data["purpose"] == "login_mfa"
        assert data["channel"] == "sms"
        assert ChallengeAuditEvent.from_dict(data) == event

    def test_from_dict_requires_type(self) -> None:
        with pytest.raises(ValueError, match="event_type"):
            ChallengeAuditEvent.from_dict({})

    def test_from_dict_rejects_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Invalid event_type"):
            ChallengeAuditEvent.from_dict({"event_type": "challenge.nope"})

    def test_naive_timestamp_is_utc(self) -> None:
        event = ChallengeAuditEvent.from_dict(
            {
                "event_type": "challenge.code.verified",
                "timestamp": "2026-01-01T00:00:00",
            }
        )
        assert event.timestamp.tzinfo is timezone.utc

    def test_correlation_id_is_captured(self) -> None:
        set_correlation_id("journey-1")
        try:
            event = challenge_event(ChallengeEventType.CODE_VERIFIED, "u1")
        finally:
            set_correlation_id(None)
        assert event.correlation_id == "journey-1"


class TestInMemoryChallengeAuditStore:
    @pytest.mark.asyncio
    async def test_query_by_identity_and_type(self) -> None:
        store = InMemoryChallengeAuditStore()
        await store.record(challenge_event(ChallengeEventType.CODE_DISPATCHED, "u1"))
        await store.record(challenge_event(ChallengeEventType.CODE_REJECTED, "u1"))
        await store.record(challenge_event(ChallengeEventType.CODE_REJECTED, "u2"))

        mine = await store.get_events("u1")
        rejected = await store.get_events(
            "u1", event_types=[ChallengeEventType.CODE_REJECTED]
        )
        all_rejected = await store.get_events_by_type(ChallengeEventType.CODE_REJECTED)

        assert [e.event_type for e in mine] == [
            ChallengeEventType.CODE_REJECTED,
            ChallengeEventType.CODE_DISPATCHED,
        ]
        assert len(rejected) == 1
        assert {e.identity for e in all_rejected} == {"u1", "u2"}

    @pytest.mark.asyncio
    async def test_limit_and_clear(self) -> None:
        store = InMemoryChallengeAuditStore()
        for _ in range(5):
            await store.record(challenge_event(ChallengeEventType.CODE_REJECTED, "u1"))

        assert len(await store.get_events("u1", limit=2)) == 2
        store.clear()
        assert store.events == []


class FailingAuditStore:
    async def record(self, event):
        raise OSError("disk full")


class TestEmitEvent:
    @pytest.mark.asyncio
    async def test_store_failure_is_logged(self, caplog) -> None:
        event = challenge_event(ChallengeEventType.CODE_VERIFIED, "u1")

        with caplog.at_level(logging.WARNING):
            await emit_event(FailingAuditStore(), event)

        assert "challenge.code.verified" in caplog.text

    @pytest.mark.asyncio
    async def test_no_store(self) -> None:
        await emit_event(None, challenge_event(ChallengeEventType.CODE_VERIFIED, "u1"))

    @pytest.mark.asyncio
    async def test_failing_store_does_not_break_session(
        self, clock, delivery, verifier
    ) -> None:
        from myaccounts_challenge import ChallengeSession

        session = ChallengeSession(
            "u1",
            ChallengePurpose.LOGIN_MFA,
            delivery=delivery,
            verifier=verifier,
            clock=clock,
            audit_store=FailingAuditStore(),
        )
        session.paste("123456")
        assert (await session.submit()).ok


class TestSessionAuditTrail:
    @pytest.mark.asyncio
    async def test_full_journey(self, make_session, audit_store) -> None:
        session = make_session(initial_channel=Channel.SMS)
        await session.dispatch()
        session.paste("000000")
        await session.submit()
        session.paste("123456")
        await session.submit()

        types = [e.event_type for e in audit_store.events]
        assert types == [
            ChallengeEventType.CODE_DISPATCHED,
            ChallengeEventType.CODE_REJECTED,
            ChallengeEventType.CODE_VERIFIED,
        ]
        assert {e.metadata["session_id"] for e in audit_store.events} == {
            session.session_id
        }

    @pytest.mark.asyncio
    async def test_codes_never_recorded(self, make_session, audit_store) -> None:
        session = make_session()
        session.paste("987654")
        await session.submit()
        assert "987654" not in repr(audit_store.events)
