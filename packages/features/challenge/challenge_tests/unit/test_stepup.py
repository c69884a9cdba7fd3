"""Tests for step-up re-authentication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from myaccounts_challenge import (
    CallerMisuseError,
    ChallengeEventType,
    ChallengePurpose,
    Channel,
    IncompleteCodeError,
    ReauthAssertion,
    ReauthConfig,
    ReauthRequiredError,
    StepUpReauthenticator,
    VerificationStatus,
    require_reauth,
)

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_step_up(clock, delivery, verifier, password_verifier, audit_store):
    def _make(action: str = "change_password", **kwargs):
        kwargs.setdefault("password_verifier", password_verifier)
        return StepUpReauthenticator(
            "u1",
            action=action,
            delivery=delivery,
            verifier=verifier,
            clock=clock,
            audit_store=audit_store,
            **kwargs,
        )

    return _make


def _assertion(**overrides) -> ReauthAssertion:
    values = {
        "assertion_id": "a1",
        "identity": "u1",
        "action": "change_password",
        "channel": "password",
        "issued_at": START,
        "expires_at": START + timedelta(minutes=5),
    }
    values.update(overrides)
    return ReauthAssertion(**values)


class TestStepUpChannels:
    def test_password_preselected(self, make_step_up) -> None:
        step_up = make_step_up()
        assert step_up.purpose is ChallengePurpose.STEP_UP_REAUTH
        assert step_up.selected_channel is Channel.PASSWORD
        assert Channel.PASSWORD in step_up.channels

    def test_no_password_without_verifier(self, make_step_up) -> None:
        step_up = make_step_up(password_verifier=None)
        assert Channel.PASSWORD not in step_up.channels
        assert step_up.selected_channel is None

    def test_password_channel_has_no_digits(self, make_step_up) -> None:
        step_up = make_step_up()
        with pytest.raises(CallerMisuseError, match="no digit slots"):
            step_up.enter_digit(0, "1")


class TestStepUpVerification:
    @pytest.mark.asyncio
    async def test_password_grants_assertion(
        self, make_step_up, password_verifier, clock, audit_store
    ) -> None:
        step_up = make_step_up()
        step_up.enter_password("correct horse")

        result = await step_up.submit()

        assert result.ok
        assert password_verifier.calls == [("u1", "correct horse")]
        assertion = step_up.assertion
        assert assertion is not None
        assert assertion.action == "change_password"
        assert assertion.channel == "password"
        assert assertion.expires_at == clock.now() + timedelta(seconds=300)
        assert step_up.verified_via == "password"

        granted = await audit_store.get_events_by_type(
            ChallengeEventType.REAUTH_GRANTED
        )
        assert granted[0].metadata["action"] == "change_password"

    @pytest.mark.asyncio
    async def test_wrong_password_counts_as_attempt(self, make_step_up) -> None:
        step_up = make_step_up()
        step_up.enter_password("wrong")

        result = await step_up.submit()

        assert result.status is VerificationStatus.INCORRECT
        assert result.message == "Incorrect password."
        assert step_up.attempt_count == 1
        assert step_up.assertion is None

    @pytest.mark.asyncio
    async def test_empty_password(self, make_step_up) -> None:
        step_up = make_step_up()
        with pytest.raises(IncompleteCodeError, match="enter your password"):
            await step_up.submit()

    @pytest.mark.asyncio
    async def test_password_lockout(self, make_step_up, password_verifier) -> None:
        step_up = make_step_up()
        for _ in range(5):
            step_up.enter_password("wrong")
            result = await step_up.submit()
        assert result.status is VerificationStatus.LOCKED

        step_up.enter_password("correct horse")
        locked = await step_up.submit()

        assert locked.status is VerificationStatus.LOCKED_OUT
        assert len(password_verifier.calls) == 5

    @pytest.mark.asyncio
    async def test_code_channel_uses_code_verifier(
        self, make_step_up, verifier
    ) -> None:
        step_up = make_step_up(initial_channel=Channel.AUTHENTICATOR_APP)
        step_up.paste("123456")

        result = await step_up.submit()

        assert result.ok
        assert verifier.calls[0][1] is ChallengePurpose.STEP_UP_REAUTH
        assert step_up.assertion.channel == "authenticator_app"

    @pytest.mark.asyncio
    async def test_custom_ttl(self, make_step_up, clock) -> None:
        step_up = make_step_up(reauth_config=ReauthConfig(assertion_ttl_seconds=60))
        step_up.enter_password("correct horse")
        await step_up.submit()
        assert step_up.assertion.remaining_seconds(clock.now()) == 60


class TestReauthAssertion:
    def test_valid_inside_window(self) -> None:
        assertion = _assertion()
        assert assertion.is_valid(START)
        assert assertion.is_valid(START + timedelta(minutes=4))
        assert not assertion.is_valid(START + timedelta(minutes=5))

    def test_not_valid_before_issue(self) -> None:
        assert not _assertion().is_valid(START - timedelta(seconds=1))

    def test_covers_identity_and_action(self) -> None:
        assertion = _assertion()
        assert assertion.covers("u1", "change_password", START)
        assert not assertion.covers("u2", "change_password", START)
        assert not assertion.covers("u1", "remove_device", START)

    def test_immutable(self) -> None:
        assertion = _assertion()
        with pytest.raises(ValidationError):
            assertion.action = "other"  # type: ignore[misc]


class TestRequireReauth:
    def test_missing(self) -> None:
        with pytest.raises(ReauthRequiredError) as exc_info:
            require_reauth(None, "u1", "change_password", START)
        assert exc_info.value.action == "change_password"

    def test_wrong_action(self) -> None:
        with pytest.raises(ReauthRequiredError):
            require_reauth(_assertion(), "u1", "remove_device", START)

    def test_wrong_identity(self) -> None:
        with pytest.raises(ReauthRequiredError):
            require_reauth(_assertion(), "u2", "change_password", START)

    def test_expired(self) -> None:
        with pytest.raises(ReauthRequiredError, match="expired"):
            require_reauth(
                _assertion(), "u1", "change_password", START + timedelta(minutes=6)
            )

    def test_valid(self) -> None:
        assertion = _assertion()
        assert require_reauth(assertion, "u1", "change_password", START) is assertion
