"""Tests for the attempt limiter."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from myaccounts_challenge import (
    AttemptLimiter,
    ChallengeConfig,
    LockoutState,
    ReauthConfig,
    RecoveryConfig,
    TrustConfig,
)
from myaccounts_core import ValidationError

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestAttemptLimiter:
    def test_failures_below_threshold_only_count(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState()
        for expected in range(1, 5):
            outcome = limiter.record_failure(state, NOW)
            state = outcome.state
            assert state.attempt_count == expected
            assert state.lock_until is None
            assert not outcome.newly_locked

    def test_fifth_failure_locks_for_thirty_seconds(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(attempt_count=4)
        outcome = limiter.record_failure(state, NOW)
        assert outcome.newly_locked
        assert outcome.state.attempt_count == 5
        assert outcome.state.lock_until == NOW + timedelta(seconds=30)

    def test_count_does_not_climb_past_threshold(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(attempt_count=5, lock_until=NOW - timedelta(seconds=1))
        outcome = limiter.record_failure(state, NOW)
        assert outcome.state.attempt_count == 5
        assert outcome.newly_locked

    def test_lock_until_never_decreases(self) -> None:
        limiter = AttemptLimiter()
        later = NOW + timedelta(minutes=10)
        state = LockoutState(attempt_count=5, lock_until=later)
        outcome = limiter.record_failure(state, NOW)
        assert outcome.state.lock_until == later

    @pytest.mark.parametrize("failures", [0, 1, 4, 5])
    def test_success_resets(self, failures: int) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(
            attempt_count=failures,
            lock_until=NOW + timedelta(seconds=30) if failures == 5 else None,
        )
        reset = limiter.record_success(state)
        assert reset.attempt_count == 0
        assert reset.lock_until is None

    def test_is_locked_compares_wall_clock(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(attempt_count=5, lock_until=NOW + timedelta(seconds=30))
        assert limiter.is_locked(state, NOW)
        assert limiter.is_locked(state, NOW + timedelta(seconds=29))
        assert not limiter.is_locked(state, NOW + timedelta(seconds=30))
        assert not limiter.is_locked(LockoutState(), NOW)

    def test_remaining_seconds_rounds_up(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(attempt_count=5, lock_until=NOW + timedelta(seconds=30))
        assert limiter.remaining_seconds(state, NOW) == 30
        assert limiter.remaining_seconds(state, NOW + timedelta(seconds=0.5)) == 30
        assert limiter.remaining_seconds(state, NOW + timedelta(seconds=29.9)) == 1
        assert limiter.remaining_seconds(state, NOW + timedelta(seconds=31)) == 0

    def test_backward_clock_does_not_extend_reported_wait(self) -> None:
        limiter = AttemptLimiter()
        state = LockoutState(attempt_count=5, lock_until=NOW + timedelta(seconds=30))
        skewed = NOW - timedelta(hours=1)
        assert limiter.remaining_seconds(state, skewed) == 30
        assert state.lock_until == NOW + timedelta(seconds=30)

    def test_custom_policy(self) -> None:
        limiter = AttemptLimiter(threshold=2, lock_seconds=60)
        outcome = limiter.record_failure(LockoutState(attempt_count=1), NOW)
        assert outcome.newly_locked
        assert outcome.state.lock_until == NOW + timedelta(seconds=60)


class TestChallengeConfig:
    def test_defaults(self) -> None:
        config = ChallengeConfig()
        assert config.code_length == 6
        assert config.cooldown_seconds == 30
        assert config.lockout_threshold == 5
        assert config.lockout_seconds == 30

    @pytest.mark.parametrize(
        "kwargs",
        [{"code_length": 0}, {"lockout_threshold": 0}, {"cooldown_seconds": -1}],
    )
    def test_invalid_values_rejected(self, kwargs: dict[str, int]) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ChallengeConfig(**kwargs)
        assert set(exc_info.value.errors) == set(kwargs)

    def test_every_invalid_field_reported(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ChallengeConfig(code_length=0, lockout_seconds=-1)
        assert exc_info.value.errors == {
            "code_length": ["must be positive"],
            "lockout_seconds": ["must not be negative"],
        }

    @pytest.mark.parametrize(
        ("factory", "field"),
        [
            (lambda: TrustConfig(trust_days=0), "trust_days"),
            (lambda: ReauthConfig(assertion_ttl_seconds=0), "assertion_ttl_seconds"),
            (lambda: RecoveryConfig(batch_size=0), "batch_size"),
            (lambda: RecoveryConfig(code_length=0), "code_length"),
        ],
    )
    def test_other_configs_validate(self, factory, field: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            factory()
        assert field in exc_info.value.errors
