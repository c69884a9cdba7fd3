"""Unit tests for challenge metrics and tracing."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from myaccounts_challenge import ChallengeAuditEvent, ChallengeEventType, Channel
from myaccounts_challenge.observability import (
    ChallengeMetrics,
    ChallengeTracing,
    record_lockout,
)
from myaccounts_challenge.observability import metrics as metrics_mod
from myaccounts_challenge.observability import tracing as tracing_mod


@pytest.fixture
def fake_registry(monkeypatch):
    """Swap the lazy Prometheus registry for mocks."""
    histogram, counter, lockouts = MagicMock(), MagicMock(), MagicMock()
    monkeypatch.setattr(metrics_mod._registry, "_initialized", True)
    monkeypatch.setattr(metrics_mod._registry, "_histogram", histogram)
    monkeypatch.setattr(metrics_mod._registry, "_counter", counter)
    monkeypatch.setattr(metrics_mod._registry, "_lockout_counter", lockouts)
    return histogram, counter, lockouts


@pytest.fixture
def fake_tracer(monkeypatch):
    tracer = MagicMock()
    span = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = span
    tracer.start_as_current_span.return_value.__exit__.return_value = None
    monkeypatch.setattr(tracing_mod._registry, "_initialized", True)
    monkeypatch.setattr(tracing_mod._registry, "_tracer", tracer)
    return tracer, span


class TestChallengeMetrics:
    def test_operation_records_duration_and_count(self, fake_registry) -> None:
        histogram, counter, _ = fake_registry

        with ChallengeMetrics.operation("verify", purpose="login_mfa", channel="sms"):
            pass

        histogram.labels.assert_called_once_with(
            purpose="login_mfa", channel="sms", operation="verify"
        )
        counter.labels.assert_called_once_with(
            purpose="login_mfa", channel="sms", operation="verify", result="success"
        )

    def test_operation_error_is_counted_and_reraised(self, fake_registry) -> None:
        _, counter, _ = fake_registry

        with pytest.raises(RuntimeError):
            with ChallengeMetrics.operation("dispatch"):
                raise RuntimeError("boom")

        assert counter.labels.call_args.kwargs["result"] == "error"

    def test_record_event(self, fake_registry) -> None:
        _, counter, _ = fake_registry
        event = ChallengeAuditEvent(
            event_type=ChallengeEventType.CODE_REJECTED,
            identity="u1",
            purpose="login_mfa",
            channel=Channel.SMS.value,
            success=False,
        )

        ChallengeMetrics.record_event(event)

        counter.labels.assert_called_once_with(
            purpose="login_mfa",
            channel="sms",
            operation="challenge.code.rejected",
            result="failure",
        )

    def test_record_lockout(self, fake_registry) -> None:
        _, _, lockouts = fake_registry
        record_lockout("login_mfa")
        lockouts.labels.assert_called_once_with(purpose="login_mfa")

    def test_broken_metric_does_not_escape(self, fake_registry) -> None:
        histogram, counter, _ = fake_registry
        histogram.labels.side_effect = ValueError("bad labels")
        counter.labels.side_effect = ValueError("bad labels")

        with ChallengeMetrics.operation("verify"):
            pass

    def test_operation_without_prometheus(self, monkeypatch) -> None:
        import builtins

        real_import = builtins.__import__
        monkeypatch.setattr(metrics_mod._registry, "_initialized", False)
        monkeypatch.setattr(metrics_mod._registry, "_histogram", None)
        monkeypatch.setattr(metrics_mod._registry, "_counter", None)
        monkeypatch.setattr(metrics_mod._registry, "_lockout_counter", None)

        def raise_for_prometheus(name, *args, **kwargs):
            if name == "prometheus_client":
                raise ImportError("No module named 'prometheus_client'")
            return real_import(name, *args, **kwargs)

        with patch("builtins.__import__", side_effect=raise_for_prometheus):
            with ChallengeMetrics.operation("verify"):
                pass
            record_lockout("login_mfa")

        assert metrics_mod._registry._counter is None


class TestChallengeTracing:
    def test_span_sets_attributes(self, fake_tracer) -> None:
        tracer, span = fake_tracer

        with ChallengeTracing.span(
            "dispatch",
            purpose="login_mfa",
            channel="sms",
            attributes={"challenge.attempt": 2},
        ) as current:
            ChallengeTracing.set_result(current, "accepted")

        tracer.start_as_current_span.assert_called_once_with("challenge.dispatch")
        span.set_attribute.assert_any_call("challenge.purpose", "login_mfa")
        span.set_attribute.assert_any_call("challenge.channel", "sms")
        span.set_attribute.assert_any_call("challenge.attempt", "2")
        span.set_attribute.assert_any_call("challenge.result", "accepted")

    def test_span_records_exception(self, fake_tracer) -> None:
        _, span = fake_tracer
        with patch.object(tracing_mod, "Status", MagicMock()), patch.object(
            tracing_mod, "StatusCode", MagicMock()
        ):
            with pytest.raises(ValueError):
                with ChallengeTracing.span("verify"):
                    raise ValueError("bad")
        span.record_exception.assert_called_once()

    def test_span_without_opentelemetry(self, monkeypatch) -> None:
        monkeypatch.setattr(tracing_mod, "HAS_OTEL", False)
        monkeypatch.setattr(tracing_mod._registry, "_initialized", False)
        monkeypatch.setattr(tracing_mod._registry, "_tracer", None)

        with ChallengeTracing.span("verify") as current:
            assert current is None
            ChallengeTracing.set_result(current, "verified")


class TestSessionInstrumentation:
    @pytest.mark.asyncio
    async def test_submit_is_timed(self, make_session, fake_registry) -> None:
        histogram, _, lockouts = fake_registry
        session = make_session()
        for _ in range(5):
            session.paste("000000")
            await session.submit()

        operations = [c.kwargs["operation"] for c in histogram.labels.call_args_list]
        assert operations == ["verify"] * 5
        lockouts.labels.assert_called_once_with(purpose="login_mfa")
