"""Tests for CooldownTicker."""

from __future__ import annotations

import asyncio

import pytest

from myaccounts_challenge import Channel, CooldownTicker


async def _sent(make_session):
    session = make_session(initial_channel=Channel.SMS)
    await session.dispatch()
    return session


class TestCooldownTicker:
    @pytest.mark.asyncio
    async def test_run_once(self, make_session) -> None:
        session = await _sent(make_session)
        CooldownTicker(session).run_once()
        assert session.cooldown_remaining_seconds == 29

    @pytest.mark.asyncio
    async def test_ticks_while_running(self, make_session) -> None:
        session = await _sent(make_session)

        async with CooldownTicker(session, interval=0.01) as ticker:
            assert ticker.running
            await asyncio.sleep(0.1)

        assert session.cooldown_remaining_seconds < 30
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_stops_when_session_closes(self, make_session) -> None:
        session = await _sent(make_session)
        ticker = CooldownTicker(session, interval=0.01)
        await ticker.start()

        session.abandon()
        await asyncio.sleep(0.05)

        assert not ticker.running
        await ticker.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, make_session) -> None:
        session = await _sent(make_session)
        ticker = CooldownTicker(session, interval=10)
        await ticker.start()
        task = ticker._task
        await ticker.start()
        assert ticker._task is task
        await ticker.stop()
        assert ticker._task is None

    @pytest.mark.asyncio
    async def test_stop_before_start(self, make_session) -> None:
        ticker = CooldownTicker(make_session())
        await ticker.stop()
        assert not ticker.running

    @pytest.mark.asyncio
    async def test_ticking_without_cooldown(self, make_session) -> None:
        session = make_session()
        async with CooldownTicker(session, interval=0.01):
            await asyncio.sleep(0.03)
        assert session.cooldown is None
