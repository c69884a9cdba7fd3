"""CooldownTicker: drives a session's resend cooldown once per second."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from types import TracebackType
from typing import TYPE_CHECKING

from myaccounts_core.ports.background_worker import IBackgroundWorker

if TYPE_CHECKING:
    from .session import ChallengeSession

logger = logging.getLogger(__name__)


class CooldownTicker(IBackgroundWorker):
    """Owned background task calling ``session.tick()`` every ``interval``.

    Exactly one ticker per session. It stops by itself once the session is
    Verified or Abandoned, and ``stop()`` releases it on every other exit
    path. Use it as an async context manager so the task never outlives the
    screen that opened the session.

    Example:
        ```python
        async with CooldownTicker(session):
            await session.dispatch()
            ...
        ```
    """

    def __init__(self, session: ChallengeSession, interval: float = 1.0) -> None:
        self._session = session
        self._interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.debug("CooldownTicker started for session %s", self._session.session_id)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
            self._task = None
        logger.debug("CooldownTicker stopped for session %s", self._session.session_id)

    def run_once(self) -> None:
        """Advance one tick (useful in tests)."""
        self._session.tick()

    async def _run_loop(self) -> None:
        while self._running and not self._session.is_terminal:
            await asyncio.sleep(self._interval)
            try:
                self._session.tick()
            except Exception:
                logger.exception("CooldownTicker error")
        self._running = False

    async def __aenter__(self) -> CooldownTicker:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


__all__: list[str] = ["CooldownTicker"]
