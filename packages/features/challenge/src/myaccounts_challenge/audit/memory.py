"""In-memory audit store for testing and development."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from ..ports import IChallengeAuditStore

if TYPE_CHECKING:
    from .events import ChallengeAuditEvent, ChallengeEventType


class InMemoryChallengeAuditStore(IChallengeAuditStore):
    """In-memory implementation of IChallengeAuditStore.

    Note:
        Events are stored in memory and will be lost on restart.
        Not suitable for production use.

    Example:
        ```python
        store = InMemoryChallengeAuditStore()
        engine = ChallengeEngine(..., audit_store=store)

        events = await store.get_events("user-123")
        ```
    """

    def __init__(self) -> None:
        self._events: list[ChallengeAuditEvent] = []
        self._by_identity: dict[str, list[int]] = defaultdict(list)
        self._by_type: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: ChallengeAuditEvent) -> None:
        index = len(self._events)
        self._events.append(event)

        if event.identity:
            self._by_identity[event.identity].append(index)

        self._by_type[event.event_type.value].append(index)

    async def get_events(
        self,
        identity: str,
        *,
        event_types: list[ChallengeEventType] | None = None,
        limit: int = 100,
    ) -> list[ChallengeAuditEvent]:
        indices = self._by_identity.get(identity, [])

        results: list[ChallengeAuditEvent] = []
        for idx in reversed(indices):  # Most recent first
            event = self._events[idx]
            if event_types and event.event_type not in event_types:
                continue
            results.append(event)
            if len(results) >= limit:
                break

        return results

    async def get_events_by_type(
        self,
        event_type: ChallengeEventType,
        *,
        limit: int = 100,
    ) -> list[ChallengeAuditEvent]:
        indices = self._by_type.get(event_type.value, [])
        return [self._events[idx] for idx in reversed(indices)][:limit]

    @property
    def events(self) -> list[ChallengeAuditEvent]:
        """All events in recording order."""
        return list(self._events)

    def clear(self) -> None:
        """Clear all events. Useful for testing."""
        self._events.clear()
        self._by_identity.clear()
        self._by_type.clear()


__all__: list[str] = ["InMemoryChallengeAuditStore"]
