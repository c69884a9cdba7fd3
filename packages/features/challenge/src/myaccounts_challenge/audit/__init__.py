"""Audit module for challenge events."""

from __future__ import annotations

from .events import ChallengeAuditEvent, ChallengeEventType, challenge_event
from .memory import InMemoryChallengeAuditStore
from .recorder import emit_event

__all__: list[str] = [
    "ChallengeEventType",
    "ChallengeAuditEvent",
    "challenge_event",
    "emit_event",
    "InMemoryChallengeAuditStore",
]
