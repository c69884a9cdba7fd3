"""Emit audit events to the store and the metrics counter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..observability import ChallengeMetrics

if TYPE_CHECKING:
    from ..ports import IChallengeAuditStore
    from .events import ChallengeAuditEvent

logger = logging.getLogger(__name__)


async def emit_event(
    store: IChallengeAuditStore | None, event: ChallengeAuditEvent
) -> None:
    """Count ``event`` and record it in ``store`` when one is configured.

    A failing store is logged and never interrupts the challenge flow.
    """
    ChallengeMetrics.record_event(event)
    if store is None:
        return
    try:
        await store.record(event)
    except Exception:  # noqa: BLE001
        logger.warning(
            "Failed to record audit event %s", event.event_type.value, exc_info=True
        )


__all__: list[str] = ["emit_event"]
