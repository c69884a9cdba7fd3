"""Recovery codes: value objects, redemption and regeneration."""

from __future__ import annotations

from .fallback import RecoveryFallback, RecoveryResult, RecoveryStatus
from .manager import REGENERATE_RECOVERY_CODES, RecoveryCodeManager
from .models import (
    RecoveryCode,
    RecoveryCodeSet,
    compact_recovery_code,
    normalize_recovery_code,
)

__all__: list[str] = [
    "RecoveryCode",
    "RecoveryCodeSet",
    "normalize_recovery_code",
    "compact_recovery_code",
    "RecoveryFallback",
    "RecoveryResult",
    "RecoveryStatus",
    "RecoveryCodeManager",
    "REGENERATE_RECOVERY_CODES",
]
