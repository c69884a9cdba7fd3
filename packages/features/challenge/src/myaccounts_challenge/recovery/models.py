"""Recovery code value objects."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import Field, model_validator

from myaccounts_core.domain.value_object import ValueObject
from myaccounts_core.primitives.exceptions import InvariantViolationError

_DISALLOWED = re.compile(r"[^A-Z0-9-]")


def normalize_recovery_code(raw: str) -> str:
    """Normalise user input before redemption.

    Trims, upper-cases, drops whitespace and anything that is not ``A-Z``,
    ``0-9`` or ``-``.

    Example: ``" abcd-efgh\\n"`` → ``"ABCD-EFGH"``
    """
    return _DISALLOWED.sub("", "".join(raw.strip().upper().split()))


def compact_recovery_code(code: str) -> str:
    """Normalised code without grouping dashes, used for comparison."""
    return normalize_recovery_code(code).replace("-", "")


class RecoveryCode(ValueObject):
    """One single-use recovery code."""

    value: str
    used: bool = False

    @property
    def masked(self) -> str:
        """All but the last two characters hidden, dashes kept."""
        visible = 2
        out: list[str] = []
        seen = 0
        for ch in reversed(self.value):
            if ch == "-":
                out.append(ch)
                continue
            out.append(ch if seen < visible else "•")
            seen += 1
        return "".join(reversed(out))

    def matches(self, code: str) -> bool:
        return compact_recovery_code(self.value) == compact_recovery_code(code)


class RecoveryCodeSet(ValueObject):
    """A batch of recovery codes, replaced as a whole on regeneration.

    Attributes:
        batch_id: Identifier of the batch; a new batch gets a new id.
        codes: Codes in display order.
        generated_at: When the batch was issued ("last generated").
    """

    batch_id: str
    codes: tuple[RecoveryCode, ...] = Field(default_factory=tuple)
    generated_at: datetime

    @model_validator(mode="after")
    def _codes_are_distinct(self) -> RecoveryCodeSet:
        compact = [compact_recovery_code(code.value) for code in self.codes]
        if len(set(compact)) != len(compact):
            raise InvariantViolationError(
                f"Recovery code batch {self.batch_id} contains duplicate codes"
            )
        return self

    @property
    def remaining(self) -> int:
        return sum(1 for code in self.codes if not code.used)

    @property
    def total(self) -> int:
        return len(self.codes)

    def find(self, code: str) -> RecoveryCode | None:
        for candidate in self.codes:
            if candidate.matches(code):
                return candidate
        return None

    def mark_used(self, code: str) -> RecoveryCodeSet:
        """Return a copy with ``code`` marked used (unchanged if absent)."""
        return self.model_copy(
            update={
                "codes": tuple(
                    c.model_copy(update={"used": True}) if c.matches(code) else c
                    for c in self.codes
                )
            }
        )

    def to_storage(self) -> dict[str, object]:
        return self.model_dump(mode="json")

    @classmethod
    def from_storage(cls, data: dict[str, object]) -> RecoveryCodeSet:
        return cls.model_validate(data)


__all__: list[str] = [
    "RecoveryCode",
    "RecoveryCodeSet",
    "normalize_recovery_code",
    "compact_recovery_code",
]
