"""Fixed-length digit entry with paste and backspace handling."""

from __future__ import annotations

import re

from .exceptions import CallerMisuseError

_NON_DIGIT = re.compile(r"\D")


class CodeEntry:
    """Ordered digit slots, partially filled while the user types.

    ``focus`` tracks which slot the cursor should sit on. It is presentation
    state only; verification never reads it.
    """

    def __init__(self, length: int = 6) -> None:
        self.length = length
        self._digits: list[str | None] = [None] * length
        self.focus = 0

    @property
    def digits(self) -> tuple[str | None, ...]:
        return tuple(self._digits)

    @property
    def is_complete(self) -> bool:
        return all(d is not None for d in self._digits)

    @property
    def is_empty(self) -> bool:
        return all(d is None for d in self._digits)

    def value(self) -> str:
        """The assembled code.

        Raises:
            CallerMisuseError: If any slot is empty.
        """
        if not self.is_complete:
            raise CallerMisuseError("Code is incomplete")
        return "".join(d for d in self._digits if d is not None)

    def enter(self, index: int, raw: str) -> int:
        """Write ``raw`` at slot ``index`` and return the next focus slot.

        Non-digits are dropped. A single digit fills the slot and advances
        focus. Several digits are treated as a paste: they fill from
        ``index`` to the end, surplus digits are discarded, and slots before
        ``index`` are left alone. An empty value clears the slot.
        """
        self._check_index(index)
        digits = _NON_DIGIT.sub("", raw)

        if not digits:
            self._digits[index] = None
            self.focus = index
            return self.focus

        room = self.length - index
        for offset, digit in enumerate(digits[:room]):
            self._digits[index + offset] = digit

        filled = min(len(digits), room)
        self.focus = min(index + filled, self.length - 1)
        return self.focus

    def backspace(self, index: int) -> int:
        """Handle backspace at ``index``; return the next focus slot.

        A filled slot is cleared in place. On an empty slot focus moves back
        one position without touching any digit.
        """
        self._check_index(index)
        if self._digits[index] is not None:
            self._digits[index] = None
            self.focus = index
        elif index > 0:
            self.focus = index - 1
        else:
            self.focus = 0
        return self.focus

    def clear(self) -> None:
        self._digits = [None] * self.length
        self.focus = 0

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.length:
            raise CallerMisuseError(
                f"Digit index {index} is outside 0..{self.length - 1}"
            )

    def __repr__(self) -> str:
        shown = "".join("*" if d is not None else "_" for d in self._digits)
        return f"CodeEntry({shown!r})"


__all__: list[str] = ["CodeEntry"]
