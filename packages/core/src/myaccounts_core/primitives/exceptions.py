"""Domain exceptions shared by every My Accounts package."""

from __future__ import annotations


class AccountsError(Exception):
    """Root exception for the whole My Accounts toolkit."""


class DomainError(AccountsError):
    """Base class for all domain-related errors."""


class InvariantViolationError(DomainError):
    """Raised when a domain invariant is violated."""


class ValidationError(AccountsError):
    """Raised when caller input fails validation.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))
