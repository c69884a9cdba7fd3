"""myaccounts-core: shared primitives for the My Accounts packages.

Holds the exception root, the immutable value-object base, ID generation,
correlation-id context and the background-worker lifecycle protocol. It has
no knowledge of authentication challenges and must not import from them.
"""

from __future__ import annotations

from .correlation import (
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from .domain import ValueObject
from .ports import IBackgroundWorker
from .primitives import (
    AccountsError,
    DomainError,
    IIDGenerator,
    InvariantViolationError,
    UUID4Generator,
    ValidationError,
)

__all__: list[str] = [
    "AccountsError",
    "DomainError",
    "InvariantViolationError",
    "ValidationError",
    "IIDGenerator",
    "UUID4Generator",
    "ValueObject",
    "IBackgroundWorker",
    "get_correlation_id",
    "set_correlation_id",
    "generate_correlation_id",
]

__version__ = "0.1.0"
