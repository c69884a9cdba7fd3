"""Primitives: exceptions, ID generation."""

from __future__ import annotations

from .exceptions import (
    AccountsError,
    DomainError,
    InvariantViolationError,
    ValidationError,
)
from .id_generator import IIDGenerator, UUID4Generator

__all__ = [
    "AccountsError",
    "DomainError",
    "IIDGenerator",
    "InvariantViolationError",
    "UUID4Generator",
    "ValidationError",
]
