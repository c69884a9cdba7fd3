"""Destination masking for channel help copy."""

from __future__ import annotations

import re

_NON_DIGIT = re.compile(r"\D")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def mask_phone(phone: str) -> str:
    """Show only the last four digits.

    Example: ``+256701234567`` → ``****4567``
    """
    cleaned = _NON_DIGIT.sub("", phone)
    if len(cleaned) < 4:
        return "****"
    return "****" + cleaned[-4:]


def mask_email(email: str) -> str:
    """Show the first two characters of the local part and the domain.

    Example: ``john.doe@example.com`` → ``jo***@example.com``

    Values that are not email addresses are returned trimmed but unmasked.
    """
    trimmed = email.strip()
    if not _EMAIL.match(trimmed):
        return trimmed
    user, domain = trimmed.split("@", 1)
    safe_user = user[0] + "*" if len(user) <= 2 else user[:2] + "***"
    return f"{safe_user}@{domain}"


__all__: list[str] = ["mask_phone", "mask_email"]
