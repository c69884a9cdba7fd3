"""Reference collaborators: in-memory, authenticator-app, bcrypt and file store."""

from __future__ import annotations

from .file_store import JsonFileDeviceStore
from .memory import (
    InMemoryCodeBackend,
    InMemoryDeviceStore,
    InMemoryRecoveryCodeBackend,
    SentCode,
)
from .password import (
    HashedPasswordVerifier,
    InMemoryPasswordHashStore,
    IPasswordHashStore,
    PasswordHasher,
)
from .totp import (
    InMemoryTotpSecretStore,
    ITotpSecretStore,
    TotpCodeVerifier,
    TotpEnrollment,
)

__all__: list[str] = [
    "InMemoryDeviceStore",
    "InMemoryCodeBackend",
    "InMemoryRecoveryCodeBackend",
    "SentCode",
    "JsonFileDeviceStore",
    "PasswordHasher",
    "IPasswordHashStore",
    "InMemoryPasswordHashStore",
    "HashedPasswordVerifier",
    "TotpEnrollment",
    "ITotpSecretStore",
    "InMemoryTotpSecretStore",
    "TotpCodeVerifier",
]
