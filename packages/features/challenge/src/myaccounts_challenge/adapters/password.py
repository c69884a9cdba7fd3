"""Password verification for step-up re-authentication.

bcrypt-based hashing with rehash detection.
"""

from __future__ import annotations

from typing import Any, Protocol, cast

from ..ports import IPasswordVerifier, PasswordVerdict


class PasswordHasher:
    """Password hasher using bcrypt.

    Example:
        ```python
        hasher = PasswordHasher()
        hashed = hasher.hash("user_password")

        if hasher.verify(hashed, "user_password"):
            if hasher.needs_rehash(hashed):
                new_hash = hasher.hash("user_password")
        ```
    """

    def __init__(self, *, rounds: int = 12) -> None:
        """Initialize the password hasher.

        Args:
            rounds: bcrypt rounds (cost factor, default 12).
        """
        self.rounds = rounds
        self._bcrypt: Any = None

    def _get_bcrypt(self) -> Any:
        """Lazy import bcrypt."""
        if self._bcrypt is None:
            try:
                import bcrypt

                self._bcrypt = bcrypt
            except ImportError as e:
                raise ImportError(
                    "bcrypt is required for password hashing. "
                    "Install with: pip install bcrypt"
                ) from e
        return self._bcrypt

    def hash(self, password: str) -> str:
        bcrypt_module = self._get_bcrypt()
        salt = bcrypt_module.gensalt(rounds=self.rounds)
        return bcrypt_module.hashpw(password.encode(), salt).decode()  # type: ignore[no-any-return]

    def verify(self, hashed_password: str, password: str) -> bool:
        bcrypt_module = self._get_bcrypt()
        try:
            return cast(
                "bool",
                bcrypt_module.checkpw(password.encode(), hashed_password.encode()),
            )
        except ValueError:
            # Malformed hash
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was made with fewer rounds than configured."""
        # bcrypt format: $2b$12$...
        parts = hashed_password.split("$")
        if len(parts) >= 3:
            try:
                return int(parts[2]) < self.rounds
            except ValueError:
                pass
        return False


class IPasswordHashStore(Protocol):
    """Lookup of an identity's current password hash."""

    async def get_password_hash(self, identity: str) -> str | None: ...


class InMemoryPasswordHashStore(IPasswordHashStore):
    """In-memory password hash store for TESTING ONLY."""

    def __init__(self, hasher: PasswordHasher | None = None) -> None:
        self._hasher = hasher or PasswordHasher(rounds=4)
        self._hashes: dict[str, str] = {}

    def set_password(self, identity: str, password: str) -> None:
        self._hashes[identity] = self._hasher.hash(password)

    async def get_password_hash(self, identity: str) -> str | None:
        return self._hashes.get(identity)


class HashedPasswordVerifier(IPasswordVerifier):
    """``IPasswordVerifier`` backed by stored bcrypt hashes.

    Example:
        ```python
        hashes = InMemoryPasswordHashStore()
        hashes.set_password("u1", "correct horse")
        verifier = HashedPasswordVerifier(hashes)
        await verifier.verify_password("u1", "correct horse")  # VERIFIED
        ```
    """

    def __init__(
        self,
        hash_store: IPasswordHashStore,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._hash_store = hash_store
        self._hasher = hasher or PasswordHasher()

    async def verify_password(self, identity: str, password: str) -> PasswordVerdict:
        hashed = await self._hash_store.get_password_hash(identity)
        if not hashed or not self._hasher.verify(hashed, password):
            return PasswordVerdict.INCORRECT
        return PasswordVerdict.VERIFIED


__all__: list[str] = [
    "PasswordHasher",
    "IPasswordHashStore",
    "InMemoryPasswordHashStore",
    "HashedPasswordVerifier",
]
