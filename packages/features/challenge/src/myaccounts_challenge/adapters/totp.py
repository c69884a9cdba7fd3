"""Authenticator-app code verification.

Works with any RFC 6238 authenticator app (Google Authenticator, Microsoft
Authenticator, Authy, 1Password, FreeOTP). Uses pyotp internally.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from myaccounts_core.domain.value_object import ValueObject

from ..channels import ChallengePurpose, Channel
from ..clock import Clock, SystemClock
from ..ports import CodeVerdict, ICodeVerifier

logger = logging.getLogger(__name__)


class TotpEnrollment(ValueObject):
    """Data needed to configure an authenticator app.

    Attributes:
        secret: Base32-encoded secret.
        qr_uri: ``otpauth://`` URI for QR code generation.
        manual_key: Secret grouped in fours for manual entry.
    """

    secret: str
    qr_uri: str
    manual_key: str


class ITotpSecretStore(Protocol):
    """Storage for TOTP secrets.

    Applications MUST implement this to store secrets securely; secrets
    should be encrypted at rest.
    """

    async def store_secret(self, identity: str, secret: str) -> None: ...

    async def get_secret(self, identity: str) -> str | None: ...

    async def delete_secret(self, identity: str) -> None: ...


class InMemoryTotpSecretStore(ITotpSecretStore):
    """In-memory TOTP secret store for TESTING ONLY.

    ⚠️ WARNING: Secrets are stored in plain text in memory.
    Do NOT use in production!
    """

    def __init__(self) -> None:
        self._secrets: dict[str, str] = {}

    async def store_secret(self, identity: str, secret: str) -> None:
        self._secrets[identity] = secret

    async def get_secret(self, identity: str) -> str | None:
        return self._secrets.get(identity)

    async def delete_secret(self, identity: str) -> None:
        self._secrets.pop(identity, None)


class TotpCodeVerifier(ICodeVerifier):
    """``ICodeVerifier`` for the authenticator-app channel.

    Example:
        ```python
        totp = TotpCodeVerifier(secret_store=InMemoryTotpSecretStore())
        enrollment = await totp.enroll("u1")
        print(f"Scan this QR: {enrollment.qr_uri}")

        verdict = await totp.verify_code(
            Channel.AUTHENTICATOR_APP, ChallengePurpose.LOGIN_MFA, "u1", "123456"
        )
        ```
    """

    def __init__(
        self,
        *,
        secret_store: ITotpSecretStore,
        issuer: str = "My Accounts",
        digits: int = 6,
        interval: int = 30,
        valid_window: int = 1,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            secret_store: Storage for TOTP secrets.
            issuer: Application name shown in the authenticator app.
            digits: Number of digits in a code (default 6).
            interval: Time step in seconds (default 30).
            valid_window: Accept codes ±N steps for clock drift (default 1).
            clock: Wall clock used as the verification time.
        """
        self.secret_store = secret_store
        self.issuer = issuer
        self.digits = digits
        self.interval = interval
        self.valid_window = valid_window
        self._clock = clock or SystemClock()

    def _get_pyotp(self) -> Any:
        """Lazy import pyotp."""
        try:
            import pyotp

            return pyotp
        except ImportError as e:
            raise ImportError(
                "pyotp is required for authenticator-app codes. "
                "Install with: pip install pyotp"
            ) from e

    def _totp(self, secret: str) -> Any:
        pyotp = self._get_pyotp()
        return pyotp.TOTP(
            secret, digits=self.digits, interval=self.interval, issuer=self.issuer
        )

    async def enroll(self, identity: str) -> TotpEnrollment:
        """Create and store a new secret for ``identity``."""
        secret = self._get_pyotp().random_base32()
        qr_uri = self._totp(secret).provisioning_uri(
            name=identity, issuer_name=self.issuer
        )
        await self.secret_store.store_secret(identity, secret)
        return TotpEnrollment(
            secret=secret,
            qr_uri=qr_uri,
            manual_key=self._format_secret(secret),
        )

    def _format_secret(self, secret: str) -> str:
        secret = secret.rstrip("=")
        return " ".join(secret[i : i + 4] for i in range(0, len(secret), 4))

    async def current_code(self, identity: str) -> str | None:
        """Code the authenticator app shows right now, for tests and demos."""
        secret = await self.secret_store.get_secret(identity)
        if not secret:
            return None
        return str(self._totp(secret).at(self._clock.now()))

    async def verify_code(
        self,
        channel: Channel,
        purpose: ChallengePurpose,
        identity: str,
        code: str,
    ) -> CodeVerdict:
        if channel is not Channel.AUTHENTICATOR_APP:
            return CodeVerdict.INCORRECT

        secret = await self.secret_store.get_secret(identity)
        if not secret:
            logger.info("No authenticator enrolled for %s", identity)
            return CodeVerdict.INCORRECT

        if self._totp(secret).verify(
            code, for_time=self._clock.now(), valid_window=self.valid_window
        ):
            return CodeVerdict.VERIFIED
        return CodeVerdict.INCORRECT

    async def disable(self, identity: str) -> None:
        await self.secret_store.delete_secret(identity)


__all__: list[str] = [
    "TotpEnrollment",
    "ITotpSecretStore",
    "InMemoryTotpSecretStore",
    "TotpCodeVerifier",
]
