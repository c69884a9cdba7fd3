"""Verification channels and the per-purpose channel catalog.

The catalog is static data: which channels exist, how they are presented,
and which of them each challenge purpose may use.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from .exceptions import ChannelCatalogError
from .masking import mask_email, mask_phone


class ChallengePurpose(Enum):
    """Why a challenge was opened."""

    LOGIN_MFA = "login_mfa"
    PHONE_VERIFICATION = "phone_verification"
    EMAIL_VERIFICATION = "email_verification"
    STEP_UP_REAUTH = "step_up_reauth"


@dataclass(frozen=True)
class ChannelInfo:
    """Display and delivery metadata for a channel.

    Attributes:
        display_name: Title shown in the channel picker.
        resendable: Whether the engine dispatches (and can resend) a code.
        help_text: Instruction shown above the code entry. ``{destination}``
            is replaced by the masked destination when one is known.
        sent_message: Confirmation shown after a successful dispatch.
    """

    display_name: str
    resendable: bool
    help_text: str
    sent_message: str = ""


class Channel(Enum):
    """A way of receiving or entering a verification secret.

    ``PASSWORD`` is a pseudo-channel offered only for step-up
    re-authentication.
    """

    AUTHENTICATOR_APP = "authenticator_app"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    PASSWORD = "password"  # noqa: S105

    @property
    def info(self) -> ChannelInfo:
        return _CHANNEL_INFO[self]

    @property
    def display_name(self) -> str:
        return self.info.display_name

    @property
    def resendable(self) -> bool:
        return self.info.resendable

    @property
    def requires_dispatch(self) -> bool:
        """True when a code must be sent before it can be entered."""
        return self.info.resendable

    @property
    def is_password(self) -> bool:
        return self is Channel.PASSWORD


_CHANNEL_INFO: dict[Channel, ChannelInfo] = {
    Channel.AUTHENTICATOR_APP: ChannelInfo(
        display_name="Authenticator (TOTP)",
        resendable=False,
        help_text="Open your authenticator app and enter the 6-digit code.",
    ),
    Channel.SMS: ChannelInfo(
        display_name="SMS OTP",
        resendable=True,
        help_text="We sent a 6-digit code to your phone number{destination}.",
        sent_message="SMS code sent.",
    ),
    Channel.WHATSAPP: ChannelInfo(
        display_name="WhatsApp OTP",
        resendable=True,
        help_text="We sent a code to your WhatsApp{destination}.",
        sent_message="WhatsApp code sent.",
    ),
    Channel.EMAIL: ChannelInfo(
        display_name="Email OTP",
        resendable=True,
        help_text="We sent a code to your email address{destination}.",
        sent_message="Email code sent.",
    ),
    Channel.PASSWORD: ChannelInfo(
        display_name="Password",
        resendable=False,
        help_text="Confirm your password to continue.",
    ),
}


DEFAULT_CHANNELS: dict[ChallengePurpose, tuple[Channel, ...]] = {
    ChallengePurpose.LOGIN_MFA: (
        Channel.AUTHENTICATOR_APP,
        Channel.SMS,
        Channel.WHATSAPP,
        Channel.EMAIL,
    ),
    ChallengePurpose.PHONE_VERIFICATION: (Channel.SMS, Channel.WHATSAPP),
    ChallengePurpose.EMAIL_VERIFICATION: (Channel.EMAIL,),
    ChallengePurpose.STEP_UP_REAUTH: (
        Channel.PASSWORD,
        Channel.AUTHENTICATOR_APP,
        Channel.SMS,
        Channel.EMAIL,
    ),
}


class ChannelCatalog:
    """Ordered channel lookup per challenge purpose.

    Example:
        ```python
        catalog = ChannelCatalog()
        catalog.available_channels(ChallengePurpose.PHONE_VERIFICATION)
        # (Channel.SMS, Channel.WHATSAPP)
        ```
    """

    def __init__(
        self,
        channels: Mapping[ChallengePurpose, Sequence[Channel]] | None = None,
    ) -> None:
        source = DEFAULT_CHANNELS if channels is None else channels
        self._channels: dict[ChallengePurpose, tuple[Channel, ...]] = {}
        for purpose, listed in source.items():
            ordered = tuple(dict.fromkeys(listed))
            if purpose is not ChallengePurpose.STEP_UP_REAUTH and (
                Channel.PASSWORD in ordered
            ):
                raise ChannelCatalogError(
                    f"Password is only available for step-up, not {purpose.value}"
                )
            self._channels[purpose] = ordered

    def available_channels(self, purpose: ChallengePurpose) -> tuple[Channel, ...]:
        """Channels usable for ``purpose``, in presentation order.

        Returns an empty tuple when the purpose is not configured; callers
        that open a session on such a purpose get a ``ChannelCatalogError``.
        """
        return self._channels.get(purpose, ())

    def describe(self, channel: Channel, destination: str | None = None) -> str:
        """Render the help text for ``channel`` with a masked destination."""
        masked = ""
        if destination:
            if channel is Channel.EMAIL:
                masked = " " + mask_email(destination)
            elif channel in (Channel.SMS, Channel.WHATSAPP):
                masked = f" ending in {mask_phone(destination)[-4:]}"
        return channel.info.help_text.format(destination=masked)


__all__: list[str] = [
    "ChallengePurpose",
    "Channel",
    "ChannelInfo",
    "ChannelCatalog",
    "DEFAULT_CHANNELS",
]
