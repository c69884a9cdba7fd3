"""Tests for the channel catalog and destination masking."""

from __future__ import annotations

import pytest

from myaccounts_challenge import (
    ChallengePurpose,
    Channel,
    ChannelCatalog,
    ChannelCatalogError,
    mask_email,
    mask_phone,
)


class TestChannel:
    def test_authenticator_app_is_not_resendable(self) -> None:
        assert Channel.AUTHENTICATOR_APP.resendable is False
        assert Channel.AUTHENTICATOR_APP.requires_dispatch is False

    @pytest.mark.parametrize("channel", [Channel.SMS, Channel.WHATSAPP, Channel.EMAIL])
    def test_delivered_channels_are_resendable(self, channel: Channel) -> None:
        assert channel.resendable is True
        assert channel.info.sent_message

    def test_password_is_pseudo_channel(self) -> None:
        assert Channel.PASSWORD.is_password
        assert not Channel.PASSWORD.requires_dispatch

    def test_display_names(self) -> None:
        assert Channel.AUTHENTICATOR_APP.display_name == "Authenticator (TOTP)"
        assert Channel.SMS.display_name == "SMS OTP"


class TestChannelCatalog:
    def test_login_mfa_order(self) -> None:
        catalog = ChannelCatalog()
        assert catalog.available_channels(ChallengePurpose.LOGIN_MFA) == (
            Channel.AUTHENTICATOR_APP,
            Channel.SMS,
            Channel.WHATSAPP,
            Channel.EMAIL,
        )

    def test_phone_and_email_verification(self) -> None:
        catalog = ChannelCatalog()
        assert catalog.available_channels(ChallengePurpose.PHONE_VERIFICATION) == (
            Channel.SMS,
            Channel.WHATSAPP,
        )
        assert catalog.available_channels(ChallengePurpose.EMAIL_VERIFICATION) == (
            Channel.EMAIL,
        )

    def test_step_up_exposes_password(self) -> None:
        channels = ChannelCatalog().available_channels(ChallengePurpose.STEP_UP_REAUTH)
        assert channels[0] is Channel.PASSWORD
        assert Channel.AUTHENTICATOR_APP in channels

    def test_password_only_for_step_up(self) -> None:
        with pytest.raises(ChannelCatalogError, match="only available for step-up"):
            ChannelCatalog({ChallengePurpose.LOGIN_MFA: [Channel.PASSWORD]})

    def test_unconfigured_purpose_is_empty(self) -> None:
        catalog = ChannelCatalog({ChallengePurpose.LOGIN_MFA: [Channel.SMS]})
        assert catalog.available_channels(ChallengePurpose.EMAIL_VERIFICATION) == ()

    def test_duplicates_are_collapsed_in_order(self) -> None:
        catalog = ChannelCatalog(
            {ChallengePurpose.LOGIN_MFA: [Channel.SMS, Channel.EMAIL, Channel.SMS]}
        )
        assert catalog.available_channels(ChallengePurpose.LOGIN_MFA) == (
            Channel.SMS,
            Channel.EMAIL,
        )

    def test_describe_without_destination(self) -> None:
        text = ChannelCatalog().describe(Channel.SMS)
        assert text == "We sent a 6-digit code to your phone number."

    def test_describe_masks_phone(self) -> None:
        text = ChannelCatalog().describe(Channel.SMS, "+256 701 234 567")
        assert text == "We sent a 6-digit code to your phone number ending in 4567."

    def test_describe_masks_email(self) -> None:
        text = ChannelCatalog().describe(Channel.EMAIL, "john.doe@example.com")
        assert text == "We sent a code to your email address jo***@example.com."

    def test_describe_ignores_destination_for_authenticator(self) -> None:
        text = ChannelCatalog().describe(Channel.AUTHENTICATOR_APP, "+256701234567")
        assert "4567" not in text


class TestMasking:
    def test_mask_phone(self) -> None:
        assert mask_phone("+256701234567") == "****4567"

    def test_mask_short_phone(self) -> None:
        assert mask_phone("12") == "****"

    def test_mask_email(self) -> None:
        assert mask_email("john.doe@example.com") == "jo***@example.com"

    def test_mask_short_local_part(self) -> None:
        assert mask_email("jo@example.com") == "j*@example.com"

    def test_non_email_is_returned_trimmed(self) -> None:
        assert mask_email("  not-an-email ") == "not-an-email"
