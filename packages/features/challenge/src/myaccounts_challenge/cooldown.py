"""Per-channel resend cooldown.

The timer is tick-driven: its owner calls ``tick()`` once per second while it
is active (see ``CooldownTicker``). It gates resends only; it never gates
verification.
"""

from __future__ import annotations

from .channels import Channel
from .exceptions import NotResendableError

DEFAULT_COOLDOWN_SECONDS = 30


class CooldownTimer:
    """Countdown that blocks "resend" for one channel.

    Example:
        ```python
        timer = CooldownTimer()
        timer.start(Channel.SMS)
        timer.can_send()          # False
        for _ in range(30):
            timer.tick()
        timer.can_send()          # True
        ```
    """

    def __init__(self, duration_seconds: int = DEFAULT_COOLDOWN_SECONDS) -> None:
        self.duration_seconds = duration_seconds
        self.channel: Channel | None = None
        self.remaining_seconds = 0
        self.active = False

    def start(self, channel: Channel) -> None:
        """Start counting down for ``channel``.

        Raises:
            NotResendableError: If the channel has nothing to resend.
        """
        if not channel.resendable:
            raise NotResendableError(
                f"{channel.display_name} codes are not sent, nothing to resend"
            )
        self.channel = channel
        self.remaining_seconds = self.duration_seconds
        self.active = self.remaining_seconds > 0

    def tick(self) -> None:
        """Advance one second. No-op while inactive."""
        if not self.active:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self.active = False

    def stop(self) -> None:
        """Release the timer immediately."""
        self.remaining_seconds = 0
        self.active = False

    def can_send(self) -> bool:
        return not self.active

    def __repr__(self) -> str:
        channel = self.channel.value if self.channel else None
        return (
            f"CooldownTimer(channel={channel!r}, "
            f"remaining_seconds={self.remaining_seconds}, active={self.active})"
        )


__all__: list[str] = ["CooldownTimer", "DEFAULT_COOLDOWN_SECONDS"]
