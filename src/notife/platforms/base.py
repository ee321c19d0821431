"""Capability interface shared by all platforms."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from notife.config import PlatformConfig
    from notife.models import PlatformPayload, SendResult

DEFAULT_TIMEOUT = 10.0


class NotificationPlatform(Protocol):
    """Protocol for platforms that can deliver a message."""

    name: str

    async def send(self, channel_id: str, payload: PlatformPayload) -> SendResult:
        """Send a formatted payload to a channel. Never raises."""
        ...

    def validate_config(self, config: PlatformConfig | None) -> bool:
        """Return True if the configuration block can be used to send."""
        ...

    async def test_connection(self) -> bool:
        """Return True if the platform accepts the bot token."""
        ...


def has_bot_token(config: PlatformConfig | None) -> bool:
    """Return True if the block carries a bot section with a token."""
    return config is not None and config.bot is not None and bool(config.bot.token)
