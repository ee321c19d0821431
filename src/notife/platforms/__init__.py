"""Platform implementations for the supported chat services."""

from __future__ import annotations

from notife.models import Platform
from notife.platforms.base import DEFAULT_TIMEOUT, NotificationPlatform
from notife.platforms.discord import DiscordPlatform
from notife.platforms.telegram import TelegramPlatform

PLATFORMS: dict[Platform, type[DiscordPlatform] | type[TelegramPlatform]] = {
    Platform.DISCORD: DiscordPlatform,
    Platform.TELEGRAM: TelegramPlatform,
}


def create_platform(
    platform: Platform,
    token: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> NotificationPlatform:
    """Instantiate the implementation registered for a platform."""
    return PLATFORMS[platform](token, timeout=timeout)


__all__ = [
    "PLATFORMS",
    "DiscordPlatform",
    "NotificationPlatform",
    "TelegramPlatform",
    "create_platform",
]
