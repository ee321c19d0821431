"""Discord bot API platform implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from notife.models import DiscordPayload, SendResult
from notife.platforms.base import DEFAULT_TIMEOUT, has_bot_token

if TYPE_CHECKING:
    from notife.config import PlatformConfig
    from notife.models import PlatformPayload

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
DISCORD_MESSAGES_URL = DISCORD_API_BASE + "/channels/{channel_id}/messages"
DISCORD_ME_URL = DISCORD_API_BASE + "/users/@me"


class DiscordPlatform:
    """Discord bot platform for sending messages.

    Posts messages to a channel through the bot API. Each send is a
    single request; failures come back as a failed SendResult.
    """

    def __init__(self, token: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize Discord platform.

        Args:
            token: Discord bot token.
            timeout: HTTP request timeout in seconds.
        """
        self.token = token
        self.timeout = timeout
        self.name = "discord"

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.token}"}

    async def send(self, channel_id: str, payload: PlatformPayload) -> SendResult:
        """Send a message to a Discord channel.

        Args:
            channel_id: Discord channel ID.
            payload: Discord message payload.

        Returns:
            SendResult carrying the created message ID on success.
        """
        if not isinstance(payload, DiscordPayload):
            return SendResult.failure(f"Discord cannot send {type(payload).__name__}")

        url = DISCORD_MESSAGES_URL.format(channel_id=channel_id)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json=payload.to_json(),
                    headers=self._headers,
                )

                if not response.is_success:
                    logger.error(
                        f"Discord API failed: {response.status_code} {response.text}"
                    )
                    return SendResult.failure(
                        f"Bot API request failed: {response.status_code} {response.text}"
                    )

                message_id = response.json().get("id")

        except httpx.TimeoutException as e:
            logger.warning(f"Discord API timeout: {e}")
            return SendResult.failure(f"Bot API error: request timed out ({e})")
        except httpx.HTTPError as e:
            logger.error(f"Discord API error: {e}")
            return SendResult.failure(f"Bot API error: {e}")
        except (ValueError, AttributeError) as e:
            logger.error(f"Discord API returned an unexpected response: {e}")
            return SendResult.failure(f"Bot API error: invalid response ({e})")

        logger.info("Discord message delivered successfully")
        return SendResult.ok(str(message_id) if message_id is not None else None)

    def validate_config(self, config: PlatformConfig | None) -> bool:
        """Return True if the block has a bot token."""
        return has_bot_token(config)

    async def test_connection(self) -> bool:
        """Check the token against the current-bot endpoint."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(DISCORD_ME_URL, headers=self._headers)
                return response.is_success
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(f"Discord connection test failed: {e}")
            return False
