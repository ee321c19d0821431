"""Telegram Bot API platform implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from notife.models import SendResult, TelegramPayload
from notife.platforms.base import DEFAULT_TIMEOUT, has_bot_token

if TYPE_CHECKING:
    from notife.config import PlatformConfig
    from notife.models import PlatformPayload

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}/{method}"


class TelegramPlatform:
    """Telegram Bot API platform for sending messages.

    Sends messages to a chat via the Bot API sendMessage method with a
    single attempt per message.
    """

    def __init__(self, token: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize Telegram platform.

        Args:
            token: Telegram bot token.
            timeout: HTTP request timeout in seconds.
        """
        self.token = token
        self.timeout = timeout
        self.name = "telegram"

    def _api_url(self, method: str) -> str:
        return TELEGRAM_API_BASE.format(token=self.token, method=method)

    async def send(self, channel_id: str, payload: PlatformPayload) -> SendResult:
        """Send a message to a Telegram chat.

        Args:
            channel_id: Telegram chat ID or @channel username.
            payload: Telegram message payload.

        Returns:
            SendResult carrying the message ID on success.
        """
        if not isinstance(payload, TelegramPayload):
            return SendResult.failure(f"Telegram cannot send {type(payload).__name__}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._api_url("sendMessage"),
                    json=payload.to_json(channel_id),
                )

                result = response.json()

                if not response.is_success or not result.get("ok"):
                    description = result.get("description") or "Unknown error"
                    logger.error(
                        f"Telegram API error: {response.status_code} - {description}"
                    )
                    return SendResult.failure(
                        f"Telegram API request failed: {response.status_code} {description}"
                    )

                message_id = result["result"]["message_id"]

        except httpx.TimeoutException as e:
            logger.warning(f"Telegram API timeout: {e}")
            return SendResult.failure(f"Telegram API error: request timed out ({e})")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Telegram API error: {e}")
            return SendResult.failure(f"Telegram API error: {e}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Telegram API returned an unexpected response: {e}")
            return SendResult.failure(f"Telegram API error: invalid response ({e})")

        logger.info("Telegram message delivered successfully")
        return SendResult.ok(str(message_id))

    def validate_config(self, config: PlatformConfig | None) -> bool:
        """Return True if the block has a bot token."""
        return has_bot_token(config)

    async def test_connection(self) -> bool:
        """Check the token with the getMe method."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self._api_url("getMe"))
                return response.is_success
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(f"Telegram connection test failed: {e}")
            return False
