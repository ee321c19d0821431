"""Message formatter for Discord and Telegram payloads.

This module turns a message string and its MessageOptions into the
request body each platform expects: plain text, Telegram MarkdownV2 or
an embed (native on Discord, emulated with bold markdown on Telegram).
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from typing import Any

from notife.models import (
    DiscordPayload,
    MessageOptions,
    Platform,
    PlatformPayload,
    TelegramPayload,
)

logger = logging.getLogger(__name__)

EMBED_SEPARATOR = "|"
DEFAULT_EMBED_TITLE = "Notification"
TELEGRAM_PARSE_MODE = "MarkdownV2"

# Reserved characters of Telegram MarkdownV2
MARKDOWN_V2_SPECIAL_CHARS = (
    "_", "*", "[", "]", "(", ")", "~", "`", ">",
    "#", "+", "-", "=", "|", "{", "}", ".", "!",
)  # fmt: skip

_MARKDOWN_V2_PATTERN = re.compile(
    "([" + "".join(re.escape(c) for c in MARKDOWN_V2_SPECIAL_CHARS) + "])"
)


def escape_markdown_v2(text: str) -> str:
    """Prefix every MarkdownV2 reserved character with a backslash.

    Not idempotent: escaping an escaped string doubles the backslashes.
    """
    return _MARKDOWN_V2_PATTERN.sub(r"\\\1", text)


def parse_color(value: str | None) -> int | None:
    """Parse a hex colour such as ``#ff0000`` into an integer."""
    if not value:
        return None
    try:
        return int(value.strip().replace("#", "", 1), 16)
    except ValueError:
        logger.warning(f"Ignoring invalid embed color: {value!r}")
        return None


def split_embed(message: str, options: MessageOptions) -> tuple[str, str, str | None]:
    """Split ``Title|Description|Color`` into its parts.

    The title falls back to ``options.title`` and then to
    ``"Notification"``; the description falls back to the whole message.
    """
    parts = message.split(EMBED_SEPARATOR)
    title = parts[0] or options.title or DEFAULT_EMBED_TITLE
    description = parts[1] if len(parts) > 1 and parts[1] else message
    color = parts[2] if len(parts) > 2 and parts[2] else options.color
    return title, description, color


def format_discord(
    message: str,
    options: MessageOptions,
    *,
    now: datetime | None = None,
) -> DiscordPayload:
    """Build a Discord create-message payload.

    Markdown needs no escaping on Discord, so only ``embed`` changes the
    payload shape.
    """
    if options.format != "embed":
        return DiscordPayload(content=message)

    title, description, color_str = split_embed(message, options)
    embed: dict[str, Any] = {
        "title": title,
        "description": description,
        "timestamp": (now or datetime.now(UTC)).isoformat(),
    }

    color = parse_color(color_str)
    if color is not None:
        embed["color"] = color

    if options.fields:
        embed["fields"] = [f.to_dict() for f in options.fields]

    return DiscordPayload(embeds=(embed,))


def _telegram_embed_text(message: str, options: MessageOptions) -> str:
    title, description, _ = split_embed(message, options)
    text = f"*{escape_markdown_v2(title)}*\n\n{escape_markdown_v2(description)}"

    if options.fields:
        text += "\n\n"
        for f in options.fields:
            text += f"*{escape_markdown_v2(f.name)}:* {escape_markdown_v2(f.value)}\n"

    return text


def format_telegram(message: str, options: MessageOptions) -> TelegramPayload:
    """Build a Telegram sendMessage payload (without ``chat_id``)."""
    if options.format == "markdown":
        return TelegramPayload(
            text=escape_markdown_v2(message),
            disable_notification=options.silent,
            parse_mode=TELEGRAM_PARSE_MODE,
        )

    if options.format == "embed":
        return TelegramPayload(
            text=_telegram_embed_text(message, options),
            disable_notification=options.silent,
            parse_mode=TELEGRAM_PARSE_MODE,
        )

    return TelegramPayload(text=message, disable_notification=options.silent)


def format_message(
    platform: Platform,
    message: str,
    options: MessageOptions,
    *,
    now: datetime | None = None,
) -> PlatformPayload:
    """Format a message for the given platform.

    Args:
        platform: Target platform.
        message: Raw message text from the user.
        options: Format selector and embed options.
        now: Embed timestamp override, defaults to the current UTC time.

    Returns:
        The platform-specific payload.
    """
    if platform is Platform.DISCORD:
        return format_discord(message, options, now=now)
    return format_telegram(message, options)
