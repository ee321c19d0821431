"""Data models shared by the formatter, platforms and dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

MessageFormat = Literal["plain", "markdown", "embed"]

MESSAGE_FORMATS: tuple[MessageFormat, ...] = ("plain", "markdown", "embed")


class Platform(Enum):
    """Chat platforms a message can be delivered to."""

    DISCORD = "discord"
    TELEGRAM = "telegram"

    @property
    def display_name(self) -> str:
        """Return the capitalized platform name for messages."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, name: str) -> Platform | None:
        """Return the platform for a name, or None if it is not supported."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class EmbedField:
    """A name/value pair rendered inside an embed."""

    name: str
    value: str
    inline: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the Discord embed field representation."""
        return {"name": self.name, "value": self.value, "inline": self.inline}


@dataclass(frozen=True)
class MessageOptions:
    """Formatting and delivery options for a single message.

    Attributes:
        format: Output format, one of plain, markdown or embed.
        silent: Deliver without a notification sound where supported.
        title: Embed title used when the message carries none.
        color: Embed colour as a hex string, with or without ``#``.
        fields: Extra embed fields.
    """

    format: MessageFormat = "plain"
    silent: bool = False
    title: str | None = None
    color: str | None = None
    fields: tuple[EmbedField, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return the options as a plain dictionary for previews."""
        data: dict[str, Any] = {"format": self.format, "silent": self.silent}
        if self.title is not None:
            data["title"] = self.title
        if self.color is not None:
            data["color"] = self.color
        if self.fields:
            data["fields"] = [f.to_dict() for f in self.fields]
        return data


@dataclass(frozen=True)
class DiscordPayload:
    """Body of a Discord create-message request.

    Exactly one of ``content`` or ``embeds`` is set.
    """

    content: str | None = None
    embeds: tuple[dict[str, Any], ...] = ()

    def to_json(self) -> dict[str, Any]:
        """Return the JSON body for the Discord API."""
        if self.embeds:
            return {"embeds": list(self.embeds)}
        return {"content": self.content or ""}


@dataclass(frozen=True)
class TelegramPayload:
    """Body of a Telegram sendMessage request, minus the chat ID."""

    text: str
    disable_notification: bool = False
    parse_mode: str | None = None

    def to_json(self, chat_id: str) -> dict[str, Any]:
        """Return the JSON body for the Telegram Bot API."""
        body: dict[str, Any] = {
            "chat_id": chat_id,
            "text": self.text,
            "disable_notification": self.disable_notification,
        }
        if self.parse_mode:
            body["parse_mode"] = self.parse_mode
        return body


PlatformPayload = DiscordPayload | TelegramPayload


@dataclass(frozen=True)
class SendResult:
    """Outcome of a single send attempt to one platform.

    Attributes:
        success: Whether the platform accepted the message.
        message_id: Identifier returned by the platform on success.
        error: Human-readable failure description.
        timestamp: When the attempt finished.
    """

    success: bool
    message_id: str | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def ok(cls, message_id: str | None = None) -> SendResult:
        """Build a successful result."""
        return cls(success=True, message_id=message_id)

    @classmethod
    def failure(cls, error: str) -> SendResult:
        """Build a failed result."""
        return cls(success=False, error=error)
