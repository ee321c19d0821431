"""Channel alias resolution."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from notife.models import Platform

if TYPE_CHECKING:
    from notife.config import NotifeConfig

logger = logging.getLogger(__name__)

# Telegram group and channel chat IDs are negative
RAW_ID_PATTERNS: dict[Platform, re.Pattern[str]] = {
    Platform.DISCORD: re.compile(r"^\d+$"),
    Platform.TELEGRAM: re.compile(r"^-?\d+$"),
}


def is_raw_id(platform: Platform, value: str) -> bool:
    """Return True if the value is already a platform channel identifier."""
    return RAW_ID_PATTERNS[platform].match(value) is not None


def resolve_channel(platform: Platform, alias_or_id: str, config: NotifeConfig) -> str:
    """Map a channel alias to the identifier the platform API expects.

    Raw identifiers are returned unchanged. Unknown aliases are also
    returned unchanged; the platform rejects them at send time.

    Args:
        platform: Platform the channel belongs to.
        alias_or_id: Alias from the configuration or a raw identifier.
        config: Loaded configuration holding the alias tables.

    Returns:
        The resolved channel identifier.
    """
    if is_raw_id(platform, alias_or_id):
        return alias_or_id

    aliases = config.channel_aliases(platform)
    resolved = aliases.get(alias_or_id)
    if resolved is None:
        logger.debug("No %s alias named %r, using it as-is", platform.value, alias_or_id)
        return alias_or_id

    logger.debug("Resolved %s alias %r to %s", platform.value, alias_or_id, resolved)
    return resolved
