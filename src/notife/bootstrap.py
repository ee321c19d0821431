"""First-run configuration scaffolding."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from notife.config import default_config_path

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE: dict[str, object] = {
    "platforms": {
        "discord": {
            "bot": {
                "token": "YOUR_DISCORD_BOT_TOKEN",
                "channels": {
                    "general": "123456789012345678",
                    "alerts": "234567890123456789",
                },
            },
        },
        "telegram": {
            "bot": {
                "token": "YOUR_TELEGRAM_BOT_TOKEN",
                "channels": {
                    "general": "-1001234567890",
                    "deployments": "@my_deploy_channel",
                },
            },
        },
    },
    "defaults": {
        "platform": "discord",
        "channel": "general",
    },
}


def initialize_config(home: Path) -> Path:
    """Write the configuration template to the per-user location.

    An existing file is left untouched.

    Args:
        home: Home directory.

    Returns:
        Path of the configuration file.
    """
    path = default_config_path(home)
    if path.exists():
        logger.debug("Configuration already exists at %s", path)
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(CONFIG_TEMPLATE, indent=2) + "\n", encoding="utf-8")
    logger.info("Created configuration template at %s", path)
    return path


def print_setup_help(path: Path) -> None:
    """Print first-run instructions."""
    print("Welcome to notife!")
    print()
    print(f"A configuration file has been created at: {path}")
    print()
    print("Please follow these steps:")
    print("  1. Edit the configuration file with your platform credentials")
    print("  2. Set the Discord bot token and channel IDs")
    print("  3. Set the Telegram bot token and chat IDs")
    print("  4. Run your command again")
    print()
    print("Tokens can also be provided with NOTIFE_DISCORD_TOKEN and NOTIFE_TELEGRAM_TOKEN.")
    print()
    print("Examples:")
    print('  notife --discord --channel alerts -m "Hello World!"')
    print('  notife --telegram --channel general -m "Deployment complete"')
