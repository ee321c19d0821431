"""Configuration management with Pydantic and Pydantic Settings.

Two sources feed the configuration:

- the JSON configuration file, holding per-platform bot tokens, channel
  aliases and defaults, validated by :class:`NotifeConfig`;
- environment variables (and an optional ``.env`` file), read through
  :class:`EnvironmentSettings`, which override the file's tokens and
  select the configuration file path.

Example:
    ```python
    from notife.config import load_config

    store = load_config()
    print(store.path)
    print(store.get_token(Platform.DISCORD))
    ```
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from notife.models import Platform

logger = logging.getLogger(__name__)

HOME_CONFIG_DIR = ".notife"
HOME_CONFIG_FILE = "config.json"
CWD_CONFIG_FILES = ("config.json", ".notife.json")
HOME_DOTFILE = ".notife.json"


class NotifeError(Exception):
    """Base exception for notife errors."""


class ConfigurationError(NotifeError):
    """Raised when the configuration cannot be used to send messages."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class BotConfig(BaseModel):
    """Bot credentials and channel aliases for one platform."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    token: str | None = None
    channels: dict[str, str] = Field(default_factory=dict)


class PlatformConfig(BaseModel):
    """Configuration block for one platform."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    bot: BotConfig | None = None


class DefaultsConfig(BaseModel):
    """Fallback platform and channel used when the CLI names none."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    platform: str | None = None
    channel: str | None = None


class NotifeConfig(BaseModel):
    """The configuration file document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    platforms: dict[str, PlatformConfig] = Field(default_factory=dict)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    def platform_config(self, platform: Platform) -> PlatformConfig | None:
        """Return the configuration block for a platform, if present."""
        return self.platforms.get(platform.value)

    def channel_aliases(self, platform: Platform) -> dict[str, str]:
        """Return the alias table for a platform (empty if unconfigured)."""
        block = self.platform_config(platform)
        if block is None or block.bot is None:
            return {}
        return block.bot.channels


class EnvironmentSettings(BaseSettings):
    """Process-level settings read from the environment.

    Loads ``NOTIFE_*`` variables with support for a ``.env`` file in the
    working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_path: str | None = Field(
        default=None,
        alias="NOTIFE_CONFIG_PATH",
        description="Explicit configuration file path",
    )
    discord_token: SecretStr | None = Field(
        default=None,
        alias="NOTIFE_DISCORD_TOKEN",
        description="Discord bot token, overrides the configuration file",
    )
    telegram_token: SecretStr | None = Field(
        default=None,
        alias="NOTIFE_TELEGRAM_TOKEN",
        description="Telegram bot token, overrides the configuration file",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        alias="NOTIFE_LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="NOTIFE_DRY_RUN",
        description="Preview messages instead of sending them",
    )

    def token_for(self, platform: Platform) -> str | None:
        """Return the non-empty token override for a platform."""
        secret = {
            Platform.DISCORD: self.discord_token,
            Platform.TELEGRAM: self.telegram_token,
        }[platform]
        if secret is None:
            return None
        return secret.get_secret_value() or None


@lru_cache(maxsize=1)
def get_settings() -> EnvironmentSettings:
    """Get the environment settings singleton.

    Raises:
        ValidationError: If an environment variable has an invalid value.
    """
    return EnvironmentSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()


def candidate_paths(
    *,
    home: Path,
    cwd: Path,
    env_path: str | None = None,
) -> list[Path]:
    """Return configuration file locations in priority order."""
    paths: list[Path] = []
    if env_path:
        paths.append(Path(env_path).expanduser())
    paths.append(home / HOME_CONFIG_DIR / HOME_CONFIG_FILE)
    paths.extend(cwd / name for name in CWD_CONFIG_FILES)
    paths.append(home / HOME_DOTFILE)
    return paths


def find_config_file(
    *,
    home: Path,
    cwd: Path,
    env_path: str | None = None,
) -> Path | None:
    """Return the first existing configuration file, or None."""
    for path in candidate_paths(home=home, cwd=cwd, env_path=env_path):
        if path.is_file():
            return path
    return None


def default_config_path(home: Path) -> Path:
    """Return the per-user configuration file path."""
    return home / HOME_CONFIG_DIR / HOME_CONFIG_FILE


@dataclass
class ConfigStore:
    """A loaded configuration plus token lookup and validation.

    Attributes:
        config: The parsed configuration document.
        path: File the configuration was read from, None if none was found.
        diagnostics: Non-fatal problems met while loading.
    """

    config: NotifeConfig
    path: Path | None = None
    diagnostics: list[str] = field(default_factory=list)

    def get_token(self, platform: Platform) -> str | None:
        """Return the bot token for a platform.

        The environment is read on every call and wins over the file.
        """
        override = EnvironmentSettings().token_for(platform)
        if override:
            return override
        block = self.config.platform_config(platform)
        if block is None or block.bot is None:
            return None
        return block.bot.token or None

    def validate(self) -> list[str]:
        """Return every problem that prevents sending, empty if valid."""
        errors: list[str] = []
        if not self.config.platforms:
            errors.append("No platforms configured")

        for platform in Platform:
            block = self.config.platform_config(platform)
            if block is None:
                continue
            if block.bot is None:
                errors.append(
                    f"{platform.display_name} platform configured but no bot configuration found"
                )
            elif not self.get_token(platform):
                errors.append(f"{platform.display_name} bot configured but no token provided")

        for name in self.config.platforms:
            if Platform.parse(name) is None:
                logger.debug("Ignoring unsupported platform in config: %s", name)

        return errors

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of the configuration with tokens masked."""
        platforms: dict[str, str] = {}
        for platform in Platform:
            block = self.config.platform_config(platform)
            if block is None and not self.get_token(platform):
                platforms[platform.value] = "(not configured)"
                continue
            token = "(set)" if self.get_token(platform) else "(not set)"
            aliases = ", ".join(sorted(self.config.channel_aliases(platform))) or "none"
            platforms[platform.value] = f"token {token}, channels: {aliases}"
        return {
            "config_path": str(self.path) if self.path else "(none)",
            "platforms": platforms,
            "default_platform": self.config.defaults.platform or "(not set)",
            "default_channel": self.config.defaults.channel or "(not set)",
        }


def _read_config(path: Path) -> NotifeConfig:
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    return NotifeConfig.model_validate(data)


def load_config(
    explicit_path: str | Path | None = None,
    *,
    home: Path | None = None,
    cwd: Path | None = None,
) -> ConfigStore:
    """Load the configuration file.

    An explicit path is used as given. Otherwise the first existing file
    among ``$NOTIFE_CONFIG_PATH``, ``~/.notife/config.json``,
    ``./config.json``, ``./.notife.json`` and ``~/.notife.json`` is read.

    A missing or unreadable file never fails: the store falls back to an
    empty configuration and records a diagnostic.

    Args:
        explicit_path: Path from the ``--config`` flag.
        home: Home directory, defaults to ``Path.home()``.
        cwd: Working directory, defaults to ``Path.cwd()``.

    Returns:
        The loaded ConfigStore.
    """
    home = home if home is not None else Path.home()
    cwd = cwd if cwd is not None else Path.cwd()

    if explicit_path is not None:
        path: Path | None = Path(explicit_path).expanduser()
    else:
        env_path = EnvironmentSettings().config_path
        path = find_config_file(home=home, cwd=cwd, env_path=env_path)

    if path is None or not path.is_file():
        shown = path or default_config_path(home)
        message = f"Config file not found at {shown}. Using default configuration."
        logger.warning(message)
        return ConfigStore(config=NotifeConfig(), path=None, diagnostics=[message])

    try:
        config = _read_config(path)
    except (OSError, ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        message = f"Error loading config file {path}: {e}"
        logger.warning(message)
        return ConfigStore(config=NotifeConfig(), path=path, diagnostics=[message])

    logger.debug("Loaded configuration from %s", path)
    return ConfigStore(config=config, path=path)
