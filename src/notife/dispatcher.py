"""Message dispatcher for multi-platform delivery."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import SecretStr

from notife.config import ConfigurationError
from notife.formatter import format_message
from notife.models import MessageFormat, MessageOptions, Platform, SendResult
from notife.platforms import create_platform
from notife.platforms.base import DEFAULT_TIMEOUT
from notife.resolver import resolve_channel

if TYPE_CHECKING:
    from notife.config import ConfigStore, NotifeConfig
    from notife.models import PlatformPayload
    from notife.platforms.base import NotificationPlatform

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM = Platform.DISCORD
DEFAULT_DISCORD_CHANNEL = "general"

PlatformFactory = Callable[..., "NotificationPlatform"]


@dataclass(frozen=True)
class DispatchRequest:
    """A single send request built from the command line.

    Attributes:
        message: Message text.
        discord: Send to Discord.
        telegram: Send to Telegram.
        channel: Channel alias.
        channel_id: Raw channel identifier, takes precedence over ``channel``.
        format: Message format.
        silent: Send without notification and suppress success output.
        dry_run: Preview instead of sending.
    """

    message: str
    discord: bool = False
    telegram: bool = False
    channel: str | None = None
    channel_id: str | None = None
    format: MessageFormat = "plain"
    silent: bool = False
    dry_run: bool = False

    @property
    def options(self) -> MessageOptions:
        """Return the message options for this request."""
        return MessageOptions(format=self.format, silent=self.silent)


@dataclass(frozen=True)
class ResolvedTarget:
    """Where and with which credential a platform message goes."""

    platform: Platform
    token: SecretStr | None
    channel_id: str


@dataclass(frozen=True)
class DryRunPreview:
    """What would have been sent to one platform."""

    platform: Platform
    target: str
    message: str
    options: dict[str, Any]
    payload: PlatformPayload

    def describe(self) -> str:
        """Return a multi-line human-readable preview."""
        lines = [
            f"[DRY RUN] Would send to {self.platform.value}:",
            f"  Target: {self.target}",
            f"  Message: {self.message}",
            f"  Options: {self.options}",
        ]
        return "\n".join(lines)


@dataclass
class PlatformOutcome:
    """What happened for one selected platform.

    Exactly one of ``result``, ``preview`` or ``skipped_reason`` is set.
    """

    platform_name: str
    result: SendResult | None = None
    preview: DryRunPreview | None = None
    skipped_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return True for a delivered message or a dry-run preview."""
        if self.preview is not None:
            return True
        return self.result is not None and self.result.success


@dataclass
class DispatchReport:
    """Result of dispatching a message to all selected platforms."""

    outcomes: list[PlatformOutcome] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def success_count(self) -> int:
        """Return the number of platforms that succeeded."""
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failure_count(self) -> int:
        """Return the number of platforms that failed or were skipped."""
        return len(self.outcomes) - self.success_count

    @property
    def all_succeeded(self) -> bool:
        """Return True if every selected platform succeeded."""
        return self.failure_count == 0 and self.success_count > 0


class Dispatcher:
    """Dispatcher for sending one message to the selected platforms.

    Validates the configuration, picks platforms and channels, and then
    previews or sends to each platform in turn. A failure on one
    platform never stops the next.
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        platform_factory: PlatformFactory = create_platform,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: Loaded configuration.
            platform_factory: Builds a platform from (platform, token, timeout=).
            timeout: HTTP request timeout in seconds.
        """
        self.store = store
        self.platform_factory = platform_factory
        self.timeout = timeout

    @property
    def config(self) -> NotifeConfig:
        """Return the loaded configuration document."""
        return self.store.config

    def select_platforms(self, request: DispatchRequest) -> list[str]:
        """Return the platform names to send to, in order."""
        selected: list[str] = []
        if request.discord:
            selected.append(Platform.DISCORD.value)
        if request.telegram:
            selected.append(Platform.TELEGRAM.value)
        if selected:
            return selected
        return [self.config.defaults.platform or DEFAULT_PLATFORM.value]

    def select_channel(self, platform: Platform, request: DispatchRequest) -> str | None:
        """Return the channel alias or ID for a platform, None if there is none."""
        target = request.channel_id or request.channel or self.config.defaults.channel
        if not target and platform is Platform.DISCORD:
            target = DEFAULT_DISCORD_CHANNEL
        return target or None

    def resolve_target(self, platform: Platform, channel: str) -> ResolvedTarget:
        """Resolve the channel alias and token for a platform."""
        token = self.store.get_token(platform)
        return ResolvedTarget(
            platform=platform,
            token=SecretStr(token) if token else None,
            channel_id=resolve_channel(platform, channel, self.config),
        )

    async def dispatch(self, request: DispatchRequest) -> DispatchReport:
        """Preview or send a message to every selected platform.

        Args:
            request: The send request.

        Returns:
            DispatchReport with one outcome per selected platform.

        Raises:
            ConfigurationError: If the configuration is invalid. Raised
                before any network activity.
        """
        errors = self.store.validate()
        if errors:
            raise ConfigurationError(errors)

        report = DispatchReport()
        for name in self.select_platforms(request):
            outcome = await self._dispatch_one(name, request)
            report.outcomes.append(outcome)

        logger.info(
            f"Dispatch complete: {report.success_count}/{len(report.outcomes)} succeeded"
        )
        return report

    async def _dispatch_one(self, name: str, request: DispatchRequest) -> PlatformOutcome:
        platform = Platform.parse(name)
        if platform is None:
            logger.info(f"Unsupported platform: {name}")
            return PlatformOutcome(name, skipped_reason=f"Unsupported platform: {name}")

        channel = self.select_channel(platform, request)
        if channel is None:
            reason = (
                f"{platform.display_name} requires --channelID or --channel parameter"
            )
            logger.info(reason)
            return PlatformOutcome(name, skipped_reason=reason)

        target = self.resolve_target(platform, channel)
        options = request.options
        payload = format_message(platform, request.message, options)

        if request.dry_run:
            preview = DryRunPreview(
                platform=platform,
                target=target.channel_id,
                message=request.message,
                options=options.to_dict(),
                payload=payload,
            )
            logger.debug(f"Dry run for {name}, not sending")
            return PlatformOutcome(name, preview=preview)

        if target.token is None:
            error = f"{platform.display_name} bot token not configured"
            logger.error(error)
            return PlatformOutcome(name, result=SendResult.failure(error))

        sender = self.platform_factory(
            platform, target.token.get_secret_value(), timeout=self.timeout
        )
        try:
            result = await sender.send(target.channel_id, payload)
        except Exception as e:
            logger.error(f"Error sending to {name}: {e}")
            result = SendResult.failure(f"{platform.display_name} send error: {e}")

        return PlatformOutcome(name, result=result)
