"""Tests for the message dispatcher."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notife.config import ConfigStore, ConfigurationError, NotifeConfig
from notife.dispatcher import (
    DEFAULT_DISCORD_CHANNEL,
    Dispatcher,
    DispatchReport,
    DispatchRequest,
    PlatformOutcome,
)
from notife.models import DiscordPayload, Platform, SendResult, TelegramPayload

# ============================================================================
# Fixtures
# ============================================================================


def make_store(data: dict[str, object]) -> ConfigStore:
    return ConfigStore(config=NotifeConfig.model_validate(data))


@pytest.fixture
def both_platforms() -> ConfigStore:
    """Both platforms configured, no defaults."""
    return make_store(
        {
            "platforms": {
                "discord": {
                    "bot": {"token": "d-token", "channels": {"alerts": "111111111111111111"}}
                },
                "telegram": {
                    "bot": {"token": "t-token", "channels": {"ops": "-1009876543210"}}
                },
            }
        }
    )


@pytest.fixture
def senders() -> dict[Platform, MagicMock]:
    """Mock platforms keyed by platform."""
    result = {}
    for platform, message_id in ((Platform.DISCORD, "d-1"), (Platform.TELEGRAM, "t-1")):
        sender = MagicMock()
        sender.name = platform.value
        sender.send = AsyncMock(return_value=SendResult.ok(message_id))
        result[platform] = sender
    return result


@pytest.fixture
def factory(senders: dict[Platform, MagicMock]) -> MagicMock:
    """Platform factory returning the mock senders."""
    return MagicMock(side_effect=lambda platform, token, timeout: senders[platform])


# ============================================================================
# Platform and channel selection
# ============================================================================


class TestSelection:
    """Tests for platform and channel selection."""

    def test_explicit_flags_are_additive(self, both_platforms: ConfigStore) -> None:
        dispatcher = Dispatcher(both_platforms)
        request = DispatchRequest(message="x", discord=True, telegram=True)
        assert dispatcher.select_platforms(request) == ["discord", "telegram"]

    def test_default_platform_from_config(self) -> None:
        store = make_store(
            {"platforms": {"telegram": {"bot": {"token": "t"}}}, "defaults": {"platform": "telegram"}}
        )
        assert Dispatcher(store).select_platforms(DispatchRequest(message="x")) == ["telegram"]

    def test_fallback_platform_is_discord(self, both_platforms: ConfigStore) -> None:
        assert Dispatcher(both_platforms).select_platforms(DispatchRequest(message="x")) == [
            "discord"
        ]

    def test_channel_id_beats_alias(self, both_platforms: ConfigStore) -> None:
        request = DispatchRequest(message="x", channel="alerts", channel_id="222")
        assert Dispatcher(both_platforms).select_channel(Platform.DISCORD, request) == "222"

    def test_alias_beats_default(self) -> None:
        store = make_store(
            {"platforms": {"discord": {"bot": {"token": "t"}}}, "defaults": {"channel": "main"}}
        )
        request = DispatchRequest(message="x", channel="alerts")
        assert Dispatcher(store).select_channel(Platform.DISCORD, request) == "alerts"

    def test_default_channel(self) -> None:
        store = make_store(
            {"platforms": {"discord": {"bot": {"token": "t"}}}, "defaults": {"channel": "main"}}
        )
        request = DispatchRequest(message="x")
        assert Dispatcher(store).select_channel(Platform.TELEGRAM, request) == "main"

    def test_discord_hardcoded_fallback(self, both_platforms: ConfigStore) -> None:
        request = DispatchRequest(message="x")
        channel = Dispatcher(both_platforms).select_channel(Platform.DISCORD, request)
        assert channel == DEFAULT_DISCORD_CHANNEL == "general"

    def test_telegram_has_no_fallback(self, both_platforms: ConfigStore) -> None:
        request = DispatchRequest(message="x")
        assert Dispatcher(both_platforms).select_channel(Platform.TELEGRAM, request) is None

    def test_resolve_target(self, both_platforms: ConfigStore) -> None:
        target = Dispatcher(both_platforms).resolve_target(Platform.TELEGRAM, "ops")
        assert target.platform is Platform.TELEGRAM
        assert target.channel_id == "-1009876543210"
        assert target.token is not None
        assert target.token.get_secret_value() == "t-token"


# ============================================================================
# Dispatch
# ============================================================================


class TestDispatch:
    """Tests for Dispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_invalid_config_aborts_before_network(self, factory: MagicMock) -> None:
        """All validation errors are raised together and nothing is sent."""
        store = make_store({"platforms": {"discord": {}, "telegram": {"bot": {}}}})
        dispatcher = Dispatcher(store, platform_factory=factory)

        with pytest.raises(ConfigurationError) as exc_info:
            await dispatcher.dispatch(DispatchRequest(message="x", discord=True))

        assert len(exc_info.value.errors) == 2
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_config_aborts(self, factory: MagicMock) -> None:
        dispatcher = Dispatcher(make_store({}), platform_factory=factory)
        with pytest.raises(ConfigurationError, match="No platforms configured"):
            await dispatcher.dispatch(DispatchRequest(message="x"))

    @pytest.mark.asyncio
    async def test_send_to_both(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        """Each platform gets its resolved channel and own payload type."""
        dispatcher = Dispatcher(both_platforms, platform_factory=factory, timeout=3.0)
        request = DispatchRequest(
            message="Deploy v1.0", discord=True, telegram=True, channel="alerts"
        )

        report = await dispatcher.dispatch(request)

        assert report.all_succeeded
        assert [o.platform_name for o in report.outcomes] == ["discord", "telegram"]
        assert [o.result.message_id for o in report.outcomes if o.result] == ["d-1", "t-1"]

        factory.assert_any_call(Platform.DISCORD, "d-token", timeout=3.0)
        factory.assert_any_call(Platform.TELEGRAM, "t-token", timeout=3.0)

        senders[Platform.DISCORD].send.assert_awaited_once_with(
            "111111111111111111", DiscordPayload(content="Deploy v1.0")
        )
        # "alerts" is not a Telegram alias, so it passes through unchanged
        senders[Platform.TELEGRAM].send.assert_awaited_once_with(
            "alerts", TelegramPayload(text="Deploy v1.0")
        )

    @pytest.mark.asyncio
    async def test_markdown_escaped_once_per_send(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        """The Telegram payload carries exactly one escaping pass."""
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        request = DispatchRequest(
            message="v1.0 ready!", telegram=True, channel_id="-1", format="markdown"
        )

        await dispatcher.dispatch(request)

        payload = senders[Platform.TELEGRAM].send.call_args.args[1]
        assert payload.text == r"v1\.0 ready\!"
        assert payload.parse_mode == "MarkdownV2"

    @pytest.mark.asyncio
    async def test_silent_disables_notification(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        request = DispatchRequest(message="x", telegram=True, channel="ops", silent=True)

        await dispatcher.dispatch(request)

        channel_id, payload = senders[Platform.TELEGRAM].send.call_args.args
        assert channel_id == "-1009876543210"
        assert payload.disable_notification is True

    @pytest.mark.asyncio
    async def test_telegram_without_channel_does_not_block_discord(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        """Telegram is skipped, Discord still sends to its fallback channel."""
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        request = DispatchRequest(message="x", discord=True, telegram=True)

        report = await dispatcher.dispatch(request)

        discord, telegram = report.outcomes
        assert discord.succeeded
        assert telegram.skipped_reason == (
            "Telegram requires --channelID or --channel parameter"
        )
        assert not telegram.succeeded
        senders[Platform.DISCORD].send.assert_awaited_once()
        assert senders[Platform.DISCORD].send.call_args.args[0] == "general"
        senders[Platform.TELEGRAM].send.assert_not_called()
        assert report.failure_count == 1
        assert not report.all_succeeded

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_next_platform(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        senders[Platform.DISCORD].send.return_value = SendResult.failure("boom")
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        request = DispatchRequest(message="x", discord=True, telegram=True, channel_id="1")

        report = await dispatcher.dispatch(request)

        assert report.success_count == 1
        assert report.failure_count == 1
        senders[Platform.TELEGRAM].send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sender_exception_becomes_failure(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
        senders: dict[Platform, MagicMock],
    ) -> None:
        senders[Platform.DISCORD].send.side_effect = RuntimeError("unexpected")
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)

        report = await dispatcher.dispatch(DispatchRequest(message="x", discord=True))

        result = report.outcomes[0].result
        assert result is not None
        assert result.success is False
        assert "unexpected" in (result.error or "")

    @pytest.mark.asyncio
    async def test_missing_token_for_unconfigured_platform(self, factory: MagicMock) -> None:
        """Selecting a platform absent from the file fails only that platform."""
        store = make_store({"platforms": {"discord": {"bot": {"token": "d"}}}})
        dispatcher = Dispatcher(store, platform_factory=factory)
        request = DispatchRequest(message="x", discord=True, telegram=True, channel_id="1")

        report = await dispatcher.dispatch(request)

        discord, telegram = report.outcomes
        assert discord.succeeded
        assert telegram.result is not None
        assert telegram.result.error == "Telegram bot token not configured"

    @pytest.mark.asyncio
    async def test_env_token_is_used(
        self, both_platforms: ConfigStore, factory: MagicMock
    ) -> None:
        """The environment token is the one handed to the platform."""
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        with patch.dict(os.environ, {"NOTIFE_DISCORD_TOKEN": "env-token"}):
            await dispatcher.dispatch(DispatchRequest(message="x", discord=True))

        factory.assert_called_once_with(Platform.DISCORD, "env-token", timeout=10.0)

    @pytest.mark.asyncio
    async def test_unsupported_default_platform(self, factory: MagicMock) -> None:
        store = make_store(
            {"platforms": {"discord": {"bot": {"token": "d"}}}, "defaults": {"platform": "slack"}}
        )
        report = await Dispatcher(store, platform_factory=factory).dispatch(
            DispatchRequest(message="x")
        )
        assert report.outcomes[0].skipped_reason == "Unsupported platform: slack"
        factory.assert_not_called()


class TestDryRun:
    """Tests for dry-run previews."""

    @pytest.mark.asyncio
    async def test_dry_run_never_sends(
        self,
        both_platforms: ConfigStore,
        factory: MagicMock,
    ) -> None:
        """Previews are produced for every platform without any HTTP call."""
        dispatcher = Dispatcher(both_platforms, platform_factory=factory)
        request = DispatchRequest(
            message="Hello", discord=True, telegram=True, channel="alerts", dry_run=True
        )

        with patch("httpx.AsyncClient") as mock_client_class:
            report = await dispatcher.dispatch(request)

        mock_client_class.assert_not_called()
        factory.assert_not_called()
        assert report.all_succeeded

        discord, telegram = (o.preview for o in report.outcomes)
        assert discord is not None and telegram is not None
        assert discord.platform is Platform.DISCORD
        assert discord.target == "111111111111111111"
        assert discord.message == "Hello"
        assert discord.options == {"format": "plain", "silent": False}
        assert telegram.target == "alerts"

    @pytest.mark.asyncio
    async def test_dry_run_description(self, both_platforms: ConfigStore) -> None:
        dispatcher = Dispatcher(both_platforms)
        report = await dispatcher.dispatch(
            DispatchRequest(message="Hi there", channel="alerts", dry_run=True)
        )

        preview = report.outcomes[0].preview
        assert preview is not None
        text = preview.describe()
        assert "[DRY RUN] Would send to discord:" in text
        assert "Target: 111111111111111111" in text
        assert "Message: Hi there" in text

    @pytest.mark.asyncio
    async def test_dry_run_without_token(self, factory: MagicMock) -> None:
        """A preview does not need a token for the selected platform."""
        store = make_store({"platforms": {"discord": {"bot": {"token": "d"}}}})
        report = await Dispatcher(store, platform_factory=factory).dispatch(
            DispatchRequest(message="x", telegram=True, channel_id="-5", dry_run=True)
        )
        assert report.outcomes[0].preview is not None

    @pytest.mark.asyncio
    async def test_dry_run_telegram_still_needs_channel(
        self, both_platforms: ConfigStore
    ) -> None:
        report = await Dispatcher(both_platforms).dispatch(
            DispatchRequest(message="x", telegram=True, dry_run=True)
        )
        assert report.outcomes[0].skipped_reason is not None


class TestDispatchReport:
    """Tests for DispatchReport aggregation."""

    def test_empty_report_is_not_success(self) -> None:
        assert not DispatchReport().all_succeeded

    def test_counts(self) -> None:
        report = DispatchReport(
            outcomes=[
                PlatformOutcome("discord", result=SendResult.ok("1")),
                PlatformOutcome("telegram", skipped_reason="no channel"),
            ]
        )
        assert report.success_count == 1
        assert report.failure_count == 1
