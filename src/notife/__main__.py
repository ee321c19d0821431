"""CLI entry point for notife.

This module provides the main entry point for sending a notification
from the command line.

Usage:
    notife -m "message" [options]
    python -m notife -m "message" [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from pathlib import Path
from typing import NoReturn

from pydantic import ValidationError

from notife import __version__
from notife.bootstrap import initialize_config, print_setup_help
from notife.config import (
    ConfigStore,
    ConfigurationError,
    EnvironmentSettings,
    clear_settings_cache,
    find_config_file,
    get_settings,
    load_config,
)
from notife.dispatcher import DispatchReport, Dispatcher, DispatchRequest
from notife.models import MESSAGE_FORMATS, Platform
from notife.platforms import create_platform

# Application info
APP_NAME = "notife"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_DELIVERY_FAILED = 3
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Send notifications to Discord and Telegram.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  notife --discord --channelID 123456789 -m "Hello World!"
  notife --discord --channel alerts -m "Server is down!"
  notife --telegram --channelID -987654321 -m "Deployment complete"
  notife --telegram --channel general -m "Build finished"
  notife --discord --format embed -m "Title|Description|#ff0000"
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "-m",
        "--message",
        default=None,
        help="Message content to send",
    )

    parser.add_argument(
        "--discord",
        action="store_true",
        help="Send to Discord",
    )

    parser.add_argument(
        "--telegram",
        action="store_true",
        help="Send to Telegram",
    )

    parser.add_argument(
        "--channel",
        default=None,
        help="Channel alias (works for both Discord and Telegram)",
    )

    parser.add_argument(
        "--channelID",
        dest="channel_id",
        default=None,
        help="Channel ID (Discord channel ID or Telegram chat ID)",
    )

    parser.add_argument(
        "--format",
        choices=MESSAGE_FORMATS,
        default="plain",
        help="Message format (default: plain)",
    )

    parser.add_argument(
        "--silent",
        action="store_true",
        help="Send without notification and print nothing on success",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview the message without sending",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration, test platform connections and exit",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from NOTIFE_LOG_LEVEL or WARNING)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def validate_settings() -> EnvironmentSettings | None:
    """Validate and load environment settings.

    Returns:
        EnvironmentSettings instance if valid, None if invalid.
    """
    try:
        # Clear cache to force reload
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Environment validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def print_config_errors(errors: list[str]) -> None:
    """Print configuration validation errors to stderr."""
    print("Configuration validation failed:", file=sys.stderr)
    for error in errors:
        print(f"  - {error}", file=sys.stderr)


def print_config_summary(store: ConfigStore) -> None:
    """Print a summary of the configuration with tokens redacted.

    Args:
        store: Loaded configuration.
    """
    summary = store.redacted_summary()
    platforms = summary["platforms"]
    print("Configuration:")
    print(f"  File: {summary['config_path']}")
    print(f"  Default platform: {summary['default_platform']}")
    print(f"  Default channel: {summary['default_channel']}")
    if isinstance(platforms, dict):
        for name, status in platforms.items():
            print(f"  {name.capitalize()}: {status}")
    print()


def print_report(report: DispatchReport, *, silent: bool = False) -> None:
    """Print the per-platform outcome of a dispatch.

    Args:
        report: Dispatch report to print.
        silent: Suppress output for successful sends.
    """
    for outcome in report.outcomes:
        name = outcome.platform_name
        if outcome.preview is not None:
            print(outcome.preview.describe())
        elif outcome.skipped_reason is not None:
            print(f"❌ Skipped {name}: {outcome.skipped_reason}", file=sys.stderr)
        elif outcome.result is not None and outcome.result.success:
            if not silent:
                print(f"✅ Message sent successfully to {name}")
                if outcome.result.message_id:
                    print(f"   Message ID: {outcome.result.message_id}")
        elif outcome.result is not None:
            print(
                f"❌ Failed to send message to {name}: {outcome.result.error}",
                file=sys.stderr,
            )


async def run_config_check(store: ConfigStore) -> int:
    """Validate the configuration and test each platform's token.

    Args:
        store: Loaded configuration.

    Returns:
        Exit code (0 when the configuration is valid).
    """
    print_config_summary(store)

    errors = store.validate()
    if errors:
        print_config_errors(errors)
    else:
        print("Configuration is valid!")
    print()

    print("Checking platform connections...")
    for platform in Platform:
        token = store.get_token(platform)
        if not token:
            print(f"  {platform.display_name}: not configured")
            continue

        client = create_platform(platform, token)
        in_file = client.validate_config(store.config.platform_config(platform))
        if EnvironmentSettings().token_for(platform):
            source = "environment, overrides config file" if in_file else "environment"
        else:
            source = "config file"
        reachable = await client.test_connection()
        status = "connected" if reachable else "connection failed"
        print(f"  {platform.display_name}: {status} (token from {source})")
    print()

    return EXIT_CONFIG_ERROR if errors else EXIT_SUCCESS


async def run_send(store: ConfigStore, request: DispatchRequest) -> int:
    """Dispatch the message and report the outcome.

    Args:
        store: Loaded configuration.
        request: Send request from the command line.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    dispatcher = Dispatcher(store)

    try:
        report = await dispatcher.dispatch(request)
    except ConfigurationError as e:
        print_config_errors(e.errors)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        logger.exception("Dispatch failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print_report(report, silent=request.silent)
    return EXIT_SUCCESS if report.all_succeeded else EXIT_DELIVERY_FAILED


def build_request(args: argparse.Namespace, settings: EnvironmentSettings) -> DispatchRequest:
    """Build a DispatchRequest from parsed arguments."""
    return DispatchRequest(
        message=args.message,
        discord=args.discord,
        telegram=args.telegram,
        channel=args.channel,
        channel_id=args.channel_id,
        format=args.format,
        silent=args.silent,
        dry_run=args.dry_run or settings.dry_run,
    )


def needs_first_run_setup(
    explicit_path: str | None,
    settings: EnvironmentSettings,
    *,
    home: Path,
    cwd: Path,
) -> bool:
    """Return True if no configuration file exists and none was requested."""
    if explicit_path or settings.config_path:
        return False
    return find_config_file(home=home, cwd=cwd) is None


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_settings()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    # Determine effective log level
    configure_logging(args.log_level or settings.log_level)

    home = Path.home()
    cwd = Path.cwd()

    if needs_first_run_setup(args.config, settings, home=home, cwd=cwd):
        path = initialize_config(home)
        print_setup_help(path)
        sys.exit(EXIT_SUCCESS)

    store = load_config(args.config, home=home, cwd=cwd)

    if args.config_check:
        coro = run_config_check(store)
    else:
        if not args.message:
            parser.error("the following arguments are required: -m/--message")
        coro = run_send(store, build_request(args, settings))

    try:
        exit_code = asyncio.run(coro)
    except KeyboardInterrupt:
        print("Interrupted by user", file=sys.stderr)
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
