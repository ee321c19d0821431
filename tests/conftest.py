"""Shared test fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from notife.config import clear_settings_cache

if TYPE_CHECKING:
    from collections.abc import Iterator

NOTIFE_ENV_VARS = (
    "NOTIFE_CONFIG_PATH",
    "NOTIFE_DISCORD_TOKEN",
    "NOTIFE_TELEGRAM_TOKEN",
    "NOTIFE_LOG_LEVEL",
    "NOTIFE_DRY_RUN",
)


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Iterator[None]:
    """Remove notife variables and run from an empty directory."""
    for name in NOTIFE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    clear_settings_cache()
    yield
    clear_settings_cache()
