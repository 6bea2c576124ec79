from __future__ import annotations

from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from pddbot.bot.router import CommandRouter
from pddbot.core.config import Settings


ALLOWED_CHAT = 1001
OTHER_CHAT = 1002
FIXED_NOW = datetime(2024, 3, 5, 12, 0, tzinfo=ZoneInfo("UTC"))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        bot_token="test-token",
        allowed_chat_ids=frozenset({ALLOWED_CHAT, OTHER_CHAT}),
        data_dir=tmp_path / "data",
        default_timezone="Europe/Berlin",
        webhook_url=None,
        webhook_path="/telegram",
        webhook_secret_token=None,
        port=8080,
        log_level="INFO",
    )


@pytest.fixture
def router(settings: Settings) -> CommandRouter:
    return CommandRouter(settings, clock=lambda: FIXED_NOW)


def read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()
