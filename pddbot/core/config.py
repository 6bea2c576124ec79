from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    bot_token: str
    allowed_chat_ids: frozenset[int]
    data_dir: Path
    default_timezone: str
    webhook_url: str | None
    webhook_path: str
    webhook_secret_token: str | None
    port: int
    log_level: str

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.default_timezone)


def _parse_chat_ids(raw: str) -> frozenset[int]:
    ids: set[int] = set()
    for item in re.split(r"[,\s]+", raw.strip()):
        if not item:
            continue
        try:
            ids.add(int(item))
        except ValueError:
            raise ConfigError(f"invalid ALLOWED_CHAT_IDS entry '{item}'") from None
    return frozenset(ids)


def load_settings(env_file: str | None = None) -> Settings:
    # Supports running with either `.env` present or purely env-driven.
    if env_file:
        if not Path(env_file).is_file():
            raise ConfigError(f"env file not found: {env_file}")
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    bot_token = os.getenv("BOT_TOKEN", "").strip()
    if not bot_token:
        raise ConfigError("BOT_TOKEN is required (set it in environment or .env).")

    allowed_chat_ids = _parse_chat_ids(os.getenv("ALLOWED_CHAT_IDS", ""))
    if not allowed_chat_ids:
        raise ConfigError("ALLOWED_CHAT_IDS is required (comma-separated chat ids).")

    default_timezone = os.getenv("DEFAULT_TIMEZONE", "UTC").strip() or "UTC"
    try:
        ZoneInfo(default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"unknown DEFAULT_TIMEZONE '{default_timezone}'") from None

    port_raw = os.getenv("PORT", "").strip() or "8080"
    try:
        port = int(port_raw)
    except ValueError:
        raise ConfigError(f"invalid PORT '{port_raw}'") from None

    return Settings(
        bot_token=bot_token,
        allowed_chat_ids=allowed_chat_ids,
        data_dir=Path(os.getenv("DATA_DIR", "data").strip() or "data"),
        default_timezone=default_timezone,
        webhook_url=os.getenv("WEBHOOK_URL", "").strip() or None,
        webhook_path=os.getenv("WEBHOOK_PATH", "/telegram").strip() or "/telegram",
        webhook_secret_token=os.getenv("WEBHOOK_SECRET_TOKEN", "").strip() or None,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
