"""
FamilyHub — Centralized configuration.

Loads all settings from .env and validates required keys.
Every other module reads its configuration from the `settings` singleton.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from familyhub/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram (bot commands + digest/alert delivery)
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/familyhub.db"

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Daily digest
    DAILY_DIGEST_HOUR: int = 7
    TIMEZONE: str = "Europe/Berlin"

    # /upcoming shows at most this many entries
    UPCOMING_LIMIT: int = 15

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("DAILY_DIGEST_HOUR", "UPCOMING_LIMIT", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("DAILY_DIGEST_HOUR")
    @classmethod
    def check_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError(f"DAILY_DIGEST_HOUR must be 0-23, got {v}")
        return v


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/familyhub.db"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DAILY_DIGEST_HOUR=os.getenv("DAILY_DIGEST_HOUR", "7"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Berlin"),
        UPCOMING_LIMIT=os.getenv("UPCOMING_LIMIT", "15"),
    )


# Singleton, imported by all other modules as:
#   from familyhub.config import settings
settings = _load_settings()
