# backend/ardoise/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/ardoise.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///ardoise.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Settling a client with no line items produces a zero-total SALE.
    # Turn off to reject empty settlements instead.
    ALLOW_EMPTY_SETTLEMENT = _env_flag("ARDOISE_ALLOW_EMPTY_SETTLEMENT", True)

    STATS_WINDOW_DAYS = int(os.environ.get("ARDOISE_STATS_WINDOW_DAYS", "7"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
