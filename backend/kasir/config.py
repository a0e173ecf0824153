# backend/kasir/config.py
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

    # SQLite DB stored in backend/instance/kasir.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kasir.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shop switch for the points programme (earning and redemption)
    LOYALTY_ENABLED = _env_flag("KASIR_LOYALTY_ENABLED", True)

    # Days between the transaction date and a receivable's due date
    RECEIVABLE_TERM_DAYS = int(os.environ.get("KASIR_RECEIVABLE_TERM_DAYS", "30"))

    LOG_LEVEL = os.environ.get("KASIR_LOG_LEVEL", "INFO")
