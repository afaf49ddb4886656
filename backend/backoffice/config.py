# backend/backoffice/config.py
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

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Flat rates, kept as strings so they go straight into Decimal()
    TAX_RATE = os.environ.get("TAX_RATE", "0.01")
    POINT_RATE = os.environ.get("POINT_RATE", "0.01")

    SALES_CODE_TAG = "SAL"

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    NOTIFICATIONS_ENABLED = _env_flag("NOTIFICATIONS_ENABLED", True)

    CORS_ALLOWED_ORIGINS = frozenset(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )
