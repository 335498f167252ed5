# app/config.py
# Role: Environment-driven settings for the Stash API.
#       Loads a local .env (python-dotenv) and exposes a frozen Settings object
#       that main.create_app() reads once at startup.

"""
Application settings.

Values come from the process environment (optionally seeded from a `.env`
file in the working directory):

- DATABASE_URL             SQLAlchemy URL (default: SQLite under ./database)
- COINGECKO_BASE_URL       upstream market-data API root
- CRYPTO_TIMEOUT_SECONDS   per-call upstream timeout (default 15)
- STASH_LOG_LEVEL          logging level name (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from app.logging_setup import get_logger

load_dotenv()

logger = get_logger("stash.config")

# Project root (one level above the app/ package)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DEFAULT_DB_PATH = os.path.join(BASE_DIR, "database", "stash.db")
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_DB_PATH}"
DEFAULT_COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
DEFAULT_CRYPTO_TIMEOUT_SECONDS = 15.0


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("invalid %s=%r; using default %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("non-positive %s=%r; using default %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    coingecko_base_url: str = DEFAULT_COINGECKO_BASE_URL
    crypto_timeout_seconds: float = DEFAULT_CRYPTO_TIMEOUT_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=(os.getenv("DATABASE_URL") or "").strip() or DEFAULT_DATABASE_URL,
            coingecko_base_url=(
                (os.getenv("COINGECKO_BASE_URL") or "").strip() or DEFAULT_COINGECKO_BASE_URL
            ).rstrip("/"),
            crypto_timeout_seconds=_env_float(
                "CRYPTO_TIMEOUT_SECONDS", DEFAULT_CRYPTO_TIMEOUT_SECONDS
            ),
            log_level=(os.getenv("STASH_LOG_LEVEL") or "").strip() or "INFO",
        )
