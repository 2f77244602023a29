"""
config/settings.py
──────────────────────────────────────────────────────────────────────────────
Single source of truth for all tuneable parameters.

All values can be overridden via environment variables or a .env file placed
at the project root.  The frozen dataclass ensures settings are never mutated
at runtime.

  DB_DSN              → swap database
  RESOURCES_BASE_URL  → prefix of the path / tabiyaPath links
  MAX_CURSOR_LENGTH   → longest pagination token accepted
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
load_dotenv(Path(__file__).parent.parent.parent / ".env")


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


@dataclass(frozen=True)
class Settings:
    """Immutable application settings loaded from environment variables."""

    # ── Database ───────────────────────────────────────────────────────────
    db_dsn: str = field(
        default_factory=lambda: _env("DB_DSN", "dbname=taxonomy_db")
    )
    db_statement_timeout_ms: int = field(
        default_factory=lambda: _env_int("DB_STATEMENT_TIMEOUT_MS", 15000)
    )

    # ── Resource links ─────────────────────────────────────────────────────
    resources_base_url: str = field(
        default_factory=lambda: _env(
            "RESOURCES_BASE_URL", "https://taxonomy.example.org/api"
        )
    )

    # ── Pagination ─────────────────────────────────────────────────────────
    # Tokens longer than this are rejected before any decoding is attempted
    max_cursor_length: int = field(
        default_factory=lambda: _env_int("MAX_CURSOR_LENGTH", 1024)
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Returns a cached singleton Settings instance.

    Use this everywhere instead of instantiating Settings() directly —
    it guarantees a single object is shared across the entire process.
    """
    return Settings()
