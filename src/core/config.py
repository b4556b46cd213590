"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── ClickHouse ───────────────────────────────────────
    clickhouse_url: str = "http://localhost:8123"
    clickhouse_basic_auth: bool = False
    clickhouse_user: str = "default"
    clickhouse_password: str = ""
    request_timeout_seconds: float = 30.0

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    log_level: str = "INFO"
    max_workers: int = 4

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
