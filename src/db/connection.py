"""ClickHouse HTTP connection settings & shared client.

A single shared ``httpx.Client`` (connection pooling, thread-safe) is
created lazily and reused by every query.  The transport timeout comes
from settings; the core never retries.
"""
from __future__ import annotations

from typing import NamedTuple

import httpx
from pydantic import BaseModel

from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)

_client: httpx.Client | None = None


class BasicAuth(NamedTuple):
    user: str
    password: str


class DataSource(BaseModel):
    """Where and how to reach ClickHouse."""
    url: str
    basic_auth: bool = False
    basic_auth_user: str = ""
    basic_auth_password: str = ""

    @classmethod
    def from_settings(cls) -> "DataSource":
        settings = get_settings()
        return cls(
            url=settings.clickhouse_url,
            basic_auth=settings.clickhouse_basic_auth,
            basic_auth_user=settings.clickhouse_user,
            basic_auth_password=settings.clickhouse_password,
        )

    def credentials(self) -> BasicAuth | None:
        if not self.basic_auth:
            return None
        return BasicAuth(self.basic_auth_user, self.basic_auth_password)


def get_client() -> httpx.Client:
    """Return the shared HTTP client (lazy-created, cached)."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = httpx.Client(timeout=settings.request_timeout_seconds)
        logger.info("HTTP client created  timeout=%.1fs", settings.request_timeout_seconds)
    return _client

