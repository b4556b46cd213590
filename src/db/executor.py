"""
ClickHouse HTTP executor.

Every generated query runs through `execute_sql`, which:
  1. Appends ``FORMAT JSON`` so ClickHouse returns meta + rows
  2. Sends it as the ``query`` parameter of a GET request
  3. Adds ``user`` / ``password`` parameters when basic auth is enabled
  4. Validates the body into a ResultTable
"""
from __future__ import annotations

import httpx
from pydantic import ValidationError

from src.core.errors import MalformedResponseError, TransportError
from src.core.logging import get_logger
from src.db.connection import BasicAuth, DataSource, get_client
from src.panel.spec import ResultTable

logger = get_logger(__name__)

_BODY_PREVIEW_CHARS = 500


def build_params(sql: str, credentials: BasicAuth | None = None) -> dict[str, str]:
    """Query-string parameters for one ClickHouse HTTP request."""
    params = {"query": f"{sql} FORMAT JSON"}
    if credentials is not None:
        params["user"] = credentials.user
        params["password"] = credentials.password
    return params


def execute_sql(
    sql: str,
    credentials: BasicAuth | None = None,
    url: str | None = None,
    client: httpx.Client | None = None,
) -> ResultTable:
    """Run *sql* against ClickHouse and return the parsed result table.

    Raises
    ------
    TransportError
        If the request fails or ClickHouse answers with an error status.
    MalformedResponseError
        If the body is not ClickHouse JSON output.
    """
    if url is None:
        url = DataSource.from_settings().url
    if client is None:
        client = get_client()

    logger.info("Executing SQL (%d chars)", len(sql))

    try:
        response = client.get(url, params=build_params(sql, credentials))
    except httpx.HTTPError as exc:
        raise TransportError(f"Request failed: {exc}") from exc

    body = response.text
    if response.status_code >= 400:
        raise TransportError(
            f"ClickHouse returned HTTP {response.status_code}: {body[:_BODY_PREVIEW_CHARS]}"
        )

    try:
        table = ResultTable.model_validate_json(body)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Cannot parse the response: {body[:_BODY_PREVIEW_CHARS]}"
        ) from exc

    logger.info("Returned %d rows", len(table.data))
    return table
