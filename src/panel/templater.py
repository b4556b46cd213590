"""
Query templater -- expands the dashboard placeholders in a raw SQL template.

Supported placeholders, substituted in this order:

  $interval    -- effective interval in seconds
  $timeSeries  -- time column bucketed by the interval, in milliseconds
  $table       -- <database>.<table>
  $timeFilter  -- predicate restricting the time column to the time range

Any other ``$word`` left in the text afterwards rejects the whole query.
This is plain text replacement; the SQL itself is never parsed.
"""
from __future__ import annotations

import re
from typing import NamedTuple

from src.core.errors import MissingFieldError, UnsupportedPlaceholderError
from src.core.logging import get_logger
from src.panel.interval import compute_effective_interval
from src.panel.spec import DATE_TYPE, DEFAULT_DATE_TIME_TYPE, QuerySpec, TimeRange
from src.panel.time_range import NOW, normalize

logger = get_logger(__name__)

_INTERVAL_RE = re.compile(r"\$interval")
_TIME_SERIES_RE = re.compile(r"\$timeSeries")
_TABLE_RE = re.compile(r"\$table")
_TIME_FILTER_RE = re.compile(r"\$timeFilter")
_LEFTOVER_RE = re.compile(r"\$\w+")

SUPPORTED_PLACEHOLDERS = ("$table", "$timeSeries", "$timeFilter", "$interval")

_TIME_SERIES_PATTERN = "(intDiv({column}, {interval}) * {interval}) * 1000"
_WIDENED_TIME_SERIES_PATTERN = "(intDiv(toUInt32({column}), {interval}) * {interval}) * 1000"


class ResolvedColumn(NamedTuple):
    name: str
    kind: str

    @property
    def is_datetime(self) -> bool:
        return self.kind != DATE_TYPE


# ── Column / interval lookups ────────────────────────────

def resolve_time_column(spec: QuerySpec) -> ResolvedColumn:
    """Pick the time column: datetime column first, then the date column.

    Raises
    ------
    MissingFieldError
        If neither column name is set.
    """
    if spec.date_time_column:
        return ResolvedColumn(spec.date_time_column, spec.date_time_type or DEFAULT_DATE_TIME_TYPE)
    if spec.date_column:
        return ResolvedColumn(spec.date_column, DATE_TYPE)
    raise MissingFieldError(
        "No time column configured: set dateTimeColDataType or dateColDataType"
    )


def effective_interval(spec: QuerySpec) -> int:
    return compute_effective_interval(spec.interval, spec.interval_factor)


# ── Placeholder passes ───────────────────────────────────

def substitute_interval(query: str, spec: QuerySpec) -> str:
    if not _INTERVAL_RE.search(query):
        return query
    return _INTERVAL_RE.sub(str(effective_interval(spec)), query)


def substitute_time_series(query: str, spec: QuerySpec) -> str:
    if not _TIME_SERIES_RE.search(query):
        return query

    column = resolve_time_column(spec)
    pattern = _TIME_SERIES_PATTERN if column.is_datetime else _WIDENED_TIME_SERIES_PATTERN
    expr = pattern.format(column=column.name, interval=effective_interval(spec))
    return _TIME_SERIES_RE.sub(lambda _: expr, query)


def substitute_table(query: str, spec: QuerySpec) -> str:
    """Missing ``table`` leaves the token for the leftover scan to reject."""
    if not _TABLE_RE.search(query):
        return query
    if spec.table is None:
        logger.debug("$table used without a table name -- leaving it unexpanded")
        return query
    target = f"{spec.database_name}.{spec.table}"
    return _TABLE_RE.sub(lambda _: target, query)


def substitute_time_filter(
    query: str,
    spec: QuerySpec,
    time_range: TimeRange,
    now: int | None = None,
) -> str:
    if not _TIME_FILTER_RE.search(query):
        return query

    column = resolve_time_column(spec)
    from_literal, to_literal = normalize(time_range, column.is_datetime, now)
    if time_range.to == NOW:
        predicate = f"{column.name} >= {from_literal}"
    else:
        predicate = f"{column.name} BETWEEN {from_literal} AND {to_literal}"
    return _TIME_FILTER_RE.sub(lambda _: predicate, query)


def check_leftover_placeholders(query: str) -> None:
    leftover = _LEFTOVER_RE.findall(query)
    if leftover:
        raise UnsupportedPlaceholderError(
            f"Unsupported placeholder(s) {', '.join(sorted(set(leftover)))}; "
            f"only {', '.join(SUPPORTED_PLACEHOLDERS)} are allowed"
        )


# ── Entry point ──────────────────────────────────────────

def substitute(spec: QuerySpec, time_range: TimeRange, now: int | None = None) -> str:
    """Expand every placeholder in ``spec.query`` and return executable SQL.

    Raises
    ------
    MissingFieldError
        If the query text is missing, or a time placeholder is used
        without a time column.
    UnsupportedPlaceholderError
        If an unknown ``$word`` remains after substitution.
    """
    if spec.query is None:
        raise MissingFieldError("Query text is missing")

    sql = spec.query.strip()
    sql = substitute_interval(sql, spec)
    sql = substitute_time_series(sql, spec)
    sql = substitute_table(sql, spec)
    sql = substitute_time_filter(sql, spec, time_range, now)
    check_leftover_placeholders(sql)

    logger.info("Generated SQL:\n%s", sql)
    return sql
