"""
Panel query service -- orchestrates template -> execute -> pivot per query.

A batch shares one TimeRange and one ``now`` anchor so every query sees the
same window.  Queries run on a thread pool; each one's failure is captured
in its own QueryResult and never affects the others.
"""
from __future__ import annotations

import string
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from src.core.config import get_settings
from src.core.errors import MissingFieldError, PanelQueryError, UnsupportedFormatError
from src.core.logging import get_logger
from src.core.utils import epoch_seconds, timer
from src.db.connection import BasicAuth, DataSource
from src.db.executor import execute_sql
from src.panel.pivot import TimeSeries, build_series
from src.panel.spec import TIME_SERIES_FORMAT, QuerySpec, ResultTable, TimeRange
from src.panel.templater import substitute

logger = get_logger(__name__)

Executor = Callable[[str, BasicAuth | None], ResultTable]


class QueryResult:
    def __init__(
        self,
        ref_id: str,
        series: list[TimeSeries] | None = None,
        sql: str = "",
        error: str | None = None,
        error_type: str | None = None,
        latency_ms: int = 0,
    ):
        self.ref_id = ref_id
        self.series = series or []
        self.sql = sql
        self.error = error
        self.error_type = error_type
        self.latency_ms = latency_ms

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "refId": self.ref_id,
            "series": [s.to_dict() for s in self.series],
            "sql": self.sql,
            "error": self.error,
            "errorType": self.error_type,
        }


def _default_ref_id(position: int) -> str:
    letters = string.ascii_uppercase
    return letters[position] if position < len(letters) else f"Q{position}"


def _unique_ref_id(ref_id: str, position: int, taken: list[str]) -> str:
    """Suffix ``_<position>`` until *ref_id* no longer clashes with an earlier query."""
    while ref_id in taken:
        ref_id = f"{ref_id}_{position}"
    return ref_id


def _coerce_spec(raw: QuerySpec | dict[str, Any], position: int) -> QuerySpec:
    """Validate one raw query document and give it a refId if it has none."""
    try:
        spec = raw if isinstance(raw, QuerySpec) else QuerySpec.model_validate(raw)
    except ValidationError as exc:
        raise MissingFieldError(f"Query #{position} is not a key/value document") from exc
    if spec.ref_id is None:
        spec = spec.model_copy(update={"ref_id": _default_ref_id(position)})
    return spec


def run_query(
    spec: QuerySpec,
    time_range: TimeRange,
    execute: Executor,
    credentials: BasicAuth | None = None,
    now: int | None = None,
) -> QueryResult:
    """Template, execute and pivot a single query, capturing any failure."""
    ref_id = spec.ref_id or _default_ref_id(0)
    if now is None:
        now = epoch_seconds()

    sql = ""
    with timer() as t:
        try:
            sql = substitute(spec, time_range, now)
            table = execute(sql, credentials)

            fmt = spec.output_format
            if fmt != TIME_SERIES_FORMAT:
                raise UnsupportedFormatError(f"Format '{fmt}' is not supported")
            series = build_series(table, time_range, now)
        except PanelQueryError as exc:
            error, error_type = str(exc), type(exc).__name__
            logger.warning("Query %s failed | %s: %s", ref_id, error_type, error)
        except Exception as exc:
            error, error_type = f"Unexpected error: {exc}", type(exc).__name__
            logger.exception("Query %s failed unexpectedly", ref_id)
        else:
            error = error_type = None

    if error is not None:
        return QueryResult(ref_id, sql=sql, error=error, error_type=error_type,
                           latency_ms=t["elapsed_ms"])

    logger.info("Query %s | series=%d | latency_ms=%d", ref_id, len(series), t["elapsed_ms"])
    return QueryResult(ref_id, series=series, sql=sql, latency_ms=t["elapsed_ms"])


def run_queries(
    queries: Iterable[QuerySpec | dict[str, Any]],
    time_range: TimeRange,
    datasource: DataSource | None = None,
    execute: Executor | None = None,
    max_workers: int | None = None,
) -> dict[str, QueryResult]:
    """Run a batch of panel queries over one time range.

    Parameters
    ----------
    queries : iterable of QuerySpec or dict
        Panel queries; dicts use the camelCase wire names.
    time_range : TimeRange
        Window shared by every query in the batch.
    datasource : DataSource, optional
        Target ClickHouse; defaults to the one in settings.
    execute : callable, optional
        ``execute(sql, credentials) -> ResultTable``; defaults to the HTTP
        executor bound to ``datasource.url``.
    max_workers : int, optional
        Thread pool size; defaults to ``Settings.max_workers``.

    Returns
    -------
    dict
        refId -> QueryResult, in input order.
    """
    if datasource is None:
        datasource = DataSource.from_settings()
    if execute is None:
        execute = partial(execute_sql, url=datasource.url)
    if max_workers is None:
        max_workers = get_settings().max_workers

    now = epoch_seconds()
    credentials = datasource.credentials()

    ordered: list[str] = []
    results: dict[str, QueryResult] = {}
    specs: list[QuerySpec] = []
    for position, raw in enumerate(queries):
        try:
            spec = _coerce_spec(raw, position)
        except MissingFieldError as exc:
            ref_id = _unique_ref_id(_default_ref_id(position), position, ordered)
            ordered.append(ref_id)
            results[ref_id] = QueryResult(ref_id, error=str(exc), error_type=type(exc).__name__)
            continue
        ref_id = _unique_ref_id(spec.ref_id, position, ordered)
        if ref_id != spec.ref_id:
            spec = spec.model_copy(update={"ref_id": ref_id})
        ordered.append(ref_id)
        specs.append(spec)

    logger.info("Running %d queries | from=%s to=%s | workers=%d",
                len(ordered), time_range.from_, time_range.to, max_workers)

    if specs:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(specs)))) as pool:
            futures = {
                pool.submit(run_query, spec, time_range, execute, credentials, now): spec.ref_id
                for spec in specs
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

    return {ref_id: results[ref_id] for ref_id in ordered}
