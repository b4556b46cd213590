"""
Integration tests — panel queries against a live ClickHouse.

These tests require a ClickHouse server reachable at the configured
``CLICKHOUSE_URL``.  They are automatically skipped when it is unreachable.
"""
from __future__ import annotations

import pytest

from src.db.connection import DataSource, get_client

# ── Guard: skip all tests if ClickHouse is unreachable ───
try:
    _ds = DataSource.from_settings()
    get_client().get(_ds.url, params={"query": "SELECT 1"}).raise_for_status()
    CH_AVAILABLE = True
except Exception:
    CH_AVAILABLE = False

pytestmark = pytest.mark.skipif(not CH_AVAILABLE, reason="ClickHouse not reachable")

from src.core.errors import TransportError
from src.db.executor import execute_sql
from src.panel.service import run_queries
from src.panel.spec import TimeRange

_RANGE = TimeRange(**{"from": "now-1h", "to": "now"})


def _credentials():
    return DataSource.from_settings().credentials()


# ── Executor ─────────────────────────────────────────────

def test_simple_select():
    table = execute_sql("SELECT 1 AS n", _credentials())
    assert table.column_names == ["n"]
    assert table.data == [{"n": 1}]


def test_unknown_table_is_transport_error():
    with pytest.raises(TransportError):
        execute_sql("SELECT * FROM default.__no_such_table__", _credentials())


# ── End to end ───────────────────────────────────────────

def test_numbers_pivot_into_series():
    query = {
        "refId": "A",
        "query": (
            "SELECT $timeSeries AS t, if(number % 2 = 0, 'even', 'odd') AS parity, count() AS c "
            "FROM (SELECT now() - number AS ts, number FROM system.numbers LIMIT 600) "
            "WHERE $timeFilter GROUP BY t, parity ORDER BY t"
        ),
        "dateTimeColDataType": "ts",
        "interval": "1m",
    }
    results = run_queries([query], _RANGE)
    result = results["A"]
    assert result.success, result.error
    assert sorted(s.name for s in result.series) == [".even.c", ".odd.c"]
