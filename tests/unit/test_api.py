"""
API tests -- FastAPI endpoints via TestClient (no live server needed).
"""
import time

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.panel.spec import ResultTable

client = TestClient(app)


@pytest.fixture
def fake_clickhouse(monkeypatch):
    """Replace the HTTP executor with canned rows inside the last hour."""
    calls = []

    def fake_execute(sql, credentials=None, url=None, client=None):
        calls.append(sql)
        ts = int(time.time()) * 1000 - 120_000
        return ResultTable(
            meta=[{"name": "t", "type": "UInt64"}, {"name": "host", "type": "String"}, {"name": "rps", "type": "Float64"}],
            data=[{"t": ts, "host": "web1", "rps": 12.5}, {"t": ts + 60_000, "host": "web1", "rps": 13.0}],
        )

    monkeypatch.setattr("src.panel.service.execute_sql", fake_execute)
    return calls


def _payload(*queries) -> dict:
    return {"range": {"from": "now-1h", "to": "now"}, "queries": list(queries)}


_GOOD = {
    "refId": "A",
    "query": "SELECT $timeSeries AS t, host, avg(rps) AS rps FROM $table WHERE $timeFilter GROUP BY t, host",
    "table": "http_stats",
    "dateTimeColDataType": "ts",
    "interval": "1m",
}


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_query_returns_series(fake_clickhouse):
    resp = client.post("/query", json=_payload(_GOOD))
    assert resp.status_code == 200
    result = resp.json()["results"]["A"]
    assert result["error"] is None
    assert result["series"][0]["name"] == ".web1.rps"
    points = result["series"][0]["points"]
    assert [p["value"] for p in points] == [12.5, 13.0]
    assert all("timestampMs" in p for p in points)
    assert "default.http_stats" in fake_clickhouse[0]


def test_partial_failure_still_200(fake_clickhouse):
    bad = {"refId": "B", "query": "SELECT $nope"}
    resp = client.post("/query", json=_payload(_GOOD, bad))
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert results["A"]["error"] is None
    assert results["B"]["errorType"] == "UnsupportedPlaceholderError"
    assert results["B"]["series"] == []


def test_missing_range_rejected():
    resp = client.post("/query", json={"queries": [_GOOD]})
    assert resp.status_code == 422


def test_empty_batch_rejected():
    resp = client.post("/query", json=_payload())
    assert resp.status_code == 422
