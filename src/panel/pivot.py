"""
Pivot a columnar ClickHouse result into named time series.

The first column is the time axis (epoch milliseconds). Every other column
is classified row by row: a value that parses as a number becomes a point,
anything else is a dimension whose value goes into the series name. A row
``(1000, "hostA", "eth0", 5)`` with columns ``t, host, iface, rx`` yields a
point ``(5.0, 1000)`` on series ``.hostA.eth0.rx``.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from src.core.errors import MalformedValueError
from src.core.logging import get_logger
from src.panel.spec import ResultTable, TimeRange
from src.panel.time_range import bounds_ms

logger = get_logger(__name__)

_NUMBER_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE | re.ASCII,
)


@dataclass
class TimeSeries:
    """A named sequence of (value, timestamp_ms) points."""
    name: str
    points: list[tuple[float | None, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "points": [
                {"value": value, "timestampMs": ts} for value, ts in self.points
            ],
        }


def _to_float(value: Any) -> float | None:
    """Numeric parse of a wire scalar; ``None`` when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMBER_RE.fullmatch(value):
        return float(value)
    return None


def _label(value: Any) -> str:
    return "null" if value is None else str(value)


def build_series(
    table: ResultTable,
    time_range: TimeRange | None = None,
    now: int | None = None,
) -> list[TimeSeries]:
    """Turn result rows into time series, skipping rows outside ``time_range``.

    Raises
    ------
    MalformedValueError
        If any row's time value is not numeric.
    """
    names = table.column_names
    if not names:
        return []

    time_column = names[0]
    other_columns = [name for name in names[1:] if name != time_column]
    window = bounds_ms(time_range, now) if time_range is not None else None

    series: dict[str, TimeSeries] = {}

    for row in table.data:
        ts = _to_float(row.get(time_column))
        if ts is None or not math.isfinite(ts):
            raise MalformedValueError(
                f"Cannot parse time value {row.get(time_column)!r} in column '{time_column}'"
            )

        if window is not None and (ts < window[0] or ts > window[1]):
            continue

        prefix = ""
        measures: list[tuple[str, float]] = []
        for col in other_columns:
            value = row.get(col)
            number = _to_float(value)
            if number is None:
                prefix += "." + _label(value)
            else:
                measures.append((col, number))

        for col, number in measures:
            name = f"{prefix}.{col}"
            if name not in series:
                series[name] = TimeSeries(name=name)
            series[name].points.append((number, int(ts)))

    logger.debug("Pivoted %d rows into %d series", len(table.data), len(series))
    return list(series.values())
