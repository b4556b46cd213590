"""
Interval expressions ("30s", "5m", "2h", "1d") to seconds.

Malformed input never fails: it resolves to 1 second so the query still
runs at the finest granularity.
"""
from __future__ import annotations

import re
from typing import Any

_INTERVAL_RE = re.compile(r"(\d+)(\w+)")

INTERVAL_STEPS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def resolve_interval_seconds(expr: Any) -> int:
    """Convert an interval expression to seconds, e.g. ``"5m"`` -> 300."""
    if not expr or not isinstance(expr, str):
        return 1

    m = _INTERVAL_RE.fullmatch(expr)
    if not m:
        return 1

    value = int(m.group(1))
    step = INTERVAL_STEPS.get(m.group(2), 0)
    if value > 0 and step > 0:
        return value * step
    return 1


def compute_effective_interval(interval_expr: Any, interval_factor: Any = None) -> int:
    """Bucket width in seconds: ``interval_factor * resolve_interval_seconds(expr)``."""
    if isinstance(interval_factor, bool) or not isinstance(interval_factor, int) or interval_factor < 1:
        interval_factor = 1
    return interval_factor * resolve_interval_seconds(interval_expr)
