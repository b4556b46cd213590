"""
Time-range normalisation.

Turns the dashboard's (from, to) strings into concrete epoch timestamps
anchored on a single ``now`` and renders them as SQL literals for the
resolved time column.
"""
from __future__ import annotations

from src.core.utils import epoch_seconds
from src.panel.interval import resolve_interval_seconds
from src.panel.spec import TimeRange

NOW = "now"
_OFFSET_MARKER = "-"


def _offset_expr(expr: str) -> str:
    """Strip the relative markers: ``"now-6h"`` / ``"6h-ago"`` -> ``"6h"``."""
    if expr.startswith("now-"):
        return expr[len("now-"):]
    if expr.endswith("-ago"):
        return expr[: -len("-ago")]
    return expr


def _is_absolute(expr: str) -> bool:
    return expr.isascii() and expr.isdigit()


def resolve_from(expr: str, now: int) -> int:
    """Start of the window in epoch seconds."""
    if _is_absolute(expr):
        return int(expr) // 1000
    return now - resolve_interval_seconds(_offset_expr(expr))


def resolve_to(expr: str, now: int) -> int:
    """End of the window in epoch seconds; no offset marker means ``now``."""
    if _is_absolute(expr):
        return int(expr) // 1000
    if _OFFSET_MARKER not in expr:
        return now
    return now - resolve_interval_seconds(_offset_expr(expr))


def bounds_ms(time_range: TimeRange, now: int | None = None) -> tuple[int, int]:
    """The window as (from_ms, to_ms) epoch milliseconds."""
    if now is None:
        now = epoch_seconds()
    return (
        resolve_from(time_range.from_, now) * 1000,
        resolve_to(time_range.to, now) * 1000,
    )


def normalize(time_range: TimeRange, is_datetime: bool, now: int | None = None) -> tuple[str, str]:
    """Render the window as SQL literals.

    DateTime-like columns compare against the bare epoch; DATE columns get
    ``toDate(<epoch>)``.
    """
    if now is None:
        now = epoch_seconds()

    from_ts = resolve_from(time_range.from_, now)
    to_ts = resolve_to(time_range.to, now)

    pattern = "{}" if is_datetime else "toDate({})"
    return pattern.format(from_ts), pattern.format(to_ts)
