"""
Data model shared by the templater, the pivot transform and the orchestrator.

QuerySpec   -- one panel query as sent by the dashboard (camelCase on the wire)
TimeRange   -- the (from, to) window shared by every query in a batch
ResultTable -- the ClickHouse ``FORMAT JSON`` body
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_DATABASE = "default"
DEFAULT_DATE_TIME_TYPE = "DATETIME"
DATE_TYPE = "DATE"
TIME_SERIES_FORMAT = "time_series"


class QuerySpec(BaseModel):
    """One panel query.

    Fields holding a value of the wrong type are treated as absent rather
    than rejected, so a malformed ``table`` degrades the same way a missing
    one does.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    ref_id: str | None = Field(None, alias="refId")
    query: str | None = Field(None, description="Raw SQL template with $placeholders")
    table: str | None = None
    database: str | None = None
    date_time_column: str | None = Field(None, alias="dateTimeColDataType")
    date_column: str | None = Field(None, alias="dateColDataType")
    date_time_type: str | None = Field(None, alias="dateTimeType")
    interval: str | None = Field(None, description="Interval expression, e.g. '5m'")
    interval_factor: int | None = Field(None, alias="intervalFactor")
    format: str | None = None

    @field_validator(
        "ref_id", "query", "table", "database", "date_time_column",
        "date_column", "date_time_type", "interval", "format",
        mode="before",
    )
    @classmethod
    def _unreadable_as_missing(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("interval_factor", mode="before")
    @classmethod
    def _integer_factor(cls, value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None

    @property
    def database_name(self) -> str:
        return self.database or DEFAULT_DATABASE

    @property
    def output_format(self) -> str:
        return TIME_SERIES_FORMAT if self.format is None else self.format


class TimeRange(BaseModel):
    """Dashboard time window.

    Each endpoint is ``"now"``, a relative offset (``"6h"``, ``"now-6h"``,
    ``"6h-ago"``) or an absolute epoch in milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(..., alias="from")
    to: str = "now"

    @field_validator("from_", "to", mode="before")
    @classmethod
    def _epoch_as_string(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ColumnMeta(BaseModel):
    name: str
    type: str = ""


class ResultTable(BaseModel):
    """Columnar result; the time column is conventionally first in ``meta``."""

    meta: list[ColumnMeta] = Field(..., description="Column names and types, time column first")
    data: list[dict[str, Any]] = Field(..., description="One mapping of column -> value per row")
    rows: int | None = None

    @model_validator(mode="after")
    def _rows_need_columns(self) -> "ResultTable":
        if self.data and not self.meta:
            raise ValueError("result has rows but no column metadata")
        return self

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.meta]
