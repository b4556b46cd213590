"""POST /query -- run a batch of panel queries and return series per refId."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from fastapi import APIRouter, HTTPException

from src.panel.service import run_queries
from src.panel.spec import TimeRange
from src.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()



class QueryRequest(BaseModel):
    range: TimeRange
    queries: list[dict[str, Any]] = Field(..., min_length=1, description="Panel queries (camelCase wire fields)")


class PointResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: float | None
    timestamp_ms: int = Field(..., alias="timestampMs")


class SeriesResponse(BaseModel):
    name: str
    points: list[PointResponse]


class QueryResultResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(..., alias="refId")
    series: list[SeriesResponse]
    sql: str
    error: str | None = None
    error_type: str | None = Field(None, alias="errorType")


class QueryResponse(BaseModel):
    results: dict[str, QueryResultResponse]



@router.post("", response_model=QueryResponse, response_model_by_alias=True)
def query_endpoint(req: QueryRequest):
    """Template -> execute -> pivot for every query; partial failures stay per refId."""
    try:
        results = run_queries(req.queries, req.range)
    except Exception as exc:
        logger.exception("Batch query failed")
        raise HTTPException(status_code=500, detail=str(exc))

    return QueryResponse(
        results={
            ref_id: QueryResultResponse.model_validate(result.to_dict())
            for ref_id, result in results.items()
        }
    )
