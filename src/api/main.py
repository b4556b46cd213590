"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routers import query

app = FastAPI(
    title="ClickHouse Panel Query",
    version="0.1.0",
    description="Dashboard SQL templates against ClickHouse, pivoted into time series",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query.router, prefix="/query", tags=["Query"])


@app.get("/health")
def health():
    return {"status": "ok"}
