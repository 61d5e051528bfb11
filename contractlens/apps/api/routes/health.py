from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from contractlens.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from contractlens.apps.api.response import SuccessEnvelope, success_response
from contractlens.persistence.db import pool_stats
from contractlens.services.telemetry import counters_snapshot, source_latency_stats

router = APIRouter(tags=["health"], responses=DEFAULT_ERROR_RESPONSES)


class HealthResponse(BaseModel):
    status: str


class ReportMetricsResponse(BaseModel):
    counters: dict[str, int]
    sources: dict[str, dict[str, float | int]]
    pool: dict[str, int | None]


@router.get("/health", response_model=SuccessEnvelope[HealthResponse] | HealthResponse)
async def health(request: Request) -> dict:
    payload = HealthResponse(status="ok")
    return success_response(request=request, data=payload)


@router.get("/ops/report-metrics", response_model=SuccessEnvelope[ReportMetricsResponse] | ReportMetricsResponse)
async def report_metrics(request: Request, window_s: int = 3600) -> dict:
    # Expose per-source fetch latency and degradation counters for operators.
    payload = ReportMetricsResponse(
        counters=counters_snapshot(),
        sources=source_latency_stats(window_s),
        pool=pool_stats(),
    )
    return success_response(request=request, data=payload)
