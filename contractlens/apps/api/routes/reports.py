from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from contractlens.apps.api.deps import get_session_factory, get_tenant
from contractlens.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from contractlens.apps.api.response import SuccessEnvelope, success_response
from contractlens.persistence.guards import TenantRef
from contractlens.services.reports import generate_report, report_payload
from contractlens.services.reports.assembler import SessionFactory


router = APIRouter(prefix="/reports", tags=["reports"], responses=DEFAULT_ERROR_RESPONSES)


class ReportWindowResponse(BaseModel):
    period: str
    start: str
    end: str


class CostSummaryResponse(BaseModel):
    count: int
    total_cost: float
    average_cost: float | None
    total_tokens: int
    average_processing_time_ms: float | None
    average_confidence_score: float | None


class RiskHistogramEntryResponse(BaseModel):
    category: str
    count: int


class RiskSeverityEntryResponse(BaseModel):
    severity: str
    count: int


class HighRiskItemResponse(BaseModel):
    analysis_id: str
    file_name: str | None = None
    created_at: str | None = None
    high_risk_count: int
    critical_risk_count: int


class SectionStatusResponse(BaseModel):
    status: str
    error: str | None = None


class ReportAggregateResponse(BaseModel):
    tenant: dict[str, str]
    window: ReportWindowResponse
    generated_at: str
    contracts: list[dict[str, Any]]
    analyses: list[dict[str, Any]]
    cost_summary: CostSummaryResponse
    risk_histogram: list[RiskHistogramEntryResponse]
    risk_severity: list[RiskSeverityEntryResponse] = []
    high_risk_items: list[HighRiskItemResponse] = []
    usage_series: dict[str, dict[str, int]]
    usage_points: list[dict[str, Any]] = []
    overview: dict[str, Any]
    trends: dict[str, dict[str, Any]] | None = None
    sections: dict[str, SectionStatusResponse]
    warnings: list[str]


def _as_utc(value: datetime | None) -> datetime | None:
    # Query timestamps without an offset are interpreted as UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@router.get(
    "/aggregate",
    response_model=SuccessEnvelope[ReportAggregateResponse] | ReportAggregateResponse,
)
async def get_report_aggregate(
    request: Request,
    period: str = Query(default="month", description="week|month|quarter|year|custom"),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    include_trends: bool | None = Query(default=None),
    deadline_ms: int | None = Query(default=None, ge=100, le=120000),
    tenant: TenantRef = Depends(get_tenant),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> dict:
    aggregate = await generate_report(
        tenant,
        period,
        custom_start=_as_utc(start),
        custom_end=_as_utc(end),
        session_factory=session_factory,
        include_trends=include_trends,
        deadline_s=deadline_ms / 1000.0 if deadline_ms is not None else None,
    )
    return success_response(request=request, data=report_payload(aggregate), warnings=aggregate.warnings)
