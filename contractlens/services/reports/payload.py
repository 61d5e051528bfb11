from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any

from contractlens.services.reports.assembler import ReportAggregate
from contractlens.services.reports.usage_series import fill_daily_points, usage_day


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def report_payload(aggregate: ReportAggregate, *, include_daily_points: bool = True) -> dict[str, Any]:
    # JSON-ready mapping of a ReportAggregate for API responses and exporters.
    window = aggregate.window
    cost = aggregate.cost_summary
    payload: dict[str, Any] = {
        "tenant": {"kind": aggregate.tenant.kind, "id": aggregate.tenant.tenant_id},
        "window": {
            "period": window.period_key,
            "start": window.start.isoformat(),
            "end": window.end.isoformat(),
        },
        "generated_at": aggregate.generated_at.isoformat(),
        "contracts": [
            {
                "id": contract.id,
                "file_name": contract.file_name,
                "contract_type": contract.contract_type,
                "created_at": contract.created_at.isoformat(),
                "latest_analysis": (
                    {
                        "id": contract.latest_analysis.id,
                        "status": contract.latest_analysis.status,
                        "created_at": contract.latest_analysis.created_at.isoformat(),
                        "confidence_score": contract.latest_analysis.confidence_score,
                    }
                    if contract.latest_analysis is not None
                    else None
                ),
            }
            for contract in aggregate.contracts
        ],
        "analyses": [
            {
                "id": analysis.id,
                "contract": asdict(analysis.contract) if analysis.contract is not None else None,
                "status": analysis.status,
                "created_at": analysis.created_at.isoformat(),
                "processing_time_ms": analysis.processing_time_ms,
                "confidence_score": analysis.confidence_score,
                "estimated_cost": _money(analysis.estimated_cost),
                "tokens_used": analysis.tokens_used,
                "risk_count": len(analysis.risk_annotations),
            }
            for analysis in aggregate.analyses
        ],
        "cost_summary": {
            "count": cost.count,
            "total_cost": float(cost.total_cost),
            "average_cost": _money(cost.average_cost),
            "total_tokens": cost.total_tokens,
            "average_processing_time_ms": cost.average_processing_time_ms,
            "average_confidence_score": cost.average_confidence_score,
        },
        "risk_histogram": [asdict(entry) for entry in aggregate.risk_histogram],
        "risk_severity": [asdict(entry) for entry in aggregate.risk_severity],
        "high_risk_items": [
            {
                "analysis_id": item.analysis_id,
                "file_name": item.file_name,
                "created_at": item.created_at.isoformat() if item.created_at is not None else None,
                "high_risk_count": item.high_risk_count,
                "critical_risk_count": item.critical_risk_count,
            }
            for item in aggregate.high_risk_items
        ],
        "usage_series": {day.isoformat(): dict(actions) for day, actions in aggregate.usage_series.items()},
        "overview": asdict(aggregate.overview),
        "trends": (
            {name: asdict(trend) for name, trend in aggregate.trends.items()}
            if aggregate.trends is not None
            else None
        ),
        "sections": {name: asdict(section) for name, section in aggregate.sections.items()},
        "warnings": list(aggregate.warnings),
    }
    if include_daily_points:
        payload["usage_points"] = fill_daily_points(
            aggregate.usage_series,
            start_day=usage_day(window.start),
            end_day=usage_day(window.end),
        )
    return payload
