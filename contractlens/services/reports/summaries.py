from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from contractlens.domain.models import ANALYSIS_STATUS_COMPLETED
from contractlens.services.reports.fetchers import AnalysisRecord, ContractRecord, TenantTotals
from contractlens.services.reports.usage_series import UsageTimeSeries, usage_totals_by_action


UNSPECIFIED_CONTRACT_TYPE = "Unspecified"


@dataclass(frozen=True)
class ContractTypeCount:
    contract_type: str
    count: int


@dataclass(frozen=True)
class PerformanceSummary:
    # Processing-time stats over analyses that reported one.
    measured: int
    min_processing_time_ms: int | None
    max_processing_time_ms: int | None
    average_processing_time_ms: float | None


@dataclass(frozen=True)
class ReportOverview:
    contracts_in_period: int
    analyses_in_period: int
    status_breakdown: dict[str, int]
    success_rate: float
    contract_types: list[ContractTypeCount]
    performance: PerformanceSummary
    usage_by_action: dict[str, int] = field(default_factory=dict)
    # Lifetime counts; None when the totals source was unavailable.
    total_contracts: int | None = None
    total_analyses: int | None = None


def contract_type_distribution(contracts: Iterable[ContractRecord]) -> list[ContractTypeCount]:
    counts: dict[str, int] = {}
    for contract in contracts:
        key = contract.contract_type or UNSPECIFIED_CONTRACT_TYPE
        counts[key] = counts.get(key, 0) + 1
    return sorted(
        (ContractTypeCount(contract_type=key, count=value) for key, value in counts.items()),
        key=lambda item: -item.count,
    )


def status_breakdown(analyses: Iterable[AnalysisRecord]) -> dict[str, int]:
    breakdown: dict[str, int] = {}
    for analysis in analyses:
        breakdown[analysis.status] = breakdown.get(analysis.status, 0) + 1
    return breakdown


def success_rate(breakdown: dict[str, int]) -> float:
    total = sum(breakdown.values())
    if total == 0:
        return 0.0
    return round(breakdown.get(ANALYSIS_STATUS_COMPLETED, 0) / total * 100, 2)


def performance_summary(analyses: Iterable[AnalysisRecord]) -> PerformanceSummary:
    timings = [a.processing_time_ms for a in analyses if a.processing_time_ms is not None]
    if not timings:
        return PerformanceSummary(
            measured=0,
            min_processing_time_ms=None,
            max_processing_time_ms=None,
            average_processing_time_ms=None,
        )
    return PerformanceSummary(
        measured=len(timings),
        min_processing_time_ms=min(timings),
        max_processing_time_ms=max(timings),
        average_processing_time_ms=sum(timings) / len(timings),
    )


def build_overview(
    contracts: list[ContractRecord],
    analyses: list[AnalysisRecord],
    *,
    usage_series: UsageTimeSeries | None = None,
    totals: TenantTotals | None = None,
) -> ReportOverview:
    breakdown = status_breakdown(analyses)
    return ReportOverview(
        contracts_in_period=len(contracts),
        analyses_in_period=len(analyses),
        status_breakdown=breakdown,
        success_rate=success_rate(breakdown),
        contract_types=contract_type_distribution(contracts),
        performance=performance_summary(analyses),
        usage_by_action=usage_totals_by_action(usage_series or {}),
        total_contracts=totals.contracts if totals is not None else None,
        total_analyses=totals.analyses if totals is not None else None,
    )
