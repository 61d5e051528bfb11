from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contractlens.domain.models import ANALYSIS_STATUS_COMPLETED, AnalysisResult, Contract, UsageLog
from contractlens.persistence.guards import TenantRef, tenant_predicate
from contractlens.services.reports.risk import extract_risk_annotations
from contractlens.services.reports.trends import PeriodCounts
from contractlens.services.reports.usage_series import UsageTuple
from contractlens.services.reports.windows import ReportWindow


DEFAULT_RISK_SAMPLE_LIMIT = 100


@dataclass(frozen=True)
class AnalysisRef:
    # Most recent analysis attached to a contract row.
    id: str
    status: str
    created_at: datetime
    confidence_score: float | None


@dataclass(frozen=True)
class ContractRef:
    # Parent contract identity carried on analysis rows for display only.
    id: str
    file_name: str
    contract_type: str | None


@dataclass(frozen=True)
class ContractRecord:
    id: str
    file_name: str
    contract_type: str | None
    created_at: datetime
    latest_analysis: AnalysisRef | None


@dataclass(frozen=True)
class AnalysisRecord:
    id: str
    contract: ContractRef | None
    status: str
    created_at: datetime
    processing_time_ms: int | None
    confidence_score: float | None
    estimated_cost: Decimal | None
    tokens_used: int | None
    risk_annotations: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class RiskSampleRecord:
    # Minimal projection of a completed analysis for the risk reducers.
    id: str
    contract_type: str | None
    risk_annotations: list[Any]
    file_name: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TenantTotals:
    # All-time counts, shown next to the in-period figures.
    contracts: int
    analyses: int


@dataclass(frozen=True)
class CostSummary:
    # Server-side aggregate over analyses that carry a cost figure.
    count: int
    total_cost: Decimal
    average_cost: Decimal | None
    total_tokens: int
    average_processing_time_ms: float | None
    average_confidence_score: float | None

    @classmethod
    def empty(cls) -> "CostSummary":
        return cls(
            count=0,
            total_cost=Decimal("0"),
            average_cost=None,
            total_tokens=0,
            average_processing_time_ms=None,
            average_confidence_score=None,
        )


def _decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _in_window(column, window: ReportWindow) -> object:
    # Both bounds are inclusive; the window end is "now" for relative periods.
    return and_(column >= window.start, column <= window.end)


async def fetch_contracts(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> list[ContractRecord]:
    # Non-deleted contracts in the window, each joined with at most its newest analysis.
    ranked = (
        select(
            AnalysisResult.id.label("analysis_id"),
            AnalysisResult.contract_id.label("contract_id"),
            AnalysisResult.status.label("status"),
            AnalysisResult.created_at.label("analysis_created_at"),
            AnalysisResult.confidence_score.label("confidence_score"),
            func.row_number()
            .over(
                partition_by=AnalysisResult.contract_id,
                order_by=(AnalysisResult.created_at.desc(), AnalysisResult.id.desc()),
            )
            .label("rank"),
        )
        .where(
            AnalysisResult.contract_id.in_(
                select(Contract.id).where(tenant_predicate(Contract, tenant))
            )
        )
        .subquery()
    )
    result = await session.execute(
        select(
            Contract,
            ranked.c.analysis_id,
            ranked.c.status,
            ranked.c.analysis_created_at,
            ranked.c.confidence_score,
        )
        .outerjoin(ranked, and_(ranked.c.contract_id == Contract.id, ranked.c.rank == 1))
        .where(
            tenant_predicate(Contract, tenant),
            Contract.deleted_at.is_(None),
            _in_window(Contract.created_at, window),
        )
        .order_by(Contract.created_at.desc(), Contract.id.asc())
    )
    records: list[ContractRecord] = []
    for contract, analysis_id, status, analysis_created_at, confidence_score in result.all():
        latest = None
        if analysis_id is not None:
            latest = AnalysisRef(
                id=analysis_id,
                status=status,
                created_at=analysis_created_at,
                confidence_score=_float(confidence_score),
            )
        records.append(
            ContractRecord(
                id=contract.id,
                file_name=contract.file_name,
                contract_type=contract.contract_type,
                created_at=contract.created_at,
                latest_analysis=latest,
            )
        )
    return records


async def fetch_analyses(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> list[AnalysisRecord]:
    # Analyses created in the window with their parent contract's display fields.
    result = await session.execute(
        select(AnalysisResult, Contract.id, Contract.file_name, Contract.contract_type)
        .outerjoin(Contract, Contract.id == AnalysisResult.contract_id)
        .where(
            tenant_predicate(AnalysisResult, tenant),
            _in_window(AnalysisResult.created_at, window),
        )
        .order_by(AnalysisResult.created_at.desc(), AnalysisResult.id.asc())
    )
    records: list[AnalysisRecord] = []
    for analysis, contract_id, file_name, contract_type in result.all():
        contract = None
        if contract_id is not None:
            contract = ContractRef(id=contract_id, file_name=file_name, contract_type=contract_type)
        records.append(
            AnalysisRecord(
                id=analysis.id,
                contract=contract,
                status=analysis.status,
                created_at=analysis.created_at,
                processing_time_ms=analysis.processing_time_ms,
                confidence_score=_float(analysis.confidence_score),
                estimated_cost=_decimal(analysis.estimated_cost),
                tokens_used=analysis.tokens_used,
                risk_annotations=extract_risk_annotations(analysis.results),
            )
        )
    return records


async def fetch_usage_tuples(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> list[UsageTuple]:
    # Group at the store so the result size tracks distinct instants, not raw events.
    count_col = func.count(UsageLog.id)
    result = await session.execute(
        select(UsageLog.action, UsageLog.created_at, count_col)
        .where(
            tenant_predicate(UsageLog, tenant),
            _in_window(UsageLog.created_at, window),
        )
        .group_by(UsageLog.action, UsageLog.created_at)
        .order_by(UsageLog.created_at.asc(), UsageLog.action.asc())
    )
    return [
        UsageTuple(action=str(action), occurred_at=occurred_at, count=int(count or 0))
        for action, occurred_at, count in result.all()
        if occurred_at is not None
    ]


async def fetch_cost_summary(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> CostSummary:
    # Rows without an estimated cost are excluded from every figure, not counted as zero.
    result = await session.execute(
        select(
            func.count(AnalysisResult.id),
            func.coalesce(func.sum(AnalysisResult.estimated_cost), 0),
            func.avg(AnalysisResult.estimated_cost),
            func.coalesce(func.sum(AnalysisResult.tokens_used), 0),
            func.avg(AnalysisResult.processing_time_ms),
            func.avg(AnalysisResult.confidence_score),
        ).where(
            tenant_predicate(AnalysisResult, tenant),
            _in_window(AnalysisResult.created_at, window),
            AnalysisResult.estimated_cost.is_not(None),
        )
    )
    row = result.one_or_none()
    if row is None:
        return CostSummary.empty()
    count, total_cost, average_cost, total_tokens, avg_processing, avg_confidence = row
    return CostSummary(
        count=int(count or 0),
        total_cost=_decimal(total_cost) or Decimal("0"),
        average_cost=_decimal(average_cost),
        total_tokens=int(total_tokens or 0),
        average_processing_time_ms=_float(avg_processing),
        average_confidence_score=_float(avg_confidence),
    )


async def fetch_risk_sample(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
    *,
    limit: int = DEFAULT_RISK_SAMPLE_LIMIT,
) -> list[RiskSampleRecord]:
    # Newest completed analyses only, capped so work is independent of total volume.
    result = await session.execute(
        select(
            AnalysisResult.id,
            AnalysisResult.results,
            AnalysisResult.created_at,
            Contract.contract_type,
            Contract.file_name,
        )
        .outerjoin(Contract, Contract.id == AnalysisResult.contract_id)
        .where(
            tenant_predicate(AnalysisResult, tenant),
            _in_window(AnalysisResult.created_at, window),
            AnalysisResult.status == ANALYSIS_STATUS_COMPLETED,
        )
        .order_by(AnalysisResult.created_at.desc(), AnalysisResult.id.asc())
        .limit(max(0, int(limit)))
    )
    return [
        RiskSampleRecord(
            id=analysis_id,
            contract_type=contract_type,
            risk_annotations=extract_risk_annotations(results),
            file_name=file_name,
            created_at=created_at,
        )
        for analysis_id, results, created_at, contract_type, file_name in result.all()
    ]


async def fetch_period_counts(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> PeriodCounts:
    # Headline counts for one window; run for current and previous periods.
    contracts = await session.execute(
        select(func.count(Contract.id)).where(
            tenant_predicate(Contract, tenant),
            Contract.deleted_at.is_(None),
            _in_window(Contract.created_at, window),
        )
    )
    analyses = await session.execute(
        select(
            func.count(AnalysisResult.id),
            func.count(AnalysisResult.id).filter(AnalysisResult.status == ANALYSIS_STATUS_COMPLETED),
            func.coalesce(func.sum(AnalysisResult.estimated_cost), 0),
        ).where(
            tenant_predicate(AnalysisResult, tenant),
            _in_window(AnalysisResult.created_at, window),
        )
    )
    analysis_total, completed, cost = analyses.one()
    return PeriodCounts(
        contracts=int(contracts.scalar_one() or 0),
        analyses=int(analysis_total or 0),
        completed_analyses=int(completed or 0),
        estimated_cost=_decimal(cost) or Decimal("0"),
    )


async def fetch_tenant_totals(
    session: AsyncSession,
    tenant: TenantRef,
    window: ReportWindow,
) -> TenantTotals:
    # The window is ignored: these are lifetime counts for the tenant.
    contracts = await session.execute(
        select(func.count(Contract.id)).where(
            tenant_predicate(Contract, tenant),
            Contract.deleted_at.is_(None),
        )
    )
    analyses = await session.execute(
        select(func.count(AnalysisResult.id)).where(tenant_predicate(AnalysisResult, tenant))
    )
    return TenantTotals(
        contracts=int(contracts.scalar_one() or 0),
        analyses=int(analyses.scalar_one() or 0),
    )
