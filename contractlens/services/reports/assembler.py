from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, AsyncContextManager, Awaitable, Callable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from contractlens.core.config import get_settings
from contractlens.core.errors import ReportDeadlineError, ReportSourceError
from contractlens.persistence.guards import TenantRef, require_tenant
from contractlens.services.reports.fetchers import (
    AnalysisRecord,
    ContractRecord,
    CostSummary,
    fetch_analyses,
    fetch_contracts,
    fetch_cost_summary,
    fetch_period_counts,
    fetch_risk_sample,
    fetch_tenant_totals,
    fetch_usage_tuples,
)
from contractlens.services.reports.risk import (
    HighRiskItem,
    RiskHistogramEntry,
    RiskSeverityEntry,
    rank_high_risk_items,
    reduce_risk_histogram,
    reduce_risk_severity,
)
from contractlens.services.reports.summaries import ReportOverview, build_overview
from contractlens.services.reports.trends import TrendData, compare_periods
from contractlens.services.reports.usage_series import UsageTimeSeries, build_usage_series
from contractlens.services.reports.windows import ReportWindow, build_report_window, previous_window, validate_window
from contractlens.services.resilience import RetryPolicy, default_retry_policy, retry_async
from contractlens.services.telemetry import increment_counter, record_source_fetch


logger = logging.getLogger(__name__)


SOURCE_CONTRACTS = "contracts"
SOURCE_ANALYSES = "analyses"
SOURCE_USAGE = "usage"
SOURCE_COST = "cost"
SOURCE_RISK = "risk"
SOURCE_TRENDS = "trends"
SOURCE_TOTALS = "totals"

SECTION_OK = "ok"
SECTION_UNAVAILABLE = "unavailable"

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]
FetchFn = Callable[[AsyncSession, TenantRef, ReportWindow], Awaitable[Any]]


@dataclass(frozen=True)
class ReportSource:
    # One independent read against the store; optional sources degrade to ``empty()``.
    name: str
    fetch: FetchFn
    required: bool
    empty: Callable[[], Any]


@dataclass(frozen=True)
class SectionStatus:
    status: str
    error: str | None = None


@dataclass(frozen=True)
class ReportAggregate:
    """Report-ready view of one tenant's activity over a window.

    ``sections`` records per-source status so consumers can tell a degraded
    section ("unavailable") apart from a genuinely empty one.
    """

    tenant: TenantRef
    window: ReportWindow
    contracts: list[ContractRecord]
    analyses: list[AnalysisRecord]
    cost_summary: CostSummary
    risk_histogram: list[RiskHistogramEntry]
    risk_severity: list[RiskSeverityEntry]
    high_risk_items: list[HighRiskItem]
    usage_series: UsageTimeSeries
    overview: ReportOverview
    trends: dict[str, TrendData] | None
    sections: dict[str, SectionStatus]
    warnings: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def degraded(self) -> bool:
        return any(section.status != SECTION_OK for section in self.sections.values())


@dataclass(frozen=True)
class _Outcome:
    source: ReportSource
    value: Any
    error: BaseException | None


async def _fetch_trends(session: AsyncSession, tenant: TenantRef, window: ReportWindow) -> dict[str, TrendData]:
    current = await fetch_period_counts(session, tenant, window)
    previous = await fetch_period_counts(session, tenant, previous_window(window))
    return compare_periods(current, previous)


def _no_totals() -> None:
    return None


def default_sources(
    *,
    risk_sample_limit: int | None = None,
    include_trends: bool = False,
) -> list[ReportSource]:
    settings = get_settings()
    limit = risk_sample_limit if risk_sample_limit is not None else settings.report_risk_sample_limit
    sources = [
        ReportSource(SOURCE_CONTRACTS, fetch_contracts, required=True, empty=list),
        ReportSource(SOURCE_ANALYSES, fetch_analyses, required=True, empty=list),
        ReportSource(SOURCE_USAGE, fetch_usage_tuples, required=False, empty=list),
        ReportSource(SOURCE_COST, fetch_cost_summary, required=False, empty=CostSummary.empty),
        ReportSource(SOURCE_RISK, partial(fetch_risk_sample, limit=limit), required=False, empty=list),
        ReportSource(SOURCE_TOTALS, fetch_tenant_totals, required=False, empty=_no_totals),
    ]
    if include_trends:
        sources.append(ReportSource(SOURCE_TRENDS, _fetch_trends, required=False, empty=dict))
    return sources


async def _run_source(
    source: ReportSource,
    *,
    tenant: TenantRef,
    window: ReportWindow,
    session_factory: SessionFactory,
    policy: RetryPolicy,
) -> _Outcome:
    async def _call() -> Any:
        # Sessions are not safe to share between tasks; each fetch gets its own.
        async with session_factory() as session:
            return await source.fetch(session, tenant, window)

    started = time.monotonic()
    try:
        value = await retry_async(_call, policy=policy, name=f"report.{source.name}")
    except Exception as exc:  # noqa: BLE001 - classified by the join below
        record_source_fetch(
            source=source.name, latency_ms=(time.monotonic() - started) * 1000.0, success=False
        )
        increment_counter(f"report_source_failures_total.{source.name}")
        return _Outcome(source=source, value=None, error=exc)
    record_source_fetch(source=source.name, latency_ms=(time.monotonic() - started) * 1000.0, success=True)
    return _Outcome(source=source, value=value, error=None)


async def assemble_report(
    tenant: TenantRef,
    window: ReportWindow,
    *,
    session_factory: SessionFactory,
    sources: Sequence[ReportSource] | None = None,
    deadline_s: float | None = None,
    retry_policy: RetryPolicy | None = None,
) -> ReportAggregate:
    """Fetch every source concurrently, then reduce into one ``ReportAggregate``.

    Required sources (contracts, analyses) abort the report with
    ``ReportSourceError``; optional ones degrade to empty values with a
    warning. Exceeding ``deadline_s`` cancels in-flight fetches and raises
    ``ReportDeadlineError``.
    """
    require_tenant(tenant)
    validate_window(window, max_days=get_settings().report_max_window_days)
    sources = list(sources) if sources is not None else default_sources()
    policy = retry_policy or default_retry_policy()
    if deadline_s is None:
        deadline_s = get_settings().report_deadline_ms / 1000.0

    tasks = [
        asyncio.create_task(
            _run_source(source, tenant=tenant, window=window, session_factory=session_factory, policy=policy)
        )
        for source in sources
    ]
    try:
        outcomes: list[_Outcome] = await asyncio.wait_for(asyncio.gather(*tasks), timeout=deadline_s)
    except asyncio.TimeoutError as exc:
        for task in tasks:
            task.cancel()
        increment_counter("report_deadline_exceeded_total")
        logger.error(
            "report_deadline_exceeded tenant=%s kind=%s deadline_s=%s",
            tenant.tenant_id,
            tenant.kind,
            deadline_s,
        )
        raise ReportDeadlineError(f"Report assembly exceeded {deadline_s}s deadline") from exc

    values: dict[str, Any] = {}
    sections: dict[str, SectionStatus] = {}
    warnings: list[str] = []
    for outcome in outcomes:
        source = outcome.source
        if outcome.error is None:
            values[source.name] = outcome.value
            sections[source.name] = SectionStatus(status=SECTION_OK)
            continue
        if source.required:
            logger.error(
                "report_source_failed source=%s tenant=%s kind=%s error=%r",
                source.name,
                tenant.tenant_id,
                tenant.kind,
                outcome.error,
            )
            raise ReportSourceError(source.name, outcome.error) from outcome.error
        logger.warning(
            "report_source_degraded source=%s tenant=%s kind=%s error=%r",
            source.name,
            tenant.tenant_id,
            tenant.kind,
            outcome.error,
        )
        increment_counter(f"report_source_degraded_total.{source.name}")
        values[source.name] = source.empty()
        sections[source.name] = SectionStatus(status=SECTION_UNAVAILABLE, error=type(outcome.error).__name__)
        warnings.append(f"{source.name} data unavailable")

    contracts = values.get(SOURCE_CONTRACTS) or []
    analyses = values.get(SOURCE_ANALYSES) or []
    risk_sample = values.get(SOURCE_RISK) or []
    usage_series = build_usage_series(values.get(SOURCE_USAGE) or [])
    aggregate = ReportAggregate(
        tenant=tenant,
        window=window,
        contracts=contracts,
        analyses=analyses,
        cost_summary=values.get(SOURCE_COST) or CostSummary.empty(),
        risk_histogram=reduce_risk_histogram(risk_sample),
        risk_severity=reduce_risk_severity(risk_sample),
        high_risk_items=rank_high_risk_items(risk_sample),
        usage_series=usage_series,
        overview=build_overview(
            contracts,
            analyses,
            usage_series=usage_series,
            totals=values.get(SOURCE_TOTALS),
        ),
        trends=values.get(SOURCE_TRENDS) if SOURCE_TRENDS in sections else None,
        sections=sections,
        warnings=warnings,
    )
    increment_counter("reports_assembled_total")
    logger.info(
        "report_assembled tenant=%s kind=%s period=%s contracts=%s analyses=%s degraded=%s",
        tenant.tenant_id,
        tenant.kind,
        window.period_key,
        len(contracts),
        len(analyses),
        aggregate.degraded,
    )
    return aggregate


async def generate_report(
    tenant: TenantRef,
    period: str | None,
    *,
    custom_start: datetime | None = None,
    custom_end: datetime | None = None,
    now: datetime | None = None,
    session_factory: SessionFactory | None = None,
    include_trends: bool | None = None,
    deadline_s: float | None = None,
) -> ReportAggregate:
    # Shared entry point for interactive and scheduled callers.
    require_tenant(tenant)
    window = build_report_window(period, now=now, custom_start=custom_start, custom_end=custom_end)
    if session_factory is None:
        from contractlens.persistence.db import SessionLocal

        session_factory = SessionLocal
    if include_trends is None:
        include_trends = get_settings().report_include_trends
    return await assemble_report(
        tenant,
        window,
        session_factory=session_factory,
        sources=default_sources(include_trends=include_trends),
        deadline_s=deadline_s,
    )
