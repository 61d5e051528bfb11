from __future__ import annotations

# Re-export report services for centralized imports.

from contractlens.services.reports.assembler import (
    ReportAggregate,
    ReportSource,
    SectionStatus,
    assemble_report,
    default_sources,
    generate_report,
)
from contractlens.services.reports.fetchers import (
    AnalysisRecord,
    ContractRecord,
    CostSummary,
    RiskSampleRecord,
    TenantTotals,
)
from contractlens.services.reports.payload import report_payload
from contractlens.services.reports.risk import (
    HighRiskItem,
    RiskHistogramEntry,
    RiskSeverityEntry,
    rank_high_risk_items,
    reduce_risk_histogram,
    reduce_risk_severity,
)
from contractlens.services.reports.usage_series import UsageTuple, build_usage_series, usage_totals_by_action
from contractlens.services.reports.windows import ReportWindow, build_report_window, resolve_window

__all__ = [
    "ReportAggregate",
    "ReportSource",
    "SectionStatus",
    "assemble_report",
    "default_sources",
    "generate_report",
    "AnalysisRecord",
    "ContractRecord",
    "CostSummary",
    "RiskSampleRecord",
    "TenantTotals",
    "report_payload",
    "RiskHistogramEntry",
    "reduce_risk_histogram",
    "HighRiskItem",
    "RiskSeverityEntry",
    "rank_high_risk_items",
    "reduce_risk_severity",
    "UsageTuple",
    "build_usage_series",
    "usage_totals_by_action",
    "ReportWindow",
    "build_report_window",
    "resolve_window",
]
