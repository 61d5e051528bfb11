from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Union


OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class TypedRisk:
    # Annotation that names its risk via the "type" key.
    label: str

    @property
    def category_key(self) -> str:
        return self.label


@dataclass(frozen=True)
class CategorizedRisk:
    # Older annotations that only carry a "category" key.
    label: str

    @property
    def category_key(self) -> str:
        return self.label


@dataclass(frozen=True)
class UnknownRisk:
    @property
    def category_key(self) -> str:
        return OTHER_CATEGORY


RiskAnnotation = Union[TypedRisk, CategorizedRisk, UnknownRisk]


@dataclass(frozen=True)
class RiskHistogramEntry:
    category: str
    count: int


def _label(value: Any) -> str | None:
    # Empty or missing labels fall through to the next key in the chain.
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text or None


def parse_risk_annotation(raw: Any) -> RiskAnnotation:
    # Best-effort extraction: type, then category, then the Other bucket.
    if not isinstance(raw, dict):
        return UnknownRisk()
    type_label = _label(raw.get("type"))
    if type_label is not None:
        return TypedRisk(type_label)
    category_label = _label(raw.get("category"))
    if category_label is not None:
        return CategorizedRisk(category_label)
    return UnknownRisk()


def extract_risk_annotations(results: Any) -> list[Any]:
    # Analysis payloads keep risks under "risks"; anything else counts as no risks.
    if not isinstance(results, dict):
        return []
    risks = results.get("risks")
    if not isinstance(risks, list):
        return []
    return risks


def reduce_risk_histogram(
    analyses: Iterable[Any],
    *,
    limit: int | None = None,
) -> list[RiskHistogramEntry]:
    """Fold the risk annotations of sampled analyses into a category histogram.

    Each analysis exposes ``risk_annotations``; a missing or non-list value is
    treated as no annotations. Entries are ordered by count descending and
    ties keep first-seen order. ``limit`` truncates to the top categories for
    compact dashboards.
    """
    counts: dict[str, int] = {}
    for analysis in analyses:
        annotations = getattr(analysis, "risk_annotations", None)
        if not isinstance(annotations, list):
            continue
        for raw in annotations:
            key = parse_risk_annotation(raw).category_key
            counts[key] = counts.get(key, 0) + 1
    entries = sorted(
        (RiskHistogramEntry(category=key, count=value) for key, value in counts.items()),
        key=lambda entry: -entry.count,
    )
    if limit is not None:
        return entries[: max(0, limit)]
    return entries


SEVERITY_CRITICAL = "critical"
SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"
SEVERITY_UNKNOWN = "unknown"
SEVERITY_LEVELS: tuple[str, ...] = (SEVERITY_CRITICAL, SEVERITY_HIGH, SEVERITY_MEDIUM, SEVERITY_LOW)
DEFAULT_HIGH_RISK_ITEMS = 20


@dataclass(frozen=True)
class RiskSeverityEntry:
    severity: str
    count: int


@dataclass(frozen=True)
class HighRiskItem:
    # One sampled analysis ranked by how many high and critical risks it carries.
    analysis_id: str
    file_name: str | None
    created_at: datetime | None
    high_risk_count: int
    critical_risk_count: int


def parse_risk_severity(raw: Any) -> str:
    if not isinstance(raw, dict):
        return SEVERITY_UNKNOWN
    label = _label(raw.get("severity"))
    if label is None:
        return SEVERITY_UNKNOWN
    severity = label.strip().lower()
    return severity if severity in SEVERITY_LEVELS else SEVERITY_UNKNOWN


def _annotations(analysis: Any) -> list[Any]:
    annotations = getattr(analysis, "risk_annotations", None)
    return annotations if isinstance(annotations, list) else []


def reduce_risk_severity(analyses: Iterable[Any]) -> list[RiskSeverityEntry]:
    """Count sampled risk annotations per severity, most severe first.

    Every known level is present even at zero; annotations without a
    recognised severity are reported under ``unknown`` only when they occur.
    """
    counts = {level: 0 for level in SEVERITY_LEVELS}
    unknown = 0
    for analysis in analyses:
        for raw in _annotations(analysis):
            severity = parse_risk_severity(raw)
            if severity == SEVERITY_UNKNOWN:
                unknown += 1
            else:
                counts[severity] += 1
    entries = [RiskSeverityEntry(severity=level, count=counts[level]) for level in SEVERITY_LEVELS]
    if unknown:
        entries.append(RiskSeverityEntry(severity=SEVERITY_UNKNOWN, count=unknown))
    return entries


def rank_high_risk_items(
    analyses: Iterable[Any],
    *,
    limit: int = DEFAULT_HIGH_RISK_ITEMS,
) -> list[HighRiskItem]:
    # Analyses with at least one high or critical risk, most high risks first; ties keep sample order.
    items: list[HighRiskItem] = []
    for analysis in analyses:
        severities = [parse_risk_severity(raw) for raw in _annotations(analysis)]
        high = severities.count(SEVERITY_HIGH)
        critical = severities.count(SEVERITY_CRITICAL)
        if high == 0 and critical == 0:
            continue
        items.append(
            HighRiskItem(
                analysis_id=analysis.id,
                file_name=getattr(analysis, "file_name", None),
                created_at=getattr(analysis, "created_at", None),
                high_risk_count=high,
                critical_risk_count=critical,
            )
        )
    items.sort(key=lambda item: (-item.high_risk_count, -item.critical_risk_count))
    return items[: max(0, limit)]
