from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


# Changes smaller than this many percent are reported as stable.
STABLE_THRESHOLD_PCT = 1.0


@dataclass(frozen=True)
class TrendData:
    current: float
    previous: float
    change: float
    percentage: float
    direction: str


@dataclass(frozen=True)
class PeriodCounts:
    # Headline counts for one window, used for period-over-period comparison.
    contracts: int
    analyses: int
    completed_analyses: int
    estimated_cost: Decimal


def calculate_trend(current: float | Decimal, previous: float | Decimal) -> TrendData:
    current_value = float(current)
    previous_value = float(previous)
    change = current_value - previous_value
    percentage = (change / previous_value) * 100 if previous_value > 0 else 0.0
    if abs(percentage) < STABLE_THRESHOLD_PCT:
        direction = "stable"
    elif percentage > 0:
        direction = "up"
    else:
        direction = "down"
    return TrendData(
        current=current_value,
        previous=previous_value,
        change=change,
        percentage=round(percentage, 2),
        direction=direction,
    )


def compare_periods(current: PeriodCounts, previous: PeriodCounts) -> dict[str, TrendData]:
    return {
        "contracts": calculate_trend(current.contracts, previous.contracts),
        "analyses": calculate_trend(current.analyses, previous.analyses),
        "completed_analyses": calculate_trend(current.completed_analyses, previous.completed_analyses),
        "estimated_cost": calculate_trend(current.estimated_cost, previous.estimated_cost),
    }
