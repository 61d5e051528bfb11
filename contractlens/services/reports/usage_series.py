from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable


UsageTimeSeries = dict[date, dict[str, int]]


@dataclass(frozen=True)
class UsageTuple:
    # Store-side aggregate: count of one action at one grouping instant.
    action: str
    occurred_at: datetime
    count: int


def usage_day(occurred_at: datetime | date) -> date:
    # Bucket by UTC calendar day; naive timestamps are already UTC.
    if isinstance(occurred_at, datetime):
        if occurred_at.tzinfo is not None:
            occurred_at = occurred_at.astimezone(timezone.utc)
        return occurred_at.date()
    return occurred_at


def build_usage_series(usage_tuples: Iterable[UsageTuple]) -> UsageTimeSeries:
    # Sum repeated (day, action) pairs so finer store grouping collapses to daily counts.
    by_day: dict[date, dict[str, int]] = {}
    for item in usage_tuples:
        if item.count <= 0:
            continue
        day_counts = by_day.setdefault(usage_day(item.occurred_at), {})
        day_counts[item.action] = day_counts.get(item.action, 0) + int(item.count)
    return {day: by_day[day] for day in sorted(by_day)}


def fill_daily_points(
    series: UsageTimeSeries,
    *,
    start_day: date,
    end_day: date,
) -> list[dict[str, Any]]:
    # Fill missing dates so chart consumers receive contiguous series points.
    points: list[dict[str, Any]] = []
    current = start_day
    while current <= end_day:
        by_action = dict(series.get(current, {}))
        points.append({"ts": current.isoformat(), "total": sum(by_action.values()), "by_action": by_action})
        current += timedelta(days=1)
    return points


def usage_totals_by_action(series: UsageTimeSeries) -> dict[str, int]:
    # Whole-window count per action, largest first; ties ordered by action name.
    totals: dict[str, int] = {}
    for actions in series.values():
        for action, count in actions.items():
            totals[action] = totals.get(action, 0) + count
    return dict(sorted(totals.items(), key=lambda item: (-item[1], item[0])))
