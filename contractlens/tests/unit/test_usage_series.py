from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta, timezone

from contractlens.services.reports.usage_series import (
    UsageTuple,
    build_usage_series,
    fill_daily_points,
    usage_day,
    usage_totals_by_action,
)


def _tuples() -> list[UsageTuple]:
    return [
        UsageTuple(action="upload", occurred_at=datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc), count=2),
        UsageTuple(action="analysis", occurred_at=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc), count=1),
        UsageTuple(action="upload", occurred_at=datetime(2024, 3, 2, 17, 30, tzinfo=timezone.utc), count=3),
        UsageTuple(action="analysis", occurred_at=datetime(2024, 3, 2, 8, 15, tzinfo=timezone.utc), count=4),
    ]


def test_same_day_and_action_counts_are_summed() -> None:
    series = build_usage_series(_tuples())
    assert series == {
        date(2024, 3, 1): {"analysis": 1},
        date(2024, 3, 2): {"upload": 5, "analysis": 4},
    }


def test_series_is_ordered_by_day() -> None:
    series = build_usage_series(reversed(_tuples()))
    assert list(series) == [date(2024, 3, 1), date(2024, 3, 2)]


def test_series_is_independent_of_input_order() -> None:
    expected = build_usage_series(_tuples())
    for permutation in itertools.permutations(_tuples()):
        assert build_usage_series(permutation) == expected


def test_days_are_bucketed_in_utc() -> None:
    plus_nine = timezone(timedelta(hours=9))
    assert usage_day(datetime(2024, 3, 2, 3, 0, tzinfo=plus_nine)) == date(2024, 3, 1)
    assert usage_day(datetime(2024, 3, 2, 3, 0)) == date(2024, 3, 2)


def test_empty_and_non_positive_counts() -> None:
    assert build_usage_series([]) == {}
    zero = UsageTuple(action="view", occurred_at=datetime(2024, 3, 1, tzinfo=timezone.utc), count=0)
    assert build_usage_series([zero]) == {}


def test_fill_daily_points_fills_missing_dates() -> None:
    series = build_usage_series(_tuples())
    points = fill_daily_points(series, start_day=date(2024, 2, 29), end_day=date(2024, 3, 3))
    assert [point["ts"] for point in points] == ["2024-02-29", "2024-03-01", "2024-03-02", "2024-03-03"]
    assert [point["total"] for point in points] == [0, 1, 9, 0]
    assert points[2]["by_action"] == {"upload": 5, "analysis": 4}


def test_usage_totals_by_action_cover_the_whole_window() -> None:
    series = {
        date(2024, 3, 1): {"upload": 2, "analysis": 1},
        date(2024, 3, 4): {"analysis": 3, "export": 1},
        date(2024, 3, 9): {"upload": 2},
    }
    totals = usage_totals_by_action(series)
    assert totals == {"analysis": 4, "upload": 4, "export": 1}
    assert list(totals) == ["analysis", "upload", "export"]
    assert usage_totals_by_action({}) == {}
