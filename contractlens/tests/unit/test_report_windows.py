from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from contractlens.core.errors import ReportWindowError
from contractlens.services.reports.windows import (
    ReportWindow,
    build_report_window,
    parse_period_key,
    previous_window,
    resolve_window,
)


NOWS = [
    datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
    datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc),
    datetime(2024, 3, 20, 12, 30, tzinfo=timezone.utc),
    datetime(2024, 6, 30, 8, 0, tzinfo=timezone.utc),
    datetime(2024, 11, 15, 18, 45, tzinfo=timezone.utc),
    datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc),
]


@pytest.mark.parametrize("now", NOWS)
@pytest.mark.parametrize("period", ["week", "month", "quarter", "year"])
def test_relative_windows_end_at_now(period: str, now: datetime) -> None:
    window = resolve_window(period, now)
    assert window.start <= window.end <= now
    assert window.end == now
    assert window.period_key == period


@pytest.mark.parametrize("now", NOWS)
def test_month_window_starts_on_first_of_month(now: datetime) -> None:
    window = resolve_window("month", now)
    assert window.start.day == 1
    assert (window.start.year, window.start.month) == (now.year, now.month)
    assert (window.start.hour, window.start.minute, window.start.second) == (0, 0, 0)


@pytest.mark.parametrize("now", NOWS)
def test_quarter_window_starts_on_quarter_month(now: datetime) -> None:
    window = resolve_window("quarter", now)
    assert window.start.month in {1, 4, 7, 10}
    assert window.start.day == 1
    assert window.start.month <= now.month < window.start.month + 3


def test_week_and_year_windows() -> None:
    now = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)
    assert resolve_window("week", now).start == now - timedelta(days=7)
    assert resolve_window("year", now).start == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_month_window_for_scenario_date() -> None:
    now = datetime(2024, 3, 20, tzinfo=timezone.utc)
    window = resolve_window("month", now)
    assert window.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert window.end == now


def test_custom_window_uses_caller_bounds() -> None:
    now = datetime(2024, 3, 20, tzinfo=timezone.utc)
    start = datetime(2023, 7, 1, tzinfo=timezone.utc)
    end = datetime(2023, 9, 30, tzinfo=timezone.utc)
    window = build_report_window("custom", now=now, custom_start=start, custom_end=end)
    assert window == ReportWindow(start=start, end=end, period_key="custom")


def test_incomplete_custom_window_falls_back_to_month() -> None:
    now = datetime(2024, 3, 20, tzinfo=timezone.utc)
    window = build_report_window(
        "custom",
        now=now,
        custom_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        incomplete_custom="month",
    )
    assert window.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert window.end == now
    assert window.period_key == "month"


def test_incomplete_custom_window_rejected_under_strict_policy(monkeypatch) -> None:
    monkeypatch.setenv("REPORT_INCOMPLETE_CUSTOM_WINDOW", "reject")
    with pytest.raises(ReportWindowError):
        build_report_window("custom", now=datetime(2024, 3, 20, tzinfo=timezone.utc))


def test_custom_window_with_start_after_end_is_rejected() -> None:
    with pytest.raises(ReportWindowError):
        build_report_window(
            "custom",
            custom_start=datetime(2024, 3, 10, tzinfo=timezone.utc),
            custom_end=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )


def test_custom_window_longer_than_cap_is_rejected(monkeypatch) -> None:
    with pytest.raises(ReportWindowError):
        build_report_window(
            "custom",
            custom_start=datetime(1900, 1, 1, tzinfo=timezone.utc),
            custom_end=datetime(2100, 1, 1, tzinfo=timezone.utc),
        )
    monkeypatch.setenv("REPORT_MAX_WINDOW_DAYS", "10")
    with pytest.raises(ReportWindowError):
        build_report_window(
            "custom",
            custom_start=datetime(2024, 3, 1, tzinfo=timezone.utc),
            custom_end=datetime(2024, 3, 20, tzinfo=timezone.utc),
        )


def test_year_window_fits_default_cap() -> None:
    now = datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc)
    assert build_report_window("year", now=now).start == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_unknown_period_is_rejected() -> None:
    with pytest.raises(ReportWindowError):
        parse_period_key("fortnight")
    with pytest.raises(ReportWindowError):
        build_report_window("decade")


def test_period_key_is_normalized() -> None:
    assert parse_period_key(" Quarter ") == "quarter"
    assert parse_period_key(None) == "month"


def test_previous_window_has_equal_length_and_precedes_start() -> None:
    window = ReportWindow(
        start=datetime(2024, 3, 1, tzinfo=timezone.utc),
        end=datetime(2024, 3, 20, tzinfo=timezone.utc),
        period_key="month",
    )
    prior = previous_window(window)
    assert prior.end < window.start
    assert prior.duration == window.duration
