from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from contractlens.core.config import get_settings
from contractlens.core.errors import ReportWindowError


logger = logging.getLogger(__name__)


PeriodKey = Literal["week", "month", "quarter", "year", "custom"]
PERIOD_KEYS: tuple[str, ...] = ("week", "month", "quarter", "year", "custom")

INCOMPLETE_CUSTOM_REJECT = "reject"


@dataclass(frozen=True)
class ReportWindow:
    # Concrete reporting range; both bounds are inclusive when querying.
    start: datetime
    end: datetime
    period_key: str

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _start_of_month(now: datetime, month: int) -> datetime:
    return now.replace(month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def parse_period_key(value: str | None) -> str:
    # Normalize caller input; unknown keys are validation errors, never guessed.
    key = (value or "month").strip().lower()
    if key not in PERIOD_KEYS:
        raise ReportWindowError(f"Unknown report period: {value!r}")
    return key


def resolve_window(
    period_key: str,
    now: datetime,
    custom_start: datetime | None = None,
    custom_end: datetime | None = None,
) -> ReportWindow:
    """Map a period selector to a concrete window anchored at ``now``.

    Pure and total over the known period keys. A ``custom`` selector missing
    either bound falls back to month-to-date; callers that want the strict
    behaviour go through :func:`build_report_window`.
    """
    if period_key == "week":
        return ReportWindow(start=now - timedelta(days=7), end=now, period_key="week")
    if period_key == "quarter":
        first_month = ((now.month - 1) // 3) * 3 + 1
        return ReportWindow(start=_start_of_month(now, first_month), end=now, period_key="quarter")
    if period_key == "year":
        return ReportWindow(start=_start_of_month(now, 1), end=now, period_key="year")
    if period_key == "custom" and custom_start is not None and custom_end is not None:
        return ReportWindow(start=custom_start, end=custom_end, period_key="custom")
    # month, and custom without both bounds; the key records which bounds were used
    return ReportWindow(start=_start_of_month(now, now.month), end=now, period_key="month")


def validate_window(window: ReportWindow, *, max_days: int | None = None) -> ReportWindow:
    if window.period_key not in PERIOD_KEYS:
        raise ReportWindowError(f"Unknown report period: {window.period_key!r}")
    if window.start > window.end:
        raise ReportWindowError(
            f"Report window start {window.start.isoformat()} is after end {window.end.isoformat()}"
        )
    if max_days is not None and window.duration > timedelta(days=max_days):
        raise ReportWindowError(f"Report window spans more than {max_days} days")
    return window


def build_report_window(
    period: str | None,
    *,
    now: datetime | None = None,
    custom_start: datetime | None = None,
    custom_end: datetime | None = None,
    incomplete_custom: str | None = None,
) -> ReportWindow:
    # Resolve and validate caller input; raises ReportWindowError before any fetch happens.
    period_key = parse_period_key(period)
    settings = get_settings()
    policy = incomplete_custom or settings.report_incomplete_custom_window
    if period_key == "custom" and (custom_start is None or custom_end is None):
        if policy == INCOMPLETE_CUSTOM_REJECT:
            raise ReportWindowError("Custom report windows require both start and end")
        logger.info("report_window_fallback requested=custom resolved=month")
    current = now or _utc_now()
    window = resolve_window(period_key, current, custom_start, custom_end)
    return validate_window(window, max_days=settings.report_max_window_days)


def previous_window(window: ReportWindow) -> ReportWindow:
    # Equal-length window ending just before the current one starts.
    end = window.start - timedelta(microseconds=1)
    return ReportWindow(start=end - window.duration, end=end, period_key=window.period_key)
