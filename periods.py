from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from models import ReportFilter


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def month_period(month: int, year: int) -> Period:
    return Period("month", month_start(year, month), month_end(year, month))


def resolve_period(
    report_filter: ReportFilter | str,
    month: int,
    year: int,
    *,
    today: Optional[date] = None,
) -> Period:
    """Turn a report filter label plus a month/year into a date window.

    ``week`` is the Monday-to-Sunday week around an anchor day: today when
    month/year is the current month, otherwise the last day of that month.
    """
    report_filter = ReportFilter(report_filter)
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")

    if report_filter == ReportFilter.year:
        return Period("year", date(year, 1, 1), date(year, 12, 31))

    if report_filter == ReportFilter.week:
        today = today or date.today()
        if today.year == year and today.month == month:
            anchor = today
        else:
            anchor = month_end(year, month)
        start = anchor - timedelta(days=anchor.weekday())
        return Period("week", start, start + timedelta(days=6))

    return month_period(month, year)


def trailing_months(as_of: date, count: int = 13) -> list[tuple[int, int]]:
    """(month, year) pairs for the ``count`` months ending at ``as_of``, oldest first."""
    months: list[tuple[int, int]] = []
    for i in range(as_of.month - (count - 1), as_of.month + 1):
        month = i
        year = as_of.year
        while month < 1:
            year -= 1
            month += 12
        months.append((month, year))
    return months
