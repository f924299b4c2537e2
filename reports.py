from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from ledger import DailyTotal, LedgerStore
from models import ReportFilter
from periods import Period, resolve_period, trailing_months

# mean/median value for a period without any expenses
NO_DATA = -1

MASSIVE_REPORT_MONTHS = 13


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


@dataclass(frozen=True)
class CategoryReport:
    name: str
    color: Optional[str]
    amount_cents: int
    percent: float


@dataclass(frozen=True)
class Report:
    period: Period
    total_cents: int
    categories: list[CategoryReport] = field(default_factory=list)
    mean_cents: int = NO_DATA
    median_cents: int = NO_DATA


@dataclass(frozen=True)
class MonthlyReport:
    label: str
    month: int
    year: int
    report: Report


@dataclass(frozen=True)
class MassiveReport:
    months: list[MonthlyReport]


def percent_of(amount_cents: int, total_cents: int) -> float:
    if not total_cents:
        return 0.0
    return amount_cents * 100 / total_cents


def mean_and_median(daily: list[DailyTotal]) -> tuple[int, int]:
    """Mean (truncated toward zero) and median of the daily totals.

    The median is the element at index ``n // 2`` of the ascending sort, so an
    even count picks the upper of the two middle values.
    """
    if not daily:
        return NO_DATA, NO_DATA
    amounts = sorted(d.amount_cents for d in daily)
    count = len(amounts)
    total = sum(amounts)
    mean = abs(total) // count
    if total < 0:
        mean = -mean
    return mean, amounts[count // 2]


def month_label(month: int, year: int) -> str:
    return f"{month:02d}.{year:04d}"


class ReportEngine:
    def __init__(self, ledger: LedgerStore, today: Optional[date] = None) -> None:
        self.ledger = ledger
        self.today = today

    def _today(self) -> date:
        return self.today or local_today()

    def compute_report(
        self, report_filter: ReportFilter | str, month: int, year: int
    ) -> Report:
        period = resolve_period(report_filter, month, year, today=self._today())

        sums = self.ledger.category_sums(period)
        total = self.ledger.period_total(period)
        mean, median = mean_and_median(self.ledger.daily_totals(period))

        categories = [
            CategoryReport(
                name=row.name,
                color=row.color,
                amount_cents=row.amount_cents,
                percent=percent_of(row.amount_cents, total),
            )
            for row in sums
        ]
        return Report(
            period=period,
            total_cents=total,
            categories=categories,
            mean_cents=mean,
            median_cents=median,
        )

    def compute_massive_report(self, as_of: Optional[date] = None) -> MassiveReport:
        as_of = as_of or self._today()
        months = []
        for month, year in trailing_months(as_of, MASSIVE_REPORT_MONTHS):
            report = self.compute_report(ReportFilter.month, month, year)
            months.append(
                MonthlyReport(
                    label=month_label(month, year),
                    month=month,
                    year=year,
                    report=report,
                )
            )
        return MassiveReport(months=months)
