from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from ledger import (
    CategorySum,
    DailyTotal,
    ExpenseFields,
    LedgerStore,
    LedgerUnavailable,
    NewExpense,
)
from periods import Period
from reports import NO_DATA, ReportEngine, mean_and_median, month_label, percent_of


def _daily(*amounts: int) -> list[DailyTotal]:
    return [DailyTotal(day=date(2024, 3, i + 1), amount_cents=a) for i, a in enumerate(amounts)]


def _seed(ledger: LedgerStore, *rows: tuple[str, int, date, str]) -> None:
    for description, amount, day, category in rows:
        ledger.insert_expense(
            NewExpense(
                fields=ExpenseFields(
                    description=description,
                    amount_cents=amount,
                    date=day,
                    category=category,
                )
            )
        )


def test_median_and_mean_for_odd_count() -> None:
    assert mean_and_median(_daily(100, 300, 200)) == (200, 200)


def test_median_picks_upper_middle_for_even_count() -> None:
    mean, median = mean_and_median(_daily(100, 300))
    assert median == 300
    assert mean == 200


def test_mean_truncates() -> None:
    mean, median = mean_and_median(_daily(100, 101, 101))
    assert mean == 100
    assert median == 101

    mean, _ = mean_and_median(_daily(-100, -101, -101))
    assert mean == -100


def test_no_activity_reports_sentinel() -> None:
    assert mean_and_median([]) == (NO_DATA, NO_DATA)


def test_percent_of_zero_total_is_zero() -> None:
    assert percent_of(0, 0) == 0.0
    assert percent_of(500, 0) == 0.0
    assert percent_of(1, 3) == pytest.approx(33.333, rel=1e-3)


def test_month_label_is_zero_padded() -> None:
    assert month_label(3, 2024) == "03.2024"
    assert month_label(12, 999) == "12.0999"


def test_report_for_month_with_categories() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ledger = LedgerStore(session)
        ledger.add_category("food", "#E4572E")
        ledger.add_category("transport", "#17BEBB")
        _seed(
            ledger,
            ("Lunch", 500, date(2024, 3, 4), "food"),
            ("Dinner", 300, date(2024, 3, 5), "food"),
            ("Bus", 200, date(2024, 3, 5), "transport"),
        )

        report = ReportEngine(ledger, today=date(2024, 3, 20)).compute_report(
            "month", 3, 2024
        )

        assert report.total_cents == 1000
        assert {(c.name, c.amount_cents, c.percent) for c in report.categories} == {
            ("food", 800, 80.0),
            ("transport", 200, 20.0),
        }
        # daily totals 500 and 500
        assert report.mean_cents == 500
        assert report.median_cents == 500


def test_empty_month_report() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ledger = LedgerStore(session)
        report = ReportEngine(ledger, today=date(2024, 3, 20)).compute_report(
            "month", 2, 2024
        )

        assert report.total_cents == 0
        assert report.categories == []
        assert report.mean_cents == NO_DATA
        assert report.median_cents == NO_DATA


def test_zero_sum_period_has_zero_percentages() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ledger = LedgerStore(session)
        ledger.add_category("food")
        ledger.add_category("refunds")
        _seed(
            ledger,
            ("Lunch", 500, date(2024, 3, 4), "food"),
            ("Refund", -500, date(2024, 3, 6), "refunds"),
        )

        report = ReportEngine(ledger, today=date(2024, 3, 20)).compute_report(
            "month", 3, 2024
        )

        assert report.total_cents == 0
        assert [c.percent for c in report.categories] == [0.0, 0.0]
        assert report.median_cents == 500
        assert report.mean_cents == 0


def test_year_filter_aggregates_whole_year() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ledger = LedgerStore(session)
        ledger.add_category("food")
        _seed(
            ledger,
            ("Jan", 100, date(2024, 1, 10), "food"),
            ("Mar", 300, date(2024, 3, 10), "food"),
            ("Next year", 999, date(2025, 1, 1), "food"),
        )
        reports = ReportEngine(ledger, today=date(2024, 3, 20))

        assert reports.compute_report("year", 3, 2024).total_cents == 400
        assert reports.compute_report("month", 3, 2024).total_cents == 300
        # week of 2024-03-18 .. 2024-03-24 has no spending
        assert reports.compute_report("week", 3, 2024).total_cents == 0


def test_massive_report_has_thirteen_chronological_months() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        ledger = LedgerStore(session)
        ledger.add_category("food")
        _seed(
            ledger,
            ("Old", 100, date(2024, 1, 15), "food"),
            ("Too old", 999, date(2023, 12, 31), "food"),
            ("New", 700, date(2025, 1, 2), "food"),
        )

        massive = ReportEngine(ledger).compute_massive_report(date(2025, 1, 20))

        labels = [m.label for m in massive.months]
        assert len(labels) == 13
        assert labels[0] == "01.2024"
        assert labels[-1] == "01.2025"
        assert labels[11] == "12.2024"
        assert massive.months[0].report.total_cents == 100
        assert massive.months[-1].report.total_cents == 700
        assert all(m.report.total_cents == 0 for m in massive.months[1:-1])
        assert massive.months[5].report.median_cents == NO_DATA


class FailingLedger:
    def __init__(self, failing_month: int) -> None:
        self.failing_month = failing_month
        self.calls = 0

    def category_sums(self, period: Period) -> list[CategorySum]:
        self.calls += 1
        if period.start.month == self.failing_month:
            raise LedgerUnavailable("ledger.category_sums: database is locked")
        return []

    def period_total(self, period: Period) -> int:
        return 0

    def daily_totals(self, period: Period) -> list[DailyTotal]:
        return []


def test_massive_report_aborts_on_first_failure() -> None:
    ledger = FailingLedger(failing_month=6)

    with pytest.raises(LedgerUnavailable):
        ReportEngine(ledger).compute_massive_report(date(2024, 12, 1))

    # 12.2023 through 06.2024
    assert ledger.calls == 7
