from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from config import Settings, get_settings
from ledger import (
    ExpenseFields,
    ExpenseUpdate,
    ExpenseWrite,
    LedgerStore,
    LedgerUnavailable,
    NewExpense,
)
from models import Expense, ReportFilter
from query_cache import CacheKey, QueryCache
from reports import Report, ReportEngine, local_today
from schemas import (
    CategoryOut,
    CategoryReportOut,
    ExpenseOut,
    MassiveReportOut,
    MonthReportOut,
    ReportOut,
)

logger = logging.getLogger(__name__)


def expense_out(row: Expense) -> ExpenseOut:
    return ExpenseOut(
        id=row.id,
        description=row.description,
        amount_cents=row.amount_cents,
        date=row.date,
        category=row.category_name,
        color=row.color,
    )


def report_out(report: Report) -> ReportOut:
    return ReportOut(
        total=report.total_cents,
        categories=[
            CategoryReportOut(
                name=c.name, color=c.color, amount=c.amount_cents, percent=c.percent
            )
            for c in report.categories
        ],
        mean=report.mean_cents,
        median=report.median_cents,
    )


class FinancesService:
    """Entry point for the transport layer.

    Listing results are served through the shared ``QueryCache``; every write
    flushes the whole cache before the ledger is touched. A read running
    concurrently with a write can still cache pre-write rows until the next
    write or TTL expiry.
    """

    def __init__(
        self,
        session: Session,
        cache: QueryCache,
        *,
        settings: Optional[Settings] = None,
        today: Optional[date] = None,
    ) -> None:
        self.session = session
        self.cache = cache
        self.settings = settings or get_settings()
        self.today = today
        self.ledger = LedgerStore(session)
        self.engine = ReportEngine(self.ledger, today=today)

    def _today(self) -> date:
        return self.today or local_today()

    def record_expense(
        self,
        description: str,
        amount_cents: int,
        date: date,
        category: str,
        id: int = 0,
    ) -> Expense:
        fields = ExpenseFields(
            description=description,
            amount_cents=amount_cents,
            date=date,
            category=category,
        )
        if id == 0:
            return self.save_expense(NewExpense(fields=fields))
        return self.save_expense(ExpenseUpdate(id=id, fields=fields))

    def save_expense(self, write: ExpenseWrite) -> Expense:
        self.cache.flush_all()
        try:
            if isinstance(write, NewExpense):
                row = self.ledger.insert_expense(write)
            else:
                row = self.ledger.update_expense(write)
        except (ValueError, LedgerUnavailable) as exc:
            logger.error(f"save_expense: {exc}")
            raise
        logger.info(
            f"save_expense: id={row.id} date={row.date.isoformat()} "
            f"category={write.fields.category}"
        )
        return row

    def list_expenses(
        self, category: Optional[str], month: int, year: int
    ) -> tuple[list[ExpenseOut], int]:
        list_key, total_key = CacheKey.pair(category, month, year)
        cached_list, list_found = self.cache.get(list_key)
        cached_total, total_found = self.cache.get(total_key)
        if list_found and total_found:
            logger.info(
                f"list_expenses: cache hit category={category or '*'} "
                f"month={month} year={year}"
            )
            return list(cached_list), cached_total

        logger.info(
            f"list_expenses: cache miss category={category or '*'} "
            f"month={month} year={year}"
        )
        try:
            rows, total = self.ledger.list_expenses(category, month, year)
        except (ValueError, LedgerUnavailable) as exc:
            logger.error(f"list_expenses: {exc}")
            raise

        expenses = tuple(expense_out(row) for row in rows)
        ttl = self.settings.cache_ttl_secs
        self.cache.set(list_key, expenses, ttl)
        self.cache.set(total_key, total, ttl)
        return list(expenses), total

    def categories_list(self) -> list[CategoryOut]:
        try:
            categories = self.ledger.list_categories()
        except LedgerUnavailable as exc:
            logger.error(f"categories_list: {exc}")
            raise
        return [CategoryOut(name=c.name) for c in categories]

    def report(
        self,
        report_filter: ReportFilter | str = ReportFilter.month,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> ReportOut:
        today = self._today()
        month = month or today.month
        year = year or today.year
        try:
            report = self.engine.compute_report(report_filter, month, year)
        except (ValueError, LedgerUnavailable) as exc:
            logger.error(f"report: {exc}")
            raise
        return report_out(report)

    def massive_report(self) -> MassiveReportOut:
        try:
            massive = self.engine.compute_massive_report(self._today())
        except (ValueError, LedgerUnavailable) as exc:
            logger.error(f"massive_report: {exc}")
            raise
        return MassiveReportOut(
            months=[
                MonthReportOut(label=m.label, **report_out(m.report).model_dump())
                for m in massive.months
            ]
        )
