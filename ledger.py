from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Iterator, Optional, Union

from rapidfuzz.distance import Levenshtein
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from models import Category, Expense
from periods import Period, month_period


class CategoryNotFound(ValueError):
    pass


class ExpenseNotFound(ValueError):
    pass


class ExpenseConflict(ValueError):
    pass


class CategoryExists(ValueError):
    pass


class InvalidExpense(ValueError):
    pass


class LedgerUnavailable(RuntimeError):
    pass


@dataclass(frozen=True)
class ExpenseFields:
    description: str
    amount_cents: int
    date: date
    category: str


@dataclass(frozen=True)
class NewExpense:
    fields: ExpenseFields


@dataclass(frozen=True)
class ExpenseUpdate:
    id: int
    fields: ExpenseFields


ExpenseWrite = Union[NewExpense, ExpenseUpdate]


@dataclass(frozen=True)
class CategorySum:
    name: str
    color: Optional[str]
    amount_cents: int


@dataclass(frozen=True)
class DailyTotal:
    day: date
    amount_cents: int


class LedgerStore:
    """Expense and category persistence plus the raw aggregate queries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise LedgerUnavailable(f"{op}: {exc}") from exc

    def get_category(self, category_id: int) -> Category:
        with self._guard("ledger.get_category"):
            category = self.session.get(Category, category_id)
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found")
        return category

    def get_category_by_name(self, name: str) -> Category:
        with self._guard("ledger.get_category_by_name"):
            category = self.session.scalar(
                select(Category).where(Category.name == name)
            )
            if category:
                return category
            names = self.session.scalars(select(Category.name)).all()

        message = f"Category '{name}' not found"
        suggestion = _closest_name(name, names)
        if suggestion:
            message += f" (did you mean '{suggestion}'?)"
        raise CategoryNotFound(message)

    def list_categories(self) -> list[Category]:
        with self._guard("ledger.list_categories"):
            return list(
                self.session.scalars(select(Category).order_by(Category.name)).all()
            )

    def add_category(self, name: str, color: Optional[str] = None) -> Category:
        op = "ledger.add_category"
        with self._guard(op):
            category = Category(name=name.strip(), color=color)
            self.session.add(category)
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                raise CategoryExists(f"Category '{name.strip()}' already exists") from exc
            self.session.refresh(category)
            return category

    def insert_expense(self, expense: NewExpense) -> Expense:
        op = "ledger.insert_expense"
        category = self.get_category_by_name(expense.fields.category)
        with self._guard(op):
            row = Expense(
                date=expense.fields.date,
                description=expense.fields.description,
                amount_cents=expense.fields.amount_cents,
                category_id=category.id,
            )
            self.session.add(row)
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                raise _integrity_error(op, exc) from exc
            self.session.refresh(row)
            return row

    def update_expense(self, expense: ExpenseUpdate) -> Expense:
        op = "ledger.update_expense"
        with self._guard(op):
            row = self.session.get(Expense, expense.id)
        if not row:
            raise ExpenseNotFound(f"Expense {expense.id} not found")
        category = self.get_category_by_name(expense.fields.category)
        with self._guard(op):
            row.date = expense.fields.date
            row.description = expense.fields.description
            row.amount_cents = expense.fields.amount_cents
            row.category_id = category.id
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                raise _integrity_error(op, exc) from exc
            self.session.refresh(row)
            return row

    def list_expenses(
        self, category: Optional[str], month: int, year: int
    ) -> tuple[list[Expense], int]:
        period = month_period(month, year)
        stmt = (
            select(Expense)
            .join(Expense.category)
            .options(contains_eager(Expense.category))
            .where(Expense.date.between(period.start, period.end))
            .order_by(Expense.date.desc(), Expense.id.desc())
        )
        if category:
            stmt = stmt.where(Category.name == category)

        with self._guard("ledger.list_expenses"):
            rows = list(self.session.scalars(stmt).all())

        total = 0
        for row in rows:
            total += row.amount_cents
        return rows, total

    def category_sums(self, period: Period) -> list[CategorySum]:
        total = func.sum(Expense.amount_cents).label("total")
        stmt = (
            select(Category.name, Category.color, total)
            .select_from(Expense)
            .join(Category, Category.id == Expense.category_id)
            .where(Expense.date.between(period.start, period.end))
            .group_by(Category.id, Category.name, Category.color)
        )
        with self._guard("ledger.category_sums"):
            rows = self.session.execute(stmt).all()
        return [
            CategorySum(name=row.name, color=row.color, amount_cents=int(row.total or 0))
            for row in rows
        ]

    def period_total(self, period: Period) -> int:
        stmt = select(func.coalesce(func.sum(Expense.amount_cents), 0)).where(
            Expense.date.between(period.start, period.end)
        )
        with self._guard("ledger.period_total"):
            return int(self.session.execute(stmt).scalar_one() or 0)

    def daily_totals(self, period: Period) -> list[DailyTotal]:
        stmt = (
            select(Expense.date.label("day"), func.sum(Expense.amount_cents).label("total"))
            .where(Expense.date.between(period.start, period.end))
            .group_by(Expense.date)
            .order_by(Expense.date)
        )
        with self._guard("ledger.daily_totals"):
            rows = self.session.execute(stmt).all()
        return [DailyTotal(day=row.day, amount_cents=int(row.total or 0)) for row in rows]


def _closest_name(name: str, candidates: list[str]) -> Optional[str]:
    needle = name.strip().lower()
    best: Optional[str] = None
    best_distance: Optional[int] = None
    for candidate in candidates:
        dist = int(Levenshtein.distance(needle, candidate.strip().lower()))
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best = candidate
    if best_distance is not None and best_distance <= 2:
        return best
    return None


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    # sqlite3 exposes the extended code name from Python 3.11
    error_name = getattr(orig, "sqlite_errorname", "") or ""
    if error_name in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"):
        return True
    return "UNIQUE constraint failed" in str(orig)


def _integrity_error(op: str, exc: IntegrityError) -> ValueError:
    if is_unique_violation(exc):
        return ExpenseConflict(f"{op}: expense already exists")
    return InvalidExpense(f"{op}: {exc.orig}")
