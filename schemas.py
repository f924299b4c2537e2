from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger import ExpenseFields, ExpenseUpdate, ExpenseWrite, NewExpense


class ExpenseIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = Field(default="", max_length=500)
    amount_cents: int
    date: date
    category: str = Field(..., min_length=1, max_length=100)
    id: int = Field(default=0, ge=0)

    def to_write(self) -> ExpenseWrite:
        fields = ExpenseFields(
            description=self.description,
            amount_cents=self.amount_cents,
            date=self.date,
            category=self.category,
        )
        if self.id == 0:
            return NewExpense(fields=fields)
        return ExpenseUpdate(id=self.id, fields=fields)


class ExpenseOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    amount_cents: int
    date: date
    category: str
    color: Optional[str] = None


class ExpensesListOut(BaseModel):
    expenses: list[ExpenseOut]
    total: int


class CategoryOut(BaseModel):
    name: str


class CategoryReportOut(BaseModel):
    name: str
    color: Optional[str] = None
    amount: int
    percent: float


class ReportOut(BaseModel):
    total: int
    categories: list[CategoryReportOut]
    mean: int
    median: int


class MonthReportOut(ReportOut):
    label: str


class MassiveReportOut(BaseModel):
    months: list[MonthReportOut]
