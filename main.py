import logging
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal
from ledger import CategoryNotFound, ExpenseConflict, ExpenseNotFound, LedgerUnavailable
from models import ReportFilter
from query_cache import QueryCache
from scheduler import SchedulerManager
from schemas import (
    CategoryOut,
    ExpenseIn,
    ExpensesListOut,
    MassiveReportOut,
    ReportOut,
)
from services import FinancesService

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def _load_app_version() -> str:
    try:
        return version("finances-backend")
    except PackageNotFoundError:
        return "unknown"


APP_VERSION = _load_app_version()

app = FastAPI(title="Finances", version=APP_VERSION)
app.state.query_cache = QueryCache(default_ttl=settings.cache_ttl_secs)
scheduler_manager = SchedulerManager(app.state.query_cache)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


def get_finances(
    db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)
) -> FinancesService:
    return FinancesService(db, cache)


@app.on_event("startup")
def startup_event():
    logger.info(f"startup: version={APP_VERSION} cache_ttl={settings.cache_ttl_secs:g}s")
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CategoryNotFound, ExpenseNotFound)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ExpenseConflict):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, LedgerUnavailable):
        return HTTPException(status_code=503, detail="Ledger unavailable")
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/healthz")
def healthz():
    return {"status": "ok", "version": APP_VERSION}


@app.post("/api/expenses")
def record_expense(
    payload: ExpenseIn, finances: FinancesService = Depends(get_finances)
):
    try:
        finances.save_expense(payload.to_write())
    except (ValueError, LedgerUnavailable) as exc:
        raise http_error(exc) from exc
    return {}


@app.get("/api/expenses", response_model=ExpensesListOut)
def list_expenses(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1970, le=3000),
    category: Optional[str] = None,
    finances: FinancesService = Depends(get_finances),
):
    try:
        expenses, total = finances.list_expenses(category, month, year)
    except (ValueError, LedgerUnavailable) as exc:
        raise http_error(exc) from exc
    return ExpensesListOut(expenses=expenses, total=total)


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(finances: FinancesService = Depends(get_finances)):
    try:
        return finances.categories_list()
    except LedgerUnavailable as exc:
        raise http_error(exc) from exc


@app.get("/api/report", response_model=ReportOut)
def report(
    type: ReportFilter = ReportFilter.month,
    finances: FinancesService = Depends(get_finances),
):
    try:
        return finances.report(type)
    except (ValueError, LedgerUnavailable) as exc:
        raise http_error(exc) from exc


@app.get("/api/report/massive", response_model=MassiveReportOut)
def massive_report(finances: FinancesService = Depends(get_finances)):
    try:
        return finances.massive_report()
    except (ValueError, LedgerUnavailable) as exc:
        raise http_error(exc) from exc
