"""Lending history API router: ledger queries, overdue detection and rankings."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from src.circulation.api.http.app_data import ApplicationDependencies
from src.circulation.api.http.deps import get_app_dependencies, get_ledger_query_engine
from src.circulation.api.http.errors import unwrap
from src.circulation.api.http.schemas import (
    BorrowerStatisticsResponse,
    CountResponse,
    InconsistencyResponse,
    LedgerEntryResponse,
    RankingItem,
    entry_to_response,
    mismatch_to_response,
    ranking_to_response,
    statistics_to_response,
)
from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import fail
from src.circulation.core.services import LedgerQueryEngine
from src.circulation.entities.ledger import LedgerEntry

router = APIRouter(prefix="/api/history", tags=["history"])


def _project(entries: list[LedgerEntry], app_deps: ApplicationDependencies) -> list[LedgerEntryResponse]:
    now = app_deps.clock.now()
    return [entry_to_response(entry, now) for entry in entries]


@router.get("", response_model=list[LedgerEntryResponse])
def history_in_range(
    start: datetime,
    end: datetime,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[LedgerEntryResponse]:
    """Every ledger entry between start and end (inclusive), newest first."""
    return _project(unwrap(engine.history_for(start=start, end=end)), app_deps)


@router.get("/copies/{copy_id}", response_model=list[LedgerEntryResponse])
def copy_history(
    copy_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[LedgerEntryResponse]:
    return _project(unwrap(engine.history_for(copy_id=copy_id, start=start, end=end)), app_deps)


@router.get("/copies/{copy_id}/latest", response_model=LedgerEntryResponse)
def latest_for_copy(
    copy_id: int,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> LedgerEntryResponse:
    entry = engine.most_recent_for_copy(copy_id)
    if entry is None:
        unwrap(fail(ErrorKind.NOT_FOUND, f"No ledger entries for copy {copy_id}"))
    return _project([entry], app_deps)[0]


@router.get("/borrowers/{borrower_id}", response_model=list[LedgerEntryResponse])
def borrower_history(
    borrower_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[LedgerEntryResponse]:
    return _project(
        unwrap(engine.history_for(borrower_id=borrower_id, start=start, end=end)), app_deps
    )


@router.get("/borrowers/{borrower_id}/current", response_model=list[LedgerEntryResponse])
def current_loans(
    borrower_id: int,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[LedgerEntryResponse]:
    """Copies the ledger shows the borrower as still holding."""
    return _project(engine.currently_on_loan(borrower_id), app_deps)


@router.get("/borrowers/{borrower_id}/statistics", response_model=BorrowerStatisticsResponse)
def borrower_statistics(
    borrower_id: int,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
) -> BorrowerStatisticsResponse:
    return statistics_to_response(unwrap(engine.borrower_statistics(borrower_id)))


@router.get("/overdue", response_model=list[LedgerEntryResponse])
def overdue(
    borrower_id: int | None = None,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[LedgerEntryResponse]:
    return _project(engine.overdue(borrower_id), app_deps)


@router.get("/popular", response_model=list[RankingItem])
def popular(
    limit: int | None = None,
    by: str = Query(default="copy", description="'copy' or 'isbn'"),
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[RankingItem]:
    """Most borrowed copies or ISBNs."""
    if limit is None:
        limit = app_deps.lending.ranking_default_limit
    return ranking_to_response(unwrap(engine.popularity(limit, by=by)))


@router.get("/active", response_model=list[RankingItem])
def active(
    limit: int | None = None,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> list[RankingItem]:
    """Borrowers with the most borrowings."""
    if limit is None:
        limit = app_deps.lending.ranking_default_limit
    return ranking_to_response(unwrap(engine.activity(limit)))


@router.get("/totals", response_model=CountResponse)
def total_borrowings(
    copy_id: int | None = None,
    borrower_id: int | None = None,
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
) -> CountResponse:
    return CountResponse(
        count=unwrap(engine.total_borrowings(copy_id=copy_id, borrower_id=borrower_id))
    )


@router.get("/inconsistencies", response_model=list[InconsistencyResponse])
def inconsistencies(
    engine: LedgerQueryEngine = Depends(get_ledger_query_engine),
) -> list[InconsistencyResponse]:
    """Copies whose availability disagrees with the ledger; empty when consistent."""
    return [mismatch_to_response(mismatch) for mismatch in engine.find_inconsistencies()]
