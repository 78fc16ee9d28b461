"""Request and response bodies for the HTTP API.

Request fields are plain strings so that validation, and the error kind it
produces, stays in the core services. Responses are built by the explicit
``*_to_response`` projections below.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.circulation.core.services import AvailabilityMismatch, BorrowerStatistics
from src.circulation.entities.borrower import Borrower
from src.circulation.entities.catalog import Copy
from src.circulation.entities.ledger import LedgerEntry


class CopyCreate(BaseModel):
    isbn: str
    title: str
    author: str


class CopyUpdate(BaseModel):
    title: str | None = None
    author: str | None = None


class BorrowRequest(BaseModel):
    borrower_id: int


class BorrowByIsbnRequest(BaseModel):
    isbn: str
    borrower_id: int


class BorrowerCreate(BaseModel):
    name: str
    email: str


class BorrowerUpdate(BaseModel):
    name: str | None = None
    email: str | None = None


class CopyResponse(BaseModel):
    id: int
    isbn: str
    title: str
    author: str
    available: bool
    borrower_id: int | None
    created_at: datetime
    updated_at: datetime


class BorrowerResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


class LedgerEntryResponse(BaseModel):
    id: int
    copy_id: int
    borrower_id: int
    isbn: str
    action: str
    action_time: datetime
    due_date: datetime | None
    overdue: bool
    days_until_due: int


class RankingItem(BaseModel):
    key: int | str
    count: int = Field(description="Number of BORROWED entries")


class CountResponse(BaseModel):
    count: int


class IsbnCountResponse(BaseModel):
    isbn: str
    total: int
    available: int


class BorrowerStatisticsResponse(BaseModel):
    borrower_id: int
    total_borrowings: int
    current_loans: int
    has_overdue: bool


class InconsistencyResponse(BaseModel):
    copy_id: int
    stored_borrower_id: int | None
    ledger_borrower_id: int | None
    copy_exists: bool


def copy_to_response(copy: Copy) -> CopyResponse:
    assert copy.id is not None
    return CopyResponse(
        id=copy.id,
        isbn=copy.isbn,
        title=copy.title,
        author=copy.author,
        available=copy.is_available,
        borrower_id=copy.borrower_id,
        created_at=copy.created_at,
        updated_at=copy.updated_at,
    )


def borrower_to_response(borrower: Borrower) -> BorrowerResponse:
    assert borrower.id is not None
    return BorrowerResponse(
        id=borrower.id,
        name=borrower.name,
        email=borrower.email,
        created_at=borrower.created_at,
        updated_at=borrower.updated_at,
    )


def entry_to_response(entry: LedgerEntry, now: datetime) -> LedgerEntryResponse:
    assert entry.id is not None
    return LedgerEntryResponse(
        id=entry.id,
        copy_id=entry.copy_id,
        borrower_id=entry.borrower_id,
        isbn=entry.isbn,
        action=entry.action.value,
        action_time=entry.action_time,
        due_date=entry.due_date,
        overdue=entry.is_overdue(now),
        days_until_due=entry.days_until_due(now),
    )


def ranking_to_response(ranking: list[tuple[int | str, int]]) -> list[RankingItem]:
    return [RankingItem(key=key, count=count) for key, count in ranking]


def statistics_to_response(stats: BorrowerStatistics) -> BorrowerStatisticsResponse:
    return BorrowerStatisticsResponse(
        borrower_id=stats.borrower_id,
        total_borrowings=stats.total_borrowings,
        current_loans=stats.current_loans,
        has_overdue=stats.has_overdue,
    )


def mismatch_to_response(mismatch: AvailabilityMismatch) -> InconsistencyResponse:
    return InconsistencyResponse(
        copy_id=mismatch.copy_id,
        stored_borrower_id=mismatch.stored_borrower_id,
        ledger_borrower_id=mismatch.ledger_borrower_id,
        copy_exists=mismatch.copy_exists,
    )
