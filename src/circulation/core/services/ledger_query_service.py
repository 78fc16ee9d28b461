"""Read-only temporal queries derived from the lending ledger."""

from dataclasses import dataclass
from datetime import datetime

from sqlmodel import Session

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok, Result, fail
from src.circulation.core.services.clock import MonotonicClock
from src.circulation.core.storage.stores import BorrowerStore, CatalogStore, Ledger
from src.circulation.entities._base import as_utc
from src.circulation.entities.borrower import BorrowerRepository
from src.circulation.entities.catalog import CopyRepository
from src.circulation.entities.ledger import LedgerEntry, LedgerRepository

POPULARITY_KEYS = ("copy", "isbn")


@dataclass(frozen=True)
class BorrowerStatistics:
    borrower_id: int
    total_borrowings: int
    current_loans: int
    has_overdue: bool


@dataclass(frozen=True)
class AvailabilityMismatch:
    """A copy whose stored borrower disagrees with the ledger's account of it."""

    copy_id: int
    stored_borrower_id: int | None
    ledger_borrower_id: int | None
    copy_exists: bool = True


class LedgerQueryEngine:
    """Answers "who has what", "what is overdue" and ranking questions.

    Everything is computed from ledger entries; nothing here writes or locks.
    """

    def __init__(
        self,
        db_session: Session,
        clock: MonotonicClock | None = None,
        ledger: Ledger | None = None,
        catalog: CatalogStore | None = None,
        borrowers: BorrowerStore | None = None,
    ):
        self._ledger = ledger or LedgerRepository(db_session)
        self._catalog = catalog or CopyRepository(db_session)
        self._borrowers = borrowers or BorrowerRepository(db_session)
        self._clock = clock or MonotonicClock()

    def currently_on_loan(self, borrower_id: int) -> list[LedgerEntry]:
        return self._ledger.current_loans(borrower_id)

    def overdue(self, borrower_id: int | None = None) -> list[LedgerEntry]:
        """Current loans past their due date; all borrowers when borrower_id is None."""
        now = self._clock.now()
        return [entry for entry in self._ledger.current_loans(borrower_id) if entry.is_overdue(now)]

    def is_overdue(self, entry: LedgerEntry) -> bool:
        return entry.is_overdue(self._clock.now())

    def days_until_due(self, entry: LedgerEntry) -> int:
        return entry.days_until_due(self._clock.now())

    def history_for(
        self,
        copy_id: int | None = None,
        borrower_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Result[list[LedgerEntry]]:
        """Ledger entries newest first, ties broken by entry id descending.

        ``start`` and ``end`` go together and are inclusive. Without a copy or
        borrower the range is mandatory and selects every entry inside it.
        With both ids, entries must match both.
        """
        if (start is None) != (end is None):
            return fail(ErrorKind.INVALID_ARGUMENT, "Start and end dates must be given together")
        if start is not None and end is not None:
            start, end = as_utc(start), as_utc(end)
            if start > end:
                return fail(ErrorKind.INVALID_ARGUMENT, "Start date cannot be after end date")

        if copy_id is not None:
            entries = self._ledger.query_by_copy(copy_id, start, end)
            if borrower_id is not None:
                entries = [entry for entry in entries if entry.borrower_id == borrower_id]
            return Ok(entries)
        if borrower_id is not None:
            return Ok(self._ledger.query_by_borrower(borrower_id, start, end))
        if start is None or end is None:
            return fail(
                ErrorKind.INVALID_ARGUMENT,
                "A copy, a borrower or a date range is required",
            )
        return Ok(self._ledger.query_by_date_range(start, end))

    def popularity(self, limit: int, by: str = "copy") -> Result[list[tuple[int | str, int]]]:
        """Most borrowed copies (or ISBNs), count descending then key ascending."""
        if limit <= 0:
            return fail(ErrorKind.INVALID_ARGUMENT, "Limit must be positive")
        if by not in POPULARITY_KEYS:
            return fail(
                ErrorKind.INVALID_ARGUMENT,
                f"Popularity can be ranked by {' or '.join(POPULARITY_KEYS)}, not {by!r}",
            )
        return Ok(self._ledger.borrow_counts(by, limit))

    def activity(self, limit: int) -> Result[list[tuple[int, int]]]:
        """Most active borrowers, count descending then borrower id ascending."""
        if limit <= 0:
            return fail(ErrorKind.INVALID_ARGUMENT, "Limit must be positive")
        return Ok(self._ledger.borrow_counts("borrower", limit))

    def total_borrowings(
        self, copy_id: int | None = None, borrower_id: int | None = None
    ) -> Result[int]:
        if (copy_id is None) == (borrower_id is None):
            return fail(
                ErrorKind.INVALID_ARGUMENT,
                "Exactly one of copy_id or borrower_id is required",
            )
        return Ok(self._ledger.count_borrowings(copy_id=copy_id, borrower_id=borrower_id))

    def most_recent_for_copy(self, copy_id: int) -> LedgerEntry | None:
        return self._ledger.most_recent_for_copy(copy_id)

    def has_overdue(self, borrower_id: int) -> bool:
        return bool(self.overdue(borrower_id))

    def current_loan_count(self, borrower_id: int) -> int:
        return len(self._ledger.current_loans(borrower_id))

    def borrower_statistics(self, borrower_id: int) -> Result[BorrowerStatistics]:
        if self._borrowers.get(borrower_id) is None:
            return fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}")
        return Ok(
            BorrowerStatistics(
                borrower_id=borrower_id,
                total_borrowings=self._ledger.count_borrowings(borrower_id=borrower_id),
                current_loans=self.current_loan_count(borrower_id),
                has_overdue=self.has_overdue(borrower_id),
            )
        )

    def find_inconsistencies(self) -> list[AvailabilityMismatch]:
        """Compare every copy's borrower reference with the ledger reconstruction.

        An empty list means availability flags and ledger agree.
        """
        loans: dict[int, list[int]] = {}
        for entry in self._ledger.current_loans():
            loans.setdefault(entry.copy_id, []).append(entry.borrower_id)

        mismatches = []
        for copy in self._catalog.list_all():
            if copy.id is None:
                continue
            holders = loans.pop(copy.id, [])
            # Entries come newest first, so holders[0] is the latest borrower
            ledger_borrower = holders[0] if holders else None
            if len(holders) > 1 or ledger_borrower != copy.borrower_id:
                mismatches.append(
                    AvailabilityMismatch(
                        copy_id=copy.id,
                        stored_borrower_id=copy.borrower_id,
                        ledger_borrower_id=ledger_borrower,
                    )
                )
        for copy_id, holders in sorted(loans.items()):
            mismatches.append(
                AvailabilityMismatch(
                    copy_id=copy_id,
                    stored_borrower_id=None,
                    ledger_borrower_id=holders[0],
                    copy_exists=False,
                )
            )
        return mismatches
