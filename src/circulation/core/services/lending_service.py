"""Lending state machine: the only writer of copy availability and ledger entries."""

from datetime import timedelta

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Err, Ok, Result, fail
from src.circulation.core.services.clock import MonotonicClock
from src.circulation.core.services.locks import KeyedLocks
from src.circulation.core.services.unit_of_work import TransactionalService
from src.circulation.core.storage.stores import BorrowerStore, CatalogStore, Ledger
from src.circulation.core.validation import normalize_isbn
from src.circulation.entities.borrower import BorrowerRepository
from src.circulation.entities.catalog import Copy, CopyRepository
from src.circulation.entities.ledger import LedgerAction, LedgerEntry, LedgerRepository

DEFAULT_LOAN_PERIOD = timedelta(days=14)


class LendingStateMachine(TransactionalService):
    """Moves copies between AVAILABLE and ON_LOAN.

    Each transition changes the copy's borrower reference and appends exactly
    one ledger entry in the same transaction. The check-and-mutate step runs
    under a per-copy lock from ``copy_locks`` and the write itself is a
    compare-and-set, so two borrowers can never both win the same copy.
    """

    def __init__(
        self,
        db_session: Session,
        copy_locks: KeyedLocks | None = None,
        clock: MonotonicClock | None = None,
        loan_period: timedelta = DEFAULT_LOAN_PERIOD,
        catalog: CatalogStore | None = None,
        borrowers: BorrowerStore | None = None,
        ledger: Ledger | None = None,
    ):
        super().__init__(db_session)
        self._catalog = catalog or CopyRepository(db_session)
        self._borrowers = borrowers or BorrowerRepository(db_session)
        self._ledger = ledger or LedgerRepository(db_session)
        self._copy_locks = copy_locks if copy_locks is not None else KeyedLocks("copy")
        self._clock = clock or MonotonicClock()
        self._loan_period = loan_period

    def _borrower_missing(self, operation: str, borrower_id: int) -> Err | None:
        if self._borrowers.get(borrower_id) is None:
            return self._reject(
                operation,
                fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}"),
            )
        return None

    def _borrow_locked(self, operation: str, copy_id: int, borrower_id: int) -> Result[Copy]:
        """Borrow a copy; the caller holds the copy's lock."""
        with self._transaction(operation):
            missing = self._borrower_missing(operation, borrower_id)
            if missing is not None:
                return missing
            copy = self._catalog.get(copy_id)
            if copy is None:
                return self._reject(operation, fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}"))
            if not copy.is_available:
                return self._reject(
                    operation,
                    fail(ErrorKind.NOT_AVAILABLE, f"Copy {copy_id} is not available for borrowing"),
                )

            now = self._clock.now()
            try:
                claimed = self._catalog.compare_and_set_borrower(copy_id, None, borrower_id, now)
            except IntegrityError:
                # The borrower row went away after the check above
                return self._reject(
                    operation,
                    fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}"),
                )
            if not claimed:
                return self._reject(
                    operation,
                    fail(ErrorKind.NOT_AVAILABLE, f"Copy {copy_id} was borrowed concurrently"),
                )
            self._ledger.append(
                LedgerEntry(
                    copy_id=copy_id,
                    borrower_id=borrower_id,
                    isbn=copy.isbn,
                    action=LedgerAction.BORROWED,
                    action_time=now,
                    due_date=now + self._loan_period,
                    created_at=now,
                )
            )
            self._commit()

        logger.info("Copy {} borrowed by {}", copy_id, borrower_id)
        return Ok(copy.model_copy(update={"borrower_id": borrower_id, "updated_at": now}))

    def borrow_by_copy(self, copy_id: int, borrower_id: int) -> Result[Copy]:
        """Lend a specific copy to a borrower."""
        with self._copy_locks.hold(copy_id):
            return self._borrow_locked("borrow_by_copy", copy_id, borrower_id)

    def borrow_by_isbn(self, isbn: str, borrower_id: int) -> Result[Copy]:
        """Lend the lowest-id available copy of an ISBN.

        A candidate taken by a concurrent borrower is skipped in favour of the
        next one, at most once per copy of the ISBN.
        """
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        normalized = checked.value

        with self._transaction("borrow_by_isbn"):
            missing = self._borrower_missing("borrow_by_isbn", borrower_id)
            if missing is not None:
                return missing
            attempts = self._catalog.count_by_isbn(normalized)

        no_copy = fail(
            ErrorKind.NO_AVAILABLE_COPY, f"No available copies found with ISBN: {normalized}"
        )
        for _ in range(attempts):
            with self._transaction("borrow_by_isbn"):
                candidate = self._catalog.first_available_by_isbn(normalized)
            if candidate is None or candidate.id is None:
                break

            with self._copy_locks.hold(candidate.id):
                result = self._borrow_locked("borrow_by_isbn", candidate.id, borrower_id)
            if isinstance(result, Ok):
                return result
            if result.kind not in (ErrorKind.NOT_AVAILABLE, ErrorKind.NOT_FOUND):
                return result
            if result.kind is ErrorKind.NOT_FOUND and self._borrowers.get(borrower_id) is None:
                # The borrower, not the candidate copy, disappeared
                return result
            logger.debug("Copy {} of ISBN {} lost to a concurrent borrow; retrying", candidate.id, normalized)

        return self._reject("borrow_by_isbn", no_copy)

    def return_copy(self, copy_id: int) -> Result[Copy]:
        """Take a copy back from whoever holds it."""
        with self._copy_locks.hold(copy_id), self._transaction("return_copy"):
            copy = self._catalog.get(copy_id)
            if copy is None:
                return self._reject("return_copy", fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}"))
            borrower_id = copy.borrower_id
            if borrower_id is None:
                return self._reject(
                    "return_copy",
                    fail(ErrorKind.NOT_ON_LOAN, f"Copy {copy_id} is not currently borrowed"),
                )

            now = self._clock.now()
            if not self._catalog.compare_and_set_borrower(copy_id, borrower_id, None, now):
                return self._reject(
                    "return_copy",
                    fail(ErrorKind.NOT_ON_LOAN, f"Copy {copy_id} was returned concurrently"),
                )
            self._ledger.append(
                LedgerEntry(
                    copy_id=copy_id,
                    borrower_id=borrower_id,
                    isbn=copy.isbn,
                    action=LedgerAction.RETURNED,
                    action_time=now,
                    created_at=now,
                )
            )
            self._commit()

        logger.info("Copy {} returned by {}", copy_id, borrower_id)
        return Ok(copy.model_copy(update={"borrower_id": None, "updated_at": now}))
