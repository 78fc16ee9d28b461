"""Unit tests for the lending state machine."""

from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from datetime import timedelta

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok
from src.circulation.core.services import KeyedLocks, LendingStateMachine
from src.circulation.entities.borrower import Borrower, BorrowerRepository
from src.circulation.entities.catalog import CopyRepository
from src.circulation.entities.ledger import LedgerAction, LedgerRepository
from tests.fixtures.core import START_TIME
from tests.fixtures.services import EFFECTIVE_JAVA

JAVA_ISBN = "9780134685991"


class TestBorrowByCopy:
    def test_borrow_marks_copy_and_appends_entry(self, lending, catalog, session, java_copy, alice):
        result = lending.borrow_by_copy(java_copy.id, alice.id)

        assert isinstance(result, Ok)
        assert result.value.borrower_id == alice.id
        assert catalog.get_copy(java_copy.id).value.borrower_id == alice.id

        [entry] = LedgerRepository(session).query_by_copy(java_copy.id)
        assert entry.action is LedgerAction.BORROWED
        assert entry.borrower_id == alice.id
        assert entry.isbn == JAVA_ISBN
        assert START_TIME <= entry.action_time < START_TIME + timedelta(seconds=1)
        assert entry.due_date == entry.action_time + timedelta(days=14)

    def test_copy_on_loan_is_not_available(self, lending, session, java_copy, alice, bob):
        lending.borrow_by_copy(java_copy.id, alice.id)

        assert lending.borrow_by_copy(java_copy.id, bob.id).kind is ErrorKind.NOT_AVAILABLE
        assert lending.borrow_by_copy(java_copy.id, alice.id).kind is ErrorKind.NOT_AVAILABLE
        assert LedgerRepository(session).count() == 1

    def test_unknown_borrower_or_copy(self, lending, session, java_copy, alice):
        assert lending.borrow_by_copy(java_copy.id, 999).kind is ErrorKind.NOT_FOUND
        assert lending.borrow_by_copy(999, alice.id).kind is ErrorKind.NOT_FOUND
        assert LedgerRepository(session).count() == 0

    def test_loan_period_is_configurable(self, session, copy_locks, clock, java_copy, alice):
        lending = LendingStateMachine(
            session, copy_locks=copy_locks, clock=clock, loan_period=timedelta(days=7)
        )

        lending.borrow_by_copy(java_copy.id, alice.id)

        [entry] = LedgerRepository(session).query_by_copy(java_copy.id)
        assert entry.due_date - entry.action_time == timedelta(days=7)


class TestBorrowByIsbn:
    def test_lowest_available_copy_is_chosen(self, lending, catalog, java_copy, alice, bob):
        second = catalog.add_copy(*EFFECTIVE_JAVA).value

        assert lending.borrow_by_isbn("978-0-13-468599-1", alice.id).value.id == java_copy.id
        assert lending.borrow_by_isbn(JAVA_ISBN, bob.id).value.id == second.id

    def test_no_available_copy(self, lending, java_copy, alice, bob):
        lending.borrow_by_isbn(JAVA_ISBN, alice.id)

        assert lending.borrow_by_isbn(JAVA_ISBN, bob.id).kind is ErrorKind.NO_AVAILABLE_COPY
        assert lending.borrow_by_isbn("9780132350884", bob.id).kind is ErrorKind.NO_AVAILABLE_COPY

    def test_validation_and_borrower_checks(self, lending, java_copy):
        assert lending.borrow_by_isbn("bogus", 1).kind is ErrorKind.INVALID_ARGUMENT
        assert lending.borrow_by_isbn(JAVA_ISBN, 999).kind is ErrorKind.NOT_FOUND


class TestReturnCopy:
    def test_return_frees_copy_and_appends_entry(self, lending, catalog, session, fake_time, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        fake_time.advance(days=3)

        result = lending.return_copy(java_copy.id)

        assert isinstance(result, Ok)
        assert result.value.is_available
        assert catalog.get_copy(java_copy.id).value.is_available
        returned, borrowed = LedgerRepository(session).query_by_copy(java_copy.id)
        assert borrowed.action is LedgerAction.BORROWED
        assert returned.action is LedgerAction.RETURNED
        assert returned.borrower_id == alice.id
        assert returned.due_date is None
        assert returned.action_time == START_TIME + timedelta(days=3)

    def test_return_of_available_copy(self, lending, java_copy):
        assert lending.return_copy(java_copy.id).kind is ErrorKind.NOT_ON_LOAN

    def test_return_of_unknown_copy(self, lending):
        assert lending.return_copy(999).kind is ErrorKind.NOT_FOUND

    def test_immediate_return_gets_distinct_timestamp(self, lending, session, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        lending.return_copy(java_copy.id)

        returned, borrowed = LedgerRepository(session).query_by_copy(java_copy.id)
        assert returned.action_time > borrowed.action_time
        assert LedgerRepository(session).current_loans(alice.id) == []


class DeletingLocks(KeyedLocks):
    """Copy locks that remove the borrower just before the lock is taken."""

    def __init__(self, registry, borrower_id: int) -> None:
        super().__init__("copy")
        self._registry = registry
        self._borrower_id = borrower_id

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        self._registry.delete(self._borrower_id)
        with super().hold(key):
            yield


class StaleBorrowers(BorrowerRepository):
    """Borrower store that keeps answering with a borrower read earlier."""

    def __init__(self, session, borrower: Borrower) -> None:
        super().__init__(session)
        self._borrower = borrower

    def get(self, borrower_id: int) -> Borrower | None:
        return self._borrower


class TestBorrowerRemovedDuringBorrow:
    def test_borrow_by_copy_rechecks_borrower_under_lock(self, session, registry, clock, java_copy, alice):
        lending = LendingStateMachine(session, copy_locks=DeletingLocks(registry, alice.id), clock=clock)

        result = lending.borrow_by_copy(java_copy.id, alice.id)

        assert result.kind is ErrorKind.NOT_FOUND
        assert CopyRepository(session).get(java_copy.id).is_available
        assert LedgerRepository(session).count() == 0

    def test_borrow_by_isbn_reports_missing_borrower(self, session, registry, clock, java_copy, alice):
        lending = LendingStateMachine(session, copy_locks=DeletingLocks(registry, alice.id), clock=clock)

        result = lending.borrow_by_isbn(JAVA_ISBN, alice.id)

        assert result.kind is ErrorKind.NOT_FOUND
        assert "Borrower" in result.message
        assert CopyRepository(session).get(java_copy.id).is_available
        assert LedgerRepository(session).count() == 0

    def test_foreign_key_refuses_loan_to_deleted_borrower(self, session, registry, copy_locks, clock, java_copy, alice):
        lending = LendingStateMachine(
            session,
            borrowers=StaleBorrowers(session, alice),
            copy_locks=copy_locks,
            clock=clock,
        )
        assert isinstance(registry.delete(alice.id), Ok)

        result = lending.borrow_by_copy(java_copy.id, alice.id)

        assert result.kind is ErrorKind.NOT_FOUND
        assert CopyRepository(session).get(java_copy.id).is_available
        assert LedgerRepository(session).count() == 0
