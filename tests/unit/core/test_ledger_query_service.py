"""Unit tests for LedgerQueryEngine."""

from datetime import timedelta

import pytest

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok
from src.circulation.core.services import AvailabilityMismatch, BorrowerStatistics
from src.circulation.entities.catalog import CopyRepository
from src.circulation.entities.ledger import LedgerAction, LedgerEntry, LedgerRepository
from tests.fixtures.core import START_TIME
from tests.fixtures.services import CLEAN_CODE, EFFECTIVE_JAVA


class TestCurrentAndOverdue:
    def test_current_loans_follow_borrow_and_return(self, lending, queries, java_copy, alice):
        assert queries.currently_on_loan(alice.id) == []

        lending.borrow_by_copy(java_copy.id, alice.id)
        [entry] = queries.currently_on_loan(alice.id)
        assert entry.copy_id == java_copy.id
        assert queries.current_loan_count(alice.id) == 1

        lending.return_copy(java_copy.id)
        assert queries.currently_on_loan(alice.id) == []

    def test_overdue_after_due_date(self, lending, queries, fake_time, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        [entry] = queries.currently_on_loan(alice.id)

        fake_time.advance(days=13)
        assert queries.overdue(alice.id) == []
        assert not queries.is_overdue(entry)
        assert queries.days_until_due(entry) == 1

        fake_time.advance(days=2)
        assert [e.id for e in queries.overdue(alice.id)] == [entry.id]
        assert [e.id for e in queries.overdue()] == [entry.id]
        assert queries.is_overdue(entry)
        assert queries.days_until_due(entry) == 0
        assert queries.has_overdue(alice.id)

        fake_time.advance(days=1)
        assert queries.days_until_due(entry) == -1

    def test_return_clears_overdue(self, lending, queries, fake_time, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        fake_time.advance(days=20)

        lending.return_copy(java_copy.id)

        assert queries.overdue(alice.id) == []
        assert not queries.has_overdue(alice.id)

    def test_reborrow_by_same_borrower_is_the_only_open_loan(self, lending, queries, fake_time, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        fake_time.advance(days=1)
        lending.return_copy(java_copy.id)
        fake_time.advance(days=1)
        lending.borrow_by_copy(java_copy.id, alice.id)
        second = queries.most_recent_for_copy(java_copy.id)
        assert second.action is LedgerAction.BORROWED

        assert [e.id for e in queries.currently_on_loan(alice.id)] == [second.id]
        assert queries.current_loan_count(alice.id) == 1

        fake_time.advance(days=15)
        assert [e.id for e in queries.overdue(alice.id)] == [second.id]
        assert [e.id for e in queries.overdue()] == [second.id]


class TestHistory:
    @pytest.fixture
    def history(self, lending, fake_time, java_copy, alice, bob):
        lending.borrow_by_copy(java_copy.id, alice.id)
        fake_time.advance(days=1)
        lending.return_copy(java_copy.id)
        fake_time.advance(days=1)
        lending.borrow_by_copy(java_copy.id, bob.id)
        return java_copy

    def test_copy_history_newest_first(self, queries, history, alice, bob):
        entries = queries.history_for(copy_id=history.id).value

        assert [(e.action, e.borrower_id) for e in entries] == [
            (LedgerAction.BORROWED, bob.id),
            (LedgerAction.RETURNED, alice.id),
            (LedgerAction.BORROWED, alice.id),
        ]

    def test_borrower_history_with_range(self, queries, history, alice):
        start = START_TIME + timedelta(hours=12)
        end = START_TIME + timedelta(days=1, hours=12)

        entries = queries.history_for(borrower_id=alice.id, start=start, end=end).value

        assert [e.action for e in entries] == [LedgerAction.RETURNED]

    def test_copy_and_borrower_together(self, queries, history, bob):
        entries = queries.history_for(copy_id=history.id, borrower_id=bob.id).value

        assert [e.borrower_id for e in entries] == [bob.id]

    def test_global_range(self, queries, history):
        entries = queries.history_for(start=START_TIME, end=START_TIME + timedelta(days=3)).value

        assert len(entries) == 3

    def test_naive_range_is_read_as_utc(self, queries, history):
        start = START_TIME.replace(tzinfo=None)
        end = (START_TIME + timedelta(days=3)).replace(tzinfo=None)

        assert len(queries.history_for(start=start, end=end).value) == 3

    def test_invalid_ranges(self, queries, history):
        later = START_TIME + timedelta(days=1)

        assert queries.history_for(copy_id=history.id, start=START_TIME).kind is ErrorKind.INVALID_ARGUMENT
        assert (
            queries.history_for(copy_id=history.id, start=later, end=START_TIME).kind
            is ErrorKind.INVALID_ARGUMENT
        )
        assert queries.history_for().kind is ErrorKind.INVALID_ARGUMENT

    def test_most_recent_for_copy(self, queries, history, bob):
        latest = queries.most_recent_for_copy(history.id)

        assert latest.action is LedgerAction.BORROWED
        assert latest.borrower_id == bob.id
        assert queries.most_recent_for_copy(999) is None


class TestRankings:
    def test_popularity_and_activity(self, lending, catalog, registry, queries, java_copy, alice, bob):
        clean = catalog.add_copy(*CLEAN_CODE).value
        carol = registry.register("Carol King", "carol@example.com").value
        for borrower in (alice, bob, carol):
            lending.borrow_by_copy(java_copy.id, borrower.id)
            lending.return_copy(java_copy.id)
        lending.borrow_by_copy(clean.id, alice.id)

        assert queries.popularity(2) == Ok([(java_copy.id, 3), (clean.id, 1)])
        assert queries.popularity(1, by="isbn") == Ok([("9780134685991", 3)])
        assert queries.activity(3) == Ok([(alice.id, 2), (bob.id, 1), (carol.id, 1)])
        assert queries.total_borrowings(copy_id=java_copy.id) == Ok(3)
        assert queries.total_borrowings(borrower_id=alice.id) == Ok(2)

    def test_isbn_popularity_survives_copy_removal(self, lending, catalog, queries, java_copy, alice):
        spare = catalog.add_copy(*EFFECTIVE_JAVA).value
        lending.borrow_by_copy(spare.id, alice.id)
        lending.return_copy(spare.id)
        catalog.remove_copy(spare.id)

        assert queries.popularity(5, by="isbn") == Ok([("9780134685991", 1)])

    def test_invalid_arguments(self, queries):
        assert queries.popularity(0).kind is ErrorKind.INVALID_ARGUMENT
        assert queries.popularity(5, by="author").kind is ErrorKind.INVALID_ARGUMENT
        assert queries.activity(-1).kind is ErrorKind.INVALID_ARGUMENT
        assert queries.total_borrowings().kind is ErrorKind.INVALID_ARGUMENT
        assert queries.total_borrowings(copy_id=1, borrower_id=1).kind is ErrorKind.INVALID_ARGUMENT


class TestStatisticsAndConsistency:
    def test_borrower_statistics(self, lending, queries, fake_time, catalog, java_copy, alice):
        clean = catalog.add_copy(*CLEAN_CODE).value
        lending.borrow_by_copy(java_copy.id, alice.id)
        lending.return_copy(java_copy.id)
        lending.borrow_by_copy(clean.id, alice.id)
        fake_time.advance(days=15)

        assert queries.borrower_statistics(alice.id) == Ok(
            BorrowerStatistics(
                borrower_id=alice.id, total_borrowings=2, current_loans=1, has_overdue=True
            )
        )
        assert queries.borrower_statistics(999).kind is ErrorKind.NOT_FOUND

    def test_consistent_after_normal_operation(self, lending, queries, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)

        assert queries.find_inconsistencies() == []

    def test_detects_flag_drift(self, session, queries, clock, java_copy, alice):
        # Flip the flag behind the state machine's back
        CopyRepository(session).compare_and_set_borrower(java_copy.id, None, alice.id, clock.now())
        LedgerRepository(session).append(
            LedgerEntry(
                copy_id=404,
                borrower_id=alice.id,
                isbn="9780134685991",
                action=LedgerAction.BORROWED,
                action_time=clock.now(),
            )
        )
        session.commit()

        assert queries.find_inconsistencies() == [
            AvailabilityMismatch(
                copy_id=java_copy.id, stored_borrower_id=alice.id, ledger_borrower_id=None
            ),
            AvailabilityMismatch(
                copy_id=404, stored_borrower_id=None, ledger_borrower_id=alice.id, copy_exists=False
            ),
        ]
