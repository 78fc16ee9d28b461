"""End-to-end lending scenarios and the properties they must preserve."""

from datetime import timedelta

import pytest

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok
from src.circulation.core.services import LendingStateMachine
from src.circulation.entities.ledger import LedgerAction, LedgerRepository

pytestmark = pytest.mark.integration

K_AND_R = ("9780131103627", "Effective Java", "Joshua Bloch")


def assert_flags_match_ledger(catalog, queries):
    """Every copy's borrower reference agrees with the ledger's current loans."""
    assert queries.find_inconsistencies() == []
    for copy in catalog.list_copies():
        if copy.borrower_id is None:
            continue
        current = queries.currently_on_loan(copy.borrower_id)
        assert copy.id in {entry.copy_id for entry in current}


class TestScenarios:
    def test_same_isbn_twice_gives_two_available_copies(self, catalog):
        first = catalog.add_copy(*K_AND_R).value
        second = catalog.add_copy(*K_AND_R).value

        assert first.id != second.id
        assert first.is_available and second.is_available

    def test_borrowed_copy_cannot_be_borrowed_again(self, catalog, registry, lending):
        copy = catalog.add_copy(*K_AND_R).value
        john = registry.register("John Doe", "john@x.com").value
        jane = registry.register("Jane Doe", "jane@x.com").value

        borrowed = lending.borrow_by_copy(copy.id, john.id).value
        assert not borrowed.is_available
        assert borrowed.borrower_id == john.id

        assert lending.borrow_by_copy(copy.id, john.id).kind is ErrorKind.NOT_AVAILABLE
        assert lending.borrow_by_copy(copy.id, jane.id).kind is ErrorKind.NOT_AVAILABLE

    def test_return_appends_second_entry(self, catalog, registry, lending, queries):
        copy = catalog.add_copy(*K_AND_R).value
        borrower = registry.register("John Doe", "john@x.com").value
        lending.borrow_by_copy(copy.id, borrower.id)

        returned = lending.return_copy(copy.id).value

        assert returned.is_available
        assert returned.borrower_id is None
        entries = queries.history_for(copy_id=copy.id).value
        # Newest first
        assert [entry.action for entry in reversed(entries)] == [
            LedgerAction.BORROWED,
            LedgerAction.RETURNED,
        ]

    def test_conflicting_title_leaves_first_copy_alone(self, catalog):
        first = catalog.add_copy(K_AND_R[0], "A", "B").value

        rejected = catalog.add_copy(K_AND_R[0], "A2", "B")

        assert rejected.kind is ErrorKind.CONFLICTING_METADATA
        assert catalog.find_by_isbn(K_AND_R[0]) == Ok([first])

    def test_backdated_due_date_is_overdue_until_returned(
        self, session, catalog, registry, queries, copy_locks, clock
    ):
        backdated = LendingStateMachine(
            session, copy_locks=copy_locks, clock=clock, loan_period=timedelta(days=-1)
        )
        copy = catalog.add_copy(*K_AND_R).value
        borrower = registry.register("John Doe", "john@x.com").value
        backdated.borrow_by_copy(copy.id, borrower.id)

        [entry] = queries.overdue(borrower.id)
        assert entry.copy_id == copy.id

        backdated.return_copy(copy.id)
        assert queries.overdue(borrower.id) == []
        assert queries.currently_on_loan(borrower.id) == []

    def test_popularity_counts_every_borrow(self, catalog, registry, lending, queries):
        copy_a = catalog.add_copy(*K_AND_R).value
        copy_b = catalog.add_copy("9780132350884", "Clean Code", "Robert C. Martin").value
        borrowers = [
            registry.register(name, f"{name.split()[0].lower()}@x.com").value
            for name in ("Ann Lee", "Ben Lee", "Cat Lee", "Dan Lee")
        ]
        for borrower in borrowers[:3]:
            lending.borrow_by_copy(copy_a.id, borrower.id)
            lending.return_copy(copy_a.id)
        lending.borrow_by_copy(copy_b.id, borrowers[3].id)

        assert queries.popularity(2) == Ok([(copy_a.id, 3), (copy_b.id, 1)])


class TestProperties:
    def test_ledger_only_grows(self, session, catalog, registry, lending):
        ledger = LedgerRepository(session)
        copy = catalog.add_copy(*K_AND_R).value
        borrower = registry.register("John Doe", "john@x.com").value
        sizes = [ledger.count()]

        for step in (
            lambda: lending.borrow_by_copy(copy.id, borrower.id),
            lambda: lending.borrow_by_copy(copy.id, borrower.id),
            lambda: lending.return_copy(copy.id),
            lambda: lending.return_copy(copy.id),
            lambda: catalog.remove_copy(copy.id),
            lambda: registry.delete(borrower.id),
        ):
            step()
            sizes.append(ledger.count())

        # Failed transitions write nothing; removals never touch the ledger
        assert sizes == [0, 1, 1, 2, 2, 2, 2]

    def test_rejected_retitle_keeps_every_copy(self, catalog):
        first = catalog.add_copy(*K_AND_R).value
        second = catalog.add_copy(*K_AND_R).value

        assert catalog.update_copy(second.id, title="Other").kind is ErrorKind.CONFLICTING_METADATA
        assert {copy.title for copy in catalog.find_by_isbn(K_AND_R[0]).value} == {K_AND_R[1]}

        retitled = catalog.update_isbn_metadata(K_AND_R[0], title="Effective Java 3e").value
        assert {copy.id for copy in retitled} == {first.id, second.id}
        assert {copy.title for copy in retitled} == {"Effective Java 3e"}

    def test_flags_follow_ledger_through_mixed_operations(
        self, catalog, registry, lending, queries, fake_time
    ):
        copies = [catalog.add_copy(*K_AND_R).value for _ in range(3)]
        ann = registry.register("Ann Lee", "ann@x.com").value
        ben = registry.register("Ben Lee", "ben@x.com").value

        lending.borrow_by_isbn(K_AND_R[0], ann.id)
        assert_flags_match_ledger(catalog, queries)
        lending.borrow_by_copy(copies[2].id, ben.id)
        fake_time.advance(hours=1)
        lending.return_copy(copies[0].id)
        assert_flags_match_ledger(catalog, queries)
        lending.borrow_by_isbn(K_AND_R[0], ben.id)
        lending.borrow_by_copy(copies[2].id, ann.id)
        assert_flags_match_ledger(catalog, queries)

        held = {copy.id for copy in catalog.copies_held_by(ben.id)}
        assert held == {copies[0].id, copies[2].id}

    def test_overdue_only_while_current(self, catalog, registry, lending, queries, fake_time):
        copy = catalog.add_copy(*K_AND_R).value
        borrower = registry.register("John Doe", "john@x.com").value
        lending.borrow_by_copy(copy.id, borrower.id)

        fake_time.advance(days=14)
        assert queries.overdue() == []

        fake_time.advance(seconds=1)
        [entry] = queries.overdue()
        assert entry.copy_id == copy.id
        lending.return_copy(copy.id)

        assert queries.overdue() == []
        assert not queries.is_overdue(queries.most_recent_for_copy(copy.id))
