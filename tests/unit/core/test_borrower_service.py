"""Unit tests for BorrowerRegistry."""

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Ok


class TestRegister:
    def test_register_normalizes_fields(self, registry):
        borrower = registry.register("  John Doe ", " John@X.com ").value

        assert borrower.id is not None
        assert borrower.name == "John Doe"
        assert borrower.email == "john@x.com"

    def test_duplicate_email_is_case_insensitive(self, registry, alice):
        result = registry.register("Alice Other", "ALICE@example.com")

        assert result.kind is ErrorKind.DUPLICATE_EMAIL
        assert len(registry.list_borrowers()) == 1

    def test_invalid_fields(self, registry):
        assert registry.register("J", "j@x.com").kind is ErrorKind.INVALID_ARGUMENT
        assert registry.register("John Doe", "not-an-email").kind is ErrorKind.INVALID_ARGUMENT


class TestUpdate:
    def test_update_name_only(self, registry, alice):
        updated = registry.update(alice.id, name="Alice Jones").value

        assert updated.name == "Alice Jones"
        assert updated.email == alice.email

    def test_keeping_own_email_is_not_a_duplicate(self, registry, alice):
        assert isinstance(registry.update(alice.id, email="ALICE@example.com"), Ok)

    def test_taking_another_borrowers_email(self, registry, alice, bob):
        result = registry.update(bob.id, email=alice.email)

        assert result.kind is ErrorKind.DUPLICATE_EMAIL
        assert registry.get(bob.id).value.email == "bob@example.com"

    def test_unknown_borrower(self, registry):
        assert registry.update(404, name="Nobody Here").kind is ErrorKind.NOT_FOUND


class TestDelete:
    def test_delete_idle_borrower(self, registry, alice):
        assert registry.delete(alice.id) == Ok(None)
        assert registry.get(alice.id).kind is ErrorKind.NOT_FOUND

    def test_borrower_with_loans_is_kept(self, registry, lending, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)

        result = registry.delete(alice.id)

        assert result.kind is ErrorKind.HAS_ACTIVE_LOANS
        assert registry.borrowed_copy_count(alice.id) == Ok(1)

    def test_delete_after_return(self, registry, lending, java_copy, alice):
        lending.borrow_by_copy(java_copy.id, alice.id)
        lending.return_copy(java_copy.id)

        assert registry.delete(alice.id) == Ok(None)

    def test_unknown_borrower(self, registry):
        assert registry.delete(404).kind is ErrorKind.NOT_FOUND


class TestReads:
    def test_lookups(self, registry, lending, java_copy, alice, bob):
        lending.borrow_by_copy(java_copy.id, bob.id)

        assert registry.find_by_email("Alice@Example.com") == Ok(alice)
        assert registry.find_by_email("ghost@example.com").kind is ErrorKind.NOT_FOUND
        assert registry.list_borrowers(with_loans=True) == [bob]
        assert registry.list_borrowers(with_loans=False) == [alice]
        assert registry.search_by_name("JONES") == Ok([bob])
        assert registry.search_by_name("").kind is ErrorKind.INVALID_ARGUMENT
