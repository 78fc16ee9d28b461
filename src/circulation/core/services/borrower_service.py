"""Borrower registration and maintenance."""

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Err, Ok, Result, fail
from src.circulation.core.services.clock import MonotonicClock
from src.circulation.core.services.unit_of_work import TransactionalService
from src.circulation.core.storage.stores import BorrowerStore, CatalogStore
from src.circulation.core.validation import validate_email, validate_name
from src.circulation.entities.borrower import Borrower, BorrowerRepository
from src.circulation.entities.catalog import CopyRepository


class BorrowerRegistry(TransactionalService):
    def __init__(
        self,
        db_session: Session,
        clock: MonotonicClock | None = None,
        borrowers: BorrowerStore | None = None,
        catalog: CatalogStore | None = None,
    ):
        super().__init__(db_session)
        self._borrowers = borrowers or BorrowerRepository(db_session)
        self._catalog = catalog or CopyRepository(db_session)
        self._clock = clock or MonotonicClock()

    def _duplicate_email(self, operation: str, email: str) -> Err:
        return self._reject(
            operation,
            fail(ErrorKind.DUPLICATE_EMAIL, f"Borrower with email {email} already exists"),
        )

    def _store(self, operation: str, borrower: Borrower) -> Result[Borrower]:
        """Save and commit; the unique index catches a registration racing ours."""
        try:
            saved = self._borrowers.save(borrower)
            self._commit()
        except IntegrityError:
            return self._duplicate_email(operation, borrower.email)
        return Ok(saved)

    def register(self, name: str, email: str) -> Result[Borrower]:
        """Register a borrower with a unique email address."""
        checked_name = validate_name(name)
        if isinstance(checked_name, Err):
            return checked_name
        checked_email = validate_email(email)
        if isinstance(checked_email, Err):
            return checked_email

        with self._transaction("register"):
            if self._borrowers.exists_by_email(checked_email.value):
                return self._duplicate_email("register", checked_email.value)
            now = self._clock.now()
            result = self._store(
                "register",
                Borrower(
                    name=checked_name.value,
                    email=checked_email.value,
                    created_at=now,
                    updated_at=now,
                ),
            )

        if isinstance(result, Ok):
            logger.info("Registered borrower {}", result.value.id)
        return result

    def update(
        self, borrower_id: int, name: str | None = None, email: str | None = None
    ) -> Result[Borrower]:
        """Change name and/or email; ``None`` leaves a field untouched."""
        if name is not None:
            checked_name = validate_name(name)
            if isinstance(checked_name, Err):
                return checked_name
            name = checked_name.value
        if email is not None:
            checked_email = validate_email(email)
            if isinstance(checked_email, Err):
                return checked_email
            email = checked_email.value

        with self._transaction("update_borrower"):
            borrower = self._borrowers.get(borrower_id)
            if borrower is None:
                return self._reject(
                    "update_borrower",
                    fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}"),
                )

            changes: dict = {}
            if name is not None and name != borrower.name:
                changes["name"] = name
            if email is not None and email != borrower.email:
                if self._borrowers.exists_by_email(email):
                    return self._duplicate_email("update_borrower", email)
                changes["email"] = email
            if not changes:
                return Ok(borrower)

            changes["updated_at"] = self._clock.now()
            result = self._store("update_borrower", borrower.model_copy(update=changes))

        if isinstance(result, Ok):
            logger.info("Updated borrower {}", borrower_id)
        return result

    def delete(self, borrower_id: int) -> Result[None]:
        """Remove a borrower who holds no copies."""
        with self._transaction("delete_borrower"):
            if self._borrowers.get(borrower_id) is None:
                return self._reject(
                    "delete_borrower",
                    fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}"),
                )
            held = self._catalog.count_by_borrower(borrower_id)
            if held == 0 and not self._borrowers.delete(borrower_id):
                # A borrow or delete landed between the count and the conditional delete
                held = self._catalog.count_by_borrower(borrower_id)
                if held == 0:
                    return self._reject(
                        "delete_borrower",
                        fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}"),
                    )
            if held > 0:
                return self._reject(
                    "delete_borrower",
                    fail(
                        ErrorKind.HAS_ACTIVE_LOANS,
                        f"Cannot delete borrower {borrower_id}: {held} copies still on loan",
                    ),
                )
            self._commit()

        logger.info("Deleted borrower {}", borrower_id)
        return Ok(None)

    # Reads

    def get(self, borrower_id: int) -> Result[Borrower]:
        borrower = self._borrowers.get(borrower_id)
        if borrower is None:
            return fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}")
        return Ok(borrower)

    def find_by_email(self, email: str) -> Result[Borrower]:
        checked = validate_email(email)
        if isinstance(checked, Err):
            return checked
        borrower = self._borrowers.find_by_email(checked.value)
        if borrower is None:
            return fail(ErrorKind.NOT_FOUND, f"Borrower not found with email: {checked.value}")
        return Ok(borrower)

    def list_borrowers(self, with_loans: bool | None = None) -> list[Borrower]:
        return self._borrowers.list_all(with_loans)

    def search_by_name(self, pattern: str) -> Result[list[Borrower]]:
        if not pattern or not pattern.strip():
            return fail(ErrorKind.INVALID_ARGUMENT, "Name pattern cannot be empty")
        return Ok(self._borrowers.search_by_name(pattern.strip()))

    def borrowed_copy_count(self, borrower_id: int) -> Result[int]:
        if self._borrowers.get(borrower_id) is None:
            return fail(ErrorKind.NOT_FOUND, f"Borrower not found with ID: {borrower_id}")
        return Ok(self._catalog.count_by_borrower(borrower_id))
