"""Catalog consistency: adding, retitling and removing copies."""

from loguru import logger
from sqlmodel import Session

from src.circulation.core.errors import ErrorKind
from src.circulation.core.result import Err, Ok, Result, fail
from src.circulation.core.services.clock import MonotonicClock
from src.circulation.core.services.locks import KeyedLocks
from src.circulation.core.services.unit_of_work import TransactionalService
from src.circulation.core.storage.stores import CatalogStore
from src.circulation.core.validation import normalize_isbn, validate_author, validate_title
from src.circulation.entities.catalog import Copy, CopyRepository


class CatalogService(TransactionalService):
    """Maintains the rule that every copy of an ISBN has the same title and author.

    Writes touching one ISBN are serialized through ``isbn_locks``; pass the
    same registry to every CatalogService sharing a database.
    """

    def __init__(
        self,
        db_session: Session,
        isbn_locks: KeyedLocks | None = None,
        clock: MonotonicClock | None = None,
        catalog: CatalogStore | None = None,
    ):
        super().__init__(db_session)
        self._catalog = catalog or CopyRepository(db_session)
        self._isbn_locks = isbn_locks if isbn_locks is not None else KeyedLocks("isbn")
        self._clock = clock or MonotonicClock()

    def add_copy(self, isbn: str, title: str, author: str) -> Result[Copy]:
        """Register a new, available copy.

        When the ISBN is already catalogued, title and author must match the
        first registered copy exactly.
        """
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        normalized = checked.value
        checked_title = validate_title(title)
        if isinstance(checked_title, Err):
            return checked_title
        checked_author = validate_author(author)
        if isinstance(checked_author, Err):
            return checked_author
        title, author = checked_title.value, checked_author.value

        with self._isbn_locks.hold(normalized), self._transaction("add_copy"):
            existing = self._catalog.find_by_isbn(normalized)
            if existing:
                first = existing[0]
                if first.title != title or first.author != author:
                    return self._reject(
                        "add_copy",
                        fail(
                            ErrorKind.CONFLICTING_METADATA,
                            f"ISBN {normalized} already exists with different title/author. "
                            f"Expected: {title!r} by {author!r}, "
                            f"but found: {first.title!r} by {first.author!r}",
                        ),
                    )

            now = self._clock.now()
            copy = self._catalog.save(
                Copy(isbn=normalized, title=title, author=author, created_at=now, updated_at=now)
            )
            self._commit()

        logger.info("Added copy {} of ISBN {}", copy.id, normalized)
        return Ok(copy)

    def update_copy(
        self, copy_id: int, title: str | None = None, author: str | None = None
    ) -> Result[Copy]:
        """Change the title and/or author of one copy.

        ``None`` leaves a field untouched. The change is refused when another
        copy of the same ISBN would end up with different metadata; use
        update_isbn_metadata to retitle every copy at once.
        """
        if title is not None:
            checked_title = validate_title(title)
            if isinstance(checked_title, Err):
                return checked_title
            title = checked_title.value
        if author is not None:
            checked_author = validate_author(author)
            if isinstance(checked_author, Err):
                return checked_author
            author = checked_author.value

        # Only the ISBN is taken from this read; it never changes
        located = self._catalog.get(copy_id)
        if located is None:
            return self._reject("update_copy", fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}"))

        with self._isbn_locks.hold(located.isbn), self._transaction("update_copy"):
            copy = self._catalog.get(copy_id)
            if copy is None:
                return self._reject(
                    "update_copy", fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}")
                )
            new_title = copy.title if title is None else title
            new_author = copy.author if author is None else author
            if new_title == copy.title and new_author == copy.author:
                return Ok(copy)

            conflicts = self._catalog.find_conflicting(
                copy.isbn, new_title, new_author, exclude_id=copy.id
            )
            if conflicts:
                return self._reject(
                    "update_copy",
                    fail(
                        ErrorKind.CONFLICTING_METADATA,
                        f"Cannot update copy {copy_id}: {len(conflicts)} other copies of "
                        f"ISBN {copy.isbn} have different title/author",
                    ),
                )

            updated = self._catalog.save(
                copy.model_copy(
                    update={
                        "title": new_title,
                        "author": new_author,
                        "updated_at": self._clock.now(),
                    }
                )
            )
            self._commit()

        logger.info("Updated metadata of copy {}", copy_id)
        return Ok(updated)

    def update_isbn_metadata(
        self, isbn: str, title: str | None = None, author: str | None = None
    ) -> Result[list[Copy]]:
        """Rewrite title and/or author of every copy of an ISBN in one transaction."""
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        normalized = checked.value
        if title is not None:
            checked_title = validate_title(title)
            if isinstance(checked_title, Err):
                return checked_title
            title = checked_title.value
        if author is not None:
            checked_author = validate_author(author)
            if isinstance(checked_author, Err):
                return checked_author
            author = checked_author.value

        with self._isbn_locks.hold(normalized), self._transaction("update_isbn_metadata"):
            copies = self._catalog.find_by_isbn(normalized)
            if not copies:
                return self._reject(
                    "update_isbn_metadata",
                    fail(ErrorKind.NOT_FOUND, f"No copies found with ISBN: {normalized}"),
                )
            if title is None and author is None:
                return Ok(copies)

            now = self._clock.now()
            changes: dict = {"updated_at": now}
            if title is not None:
                changes["title"] = title
            if author is not None:
                changes["author"] = author
            updated = [self._catalog.save(copy.model_copy(update=changes)) for copy in copies]
            self._commit()

        logger.info("Updated metadata of {} copies of ISBN {}", len(updated), normalized)
        return Ok(updated)

    def remove_copy(self, copy_id: int) -> Result[None]:
        """Delete a copy that is not on loan."""
        with self._transaction("remove_copy"):
            copy = self._catalog.get(copy_id)
            if copy is None:
                return self._reject("remove_copy", fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}"))
            if not copy.is_available:
                return self._reject(
                    "remove_copy",
                    fail(ErrorKind.COPY_ON_LOAN, f"Cannot delete copy {copy_id}: it is currently on loan"),
                )

            if not self._catalog.delete(copy_id, only_if_available=True):
                # Lost a race between the read above and the conditional delete
                still_there = self._catalog.get(copy_id) is not None
                kind = ErrorKind.COPY_ON_LOAN if still_there else ErrorKind.NOT_FOUND
                return self._reject(
                    "remove_copy",
                    fail(kind, f"Cannot delete copy {copy_id}: it changed concurrently"),
                )
            self._commit()

        logger.info("Removed copy {} of ISBN {}", copy_id, copy.isbn)
        return Ok(None)

    # Reads

    def get_copy(self, copy_id: int) -> Result[Copy]:
        copy = self._catalog.get(copy_id)
        if copy is None:
            return fail(ErrorKind.NOT_FOUND, f"Copy not found with ID: {copy_id}")
        return Ok(copy)

    def list_copies(self, available: bool | None = None) -> list[Copy]:
        return self._catalog.list_all(available)

    def find_by_isbn(self, isbn: str) -> Result[list[Copy]]:
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        return Ok(self._catalog.find_by_isbn(checked.value))

    def available_by_isbn(self, isbn: str) -> Result[list[Copy]]:
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        return Ok([copy for copy in self._catalog.find_by_isbn(checked.value) if copy.is_available])

    def search_by_title(self, pattern: str) -> Result[list[Copy]]:
        if not pattern or not pattern.strip():
            return fail(ErrorKind.INVALID_ARGUMENT, "Title pattern cannot be empty")
        return Ok(self._catalog.search(title=pattern.strip()))

    def search_by_author(self, pattern: str) -> Result[list[Copy]]:
        if not pattern or not pattern.strip():
            return fail(ErrorKind.INVALID_ARGUMENT, "Author pattern cannot be empty")
        return Ok(self._catalog.search(author=pattern.strip()))

    def copies_held_by(self, borrower_id: int) -> list[Copy]:
        return self._catalog.find_by_borrower(borrower_id)

    def count_by_isbn(self, isbn: str) -> Result[int]:
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        return Ok(self._catalog.count_by_isbn(checked.value))

    def available_count_by_isbn(self, isbn: str) -> Result[int]:
        checked = normalize_isbn(isbn)
        if isinstance(checked, Err):
            return checked
        return Ok(self._catalog.count_by_isbn(checked.value, available=True))
