"""Store interfaces for the lending engine.

The services only talk to these narrow interfaces. The SQLModel repositories
in ``src.circulation.entities`` are the shipped implementations; a store is
bound to one unit of work and never commits on its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from src.circulation.entities.borrower.entity import Borrower
    from src.circulation.entities.catalog.entity import Copy
    from src.circulation.entities.ledger.entity import LedgerEntry

RankingKey = Literal["copy", "isbn", "borrower"]


class CatalogStore(ABC):
    """Abstract interface for copy records."""

    @abstractmethod
    def get(self, copy_id: int) -> Copy | None:
        """Fetch a copy, always reading the current stored state."""

    @abstractmethod
    def list_all(self, available: bool | None = None) -> list[Copy]:
        """List copies ordered by id.

        Args:
            available: True for copies on the shelf, False for copies on loan,
                None for every copy
        """

    @abstractmethod
    def save(self, copy: Copy) -> Copy:
        """Insert a new copy (id is None) or update title/author of an existing one.

        The borrower reference is never written here; it changes only through
        compare_and_set_borrower.
        """

    @abstractmethod
    def delete(self, copy_id: int, *, only_if_available: bool = False) -> bool:
        """Delete a copy.

        Returns:
            True if a row was removed
        """

    @abstractmethod
    def find_by_isbn(self, isbn: str) -> list[Copy]:
        """All copies of a normalized ISBN, lowest id first."""

    @abstractmethod
    def exists_by_isbn(self, isbn: str) -> bool:
        """Check whether any copy carries the normalized ISBN."""

    @abstractmethod
    def first_available_by_isbn(self, isbn: str) -> Copy | None:
        """The available copy of an ISBN with the lowest id."""

    @abstractmethod
    def find_conflicting(
        self, isbn: str, title: str, author: str, exclude_id: int | None = None
    ) -> list[Copy]:
        """Copies of the ISBN whose title or author differ from the given pair."""

    @abstractmethod
    def find_by_borrower(self, borrower_id: int) -> list[Copy]:
        """Copies currently held by a borrower."""

    @abstractmethod
    def count_by_borrower(self, borrower_id: int) -> int:
        """Number of copies currently held by a borrower."""

    @abstractmethod
    def count_by_isbn(self, isbn: str, available: bool | None = None) -> int:
        """Number of copies of an ISBN, optionally only (un)available ones."""

    @abstractmethod
    def search(self, title: str | None = None, author: str | None = None) -> list[Copy]:
        """Case-insensitive substring search on title and/or author."""

    @abstractmethod
    def compare_and_set_borrower(
        self,
        copy_id: int,
        expected: int | None,
        new: int | None,
        updated_at: datetime,
    ) -> bool:
        """Atomically move the borrower reference from expected to new.

        Returns:
            True if the stored value was ``expected`` and has been replaced
        """


class BorrowerStore(ABC):
    """Abstract interface for borrower records."""

    @abstractmethod
    def get(self, borrower_id: int) -> Borrower | None:
        """Fetch a borrower by id."""

    @abstractmethod
    def save(self, borrower: Borrower) -> Borrower:
        """Insert a new borrower (id is None) or update an existing one."""

    @abstractmethod
    def delete(self, borrower_id: int) -> bool:
        """Delete a borrower, but only while no copy references them.

        Returns:
            True if a row was removed
        """

    @abstractmethod
    def find_by_email(self, email: str) -> Borrower | None:
        """Fetch a borrower by normalized email."""

    @abstractmethod
    def exists_by_email(self, email: str) -> bool:
        """Check whether a normalized email is registered."""

    @abstractmethod
    def list_all(self, with_loans: bool | None = None) -> list[Borrower]:
        """List borrowers ordered by id.

        Args:
            with_loans: True for borrowers holding at least one copy, False for
                borrowers holding none, None for everyone
        """

    @abstractmethod
    def search_by_name(self, pattern: str) -> list[Borrower]:
        """Case-insensitive substring search on the name."""


class Ledger(ABC):
    """Abstract interface for the append-only lending ledger.

    There is deliberately no update or delete operation.
    """

    @abstractmethod
    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Append an entry and return it with its assigned id."""

    @abstractmethod
    def query_by_copy(
        self, copy_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[LedgerEntry]:
        """Entries for a copy, newest first (ties by id descending)."""

    @abstractmethod
    def query_by_borrower(
        self, borrower_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[LedgerEntry]:
        """Entries for a borrower, newest first (ties by id descending)."""

    @abstractmethod
    def query_by_date_range(self, start: datetime, end: datetime) -> list[LedgerEntry]:
        """Entries with start <= action_time <= end, newest first."""

    @abstractmethod
    def current_loans(self, borrower_id: int | None = None) -> list[LedgerEntry]:
        """BORROWED entries with no later RETURNED entry for the same copy and borrower.

        "Later" means a greater action time, or the same action time and a
        greater entry id. Newest first.
        """

    @abstractmethod
    def most_recent_for_copy(self, copy_id: int) -> LedgerEntry | None:
        """The newest entry for a copy."""

    @abstractmethod
    def count_borrowings(
        self, copy_id: int | None = None, borrower_id: int | None = None
    ) -> int:
        """Number of BORROWED entries matching the filters."""

    @abstractmethod
    def borrow_counts(self, key: RankingKey, limit: int) -> list[tuple[int | str, int]]:
        """BORROWED entry counts grouped by key, count descending then key ascending."""

    @abstractmethod
    def count(self) -> int:
        """Total number of entries."""
