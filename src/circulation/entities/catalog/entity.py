"""Entity: Copy."""

from typing import Any

from pydantic import Field

from src.circulation.entities._base import Entity


class Copy(Entity):
    """One physical, independently lendable unit of a book.

    All copies that share an ISBN carry identical title and author. A copy is
    on loan exactly when ``borrower_id`` is set.
    """

    isbn: str = Field(description="Normalized ISBN (digits and 'X' only)")
    title: str = Field(description="Title shared by every copy of the ISBN")
    author: str = Field(description="Author shared by every copy of the ISBN")
    borrower_id: int | None = Field(
        default=None, description="Borrower currently holding the copy"
    )

    @property
    def is_available(self) -> bool:
        return self.borrower_id is None

    def __eq__(self, other: Any) -> bool:
        """Compare copies by business attributes, ignoring timestamps."""
        if not isinstance(other, Copy):
            return False

        return (
            self.id == other.id
            and self.isbn == other.isbn
            and self.title == other.title
            and self.author == other.author
            and self.borrower_id == other.borrower_id
        )

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((self.id, self.isbn, self.title, self.author, self.borrower_id))
