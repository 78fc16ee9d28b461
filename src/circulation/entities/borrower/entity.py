"""Entity: Borrower."""

from typing import Any

from pydantic import Field

from src.circulation.entities._base import Entity


class Borrower(Entity):
    """A person authorized to borrow copies."""

    name: str = Field(description="Borrower's full name")
    email: str = Field(description="Lowercase email address, unique across borrowers")

    def __eq__(self, other: Any) -> bool:
        """Compare borrowers by business attributes, ignoring timestamps."""
        if not isinstance(other, Borrower):
            return False

        return self.id == other.id and self.name == other.name and self.email == other.email

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((self.id, self.name, self.email))
