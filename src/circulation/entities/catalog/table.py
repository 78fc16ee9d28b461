"""Copy database table model."""

from sqlmodel import Field

from src.circulation.entities._base import EntityTable


class CopyTable(EntityTable, table=True):
    """Database persistence model for book copies."""

    __tablename__ = "copies"

    isbn: str = Field(index=True, max_length=13)
    title: str = Field(max_length=500)
    author: str = Field(max_length=200)
    borrower_id: int | None = Field(
        default=None, foreign_key="borrowers.id", index=True
    )
