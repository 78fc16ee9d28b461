"""Borrower database table model."""

from sqlmodel import Field

from src.circulation.entities._base import EntityTable


class BorrowerTable(EntityTable, table=True):
    """Database persistence model for borrowers."""

    __tablename__ = "borrowers"

    name: str = Field(max_length=100)
    email: str = Field(max_length=150, unique=True, index=True)
