"""Ledger entry database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.circulation.entities._base import IdentifiedTable


class LedgerEntryTable(IdentifiedTable, table=True):
    """Database persistence model for ledger entries.

    Copy and borrower ids carry no foreign keys; entries outlive the rows
    they reference.
    """

    __tablename__ = "ledger_entries"

    copy_id: int = Field(index=True)
    borrower_id: int = Field(index=True)
    isbn: str = Field(index=True, max_length=13)
    action: str = Field(max_length=20)
    action_time: datetime = Field(
        nullable=False, index=True, sa_type=sa.DateTime(timezone=True)
    )
    due_date: datetime | None = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
