"""Entity: LedgerEntry."""

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.circulation.entities._base import as_utc, utc_now


class LedgerAction(StrEnum):
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"


class LedgerEntry(BaseModel):
    """An immutable borrow or return event.

    ``copy_id`` and ``borrower_id`` are weak references: the entry stays valid
    after the copy or borrower it mentions has changed or been removed.
    ``isbn`` records the copy's ISBN at the time of the action.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, description="Store-assigned identifier")
    copy_id: int
    borrower_id: int
    isbn: str
    action: LedgerAction
    action_time: datetime
    due_date: datetime | None = Field(
        default=None, description="Set only for BORROWED entries"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("action_time", "created_at", mode="after")
    @classmethod
    def _normalize_time(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("due_date", mode="after")
    @classmethod
    def _normalize_due_date(cls, value: datetime | None) -> datetime | None:
        return None if value is None else as_utc(value)

    def is_overdue(self, now: datetime) -> bool:
        """True iff this is a BORROWED entry whose due date has passed."""
        return (
            self.action is LedgerAction.BORROWED
            and self.due_date is not None
            and as_utc(now) > self.due_date
        )

    def days_until_due(self, now: datetime) -> int:
        """Whole days from now until the due date, truncated toward zero.

        Negative once the entry is overdue by at least a day; 0 for returns
        and entries without a due date.
        """
        if self.action is not LedgerAction.BORROWED or self.due_date is None:
            return 0
        return int((self.due_date - as_utc(now)) / timedelta(days=1))
