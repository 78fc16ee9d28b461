"""Ledger repository: SQLModel implementation of the append-only ledger."""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import aliased
from sqlmodel import Session, col, func, select

from src.circulation.core.storage.stores import Ledger, RankingKey
from src.circulation.entities._base import as_utc
from src.circulation.entities.ledger.entity import LedgerAction, LedgerEntry
from src.circulation.entities.ledger.table import LedgerEntryTable

_NEWEST_FIRST = (
    col(LedgerEntryTable.action_time).desc(),
    col(LedgerEntryTable.id).desc(),
)

_RANKING_COLUMNS = {
    "copy": LedgerEntryTable.copy_id,
    "isbn": LedgerEntryTable.isbn,
    "borrower": LedgerEntryTable.borrower_id,
}


def _in_range(start: datetime | None, end: datetime | None) -> list:
    clauses = []
    if start is not None:
        clauses.append(col(LedgerEntryTable.action_time) >= as_utc(start))
    if end is not None:
        clauses.append(col(LedgerEntryTable.action_time) <= as_utc(end))
    return clauses


def _is_borrow():
    return col(LedgerEntryTable.action) == LedgerAction.BORROWED.value


class LedgerRepository(Ledger):
    """Data-access layer for ledger entries.

    Entries are only ever inserted; no method updates or deletes a row.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def _to_entity(row: LedgerEntryTable) -> LedgerEntry:
        return LedgerEntry.model_validate(row, from_attributes=True)

    def _query(self, *clauses) -> list[LedgerEntry]:
        statement = select(LedgerEntryTable).where(*clauses).order_by(*_NEWEST_FIRST)
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        row = LedgerEntryTable(
            copy_id=entry.copy_id,
            borrower_id=entry.borrower_id,
            isbn=entry.isbn,
            action=entry.action.value,
            action_time=entry.action_time,
            due_date=entry.due_date,
            created_at=entry.created_at,
        )
        self._session.add(row)
        self._session.flush()
        return self._to_entity(row)

    def query_by_copy(
        self, copy_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[LedgerEntry]:
        return self._query(col(LedgerEntryTable.copy_id) == copy_id, *_in_range(start, end))

    def query_by_borrower(
        self, borrower_id: int, start: datetime | None = None, end: datetime | None = None
    ) -> list[LedgerEntry]:
        return self._query(
            col(LedgerEntryTable.borrower_id) == borrower_id, *_in_range(start, end)
        )

    def query_by_date_range(self, start: datetime, end: datetime) -> list[LedgerEntry]:
        return self._query(*_in_range(start, end))

    def current_loans(self, borrower_id: int | None = None) -> list[LedgerEntry]:
        returned = aliased(LedgerEntryTable)
        later_return = (
            sa.select(returned.id)
            .where(
                returned.copy_id == LedgerEntryTable.copy_id,
                returned.borrower_id == LedgerEntryTable.borrower_id,
                returned.action == LedgerAction.RETURNED.value,
                sa.or_(
                    returned.action_time > LedgerEntryTable.action_time,
                    sa.and_(
                        returned.action_time == LedgerEntryTable.action_time,
                        returned.id > LedgerEntryTable.id,
                    ),
                ),
            )
            .exists()
        )
        clauses = [_is_borrow(), ~later_return]
        if borrower_id is not None:
            clauses.append(col(LedgerEntryTable.borrower_id) == borrower_id)
        return self._query(*clauses)

    def most_recent_for_copy(self, copy_id: int) -> LedgerEntry | None:
        statement = (
            select(LedgerEntryTable)
            .where(col(LedgerEntryTable.copy_id) == copy_id)
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return self._to_entity(row)

    def count_borrowings(
        self, copy_id: int | None = None, borrower_id: int | None = None
    ) -> int:
        statement = select(func.count()).select_from(LedgerEntryTable).where(_is_borrow())
        if copy_id is not None:
            statement = statement.where(col(LedgerEntryTable.copy_id) == copy_id)
        if borrower_id is not None:
            statement = statement.where(col(LedgerEntryTable.borrower_id) == borrower_id)
        return self._session.exec(statement).one()

    def borrow_counts(self, key: RankingKey, limit: int) -> list[tuple[int | str, int]]:
        group_column = col(_RANKING_COLUMNS[key])
        borrow_count = func.count(col(LedgerEntryTable.id))
        statement = (
            select(group_column, borrow_count)
            .where(_is_borrow())
            .group_by(group_column)
            .order_by(borrow_count.desc(), group_column.asc())
            .limit(limit)
        )
        return [(group_key, count) for group_key, count in self._session.exec(statement).all()]

    def count(self) -> int:
        return self._session.exec(select(func.count()).select_from(LedgerEntryTable)).one()
