"""Borrower repository: SQLModel implementation of the borrower store."""

import sqlalchemy as sa
from sqlmodel import Session, col, func, select

from src.circulation.core.storage.stores import BorrowerStore
from src.circulation.entities._base import as_utc
from src.circulation.entities.borrower.entity import Borrower
from src.circulation.entities.borrower.table import BorrowerTable
from src.circulation.entities.catalog.table import CopyTable


class BorrowerRepository(BorrowerStore):
    """Data-access layer for borrowers."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def _to_entity(row: BorrowerTable) -> Borrower:
        return Borrower.model_validate(row, from_attributes=True)

    def get(self, borrower_id: int) -> Borrower | None:
        row = self._session.get(BorrowerTable, borrower_id, populate_existing=True)
        if row is None:
            return None
        return self._to_entity(row)

    def save(self, borrower: Borrower) -> Borrower:
        if borrower.id is None:
            row = BorrowerTable(
                name=borrower.name,
                email=borrower.email,
                created_at=borrower.created_at,
                updated_at=borrower.updated_at,
            )
            self._session.add(row)
        else:
            row = self._session.get(BorrowerTable, borrower.id)
            if row is None:
                raise ValueError(f"Borrower with ID {borrower.id} not found")
            row.name = borrower.name
            row.email = borrower.email
            row.updated_at = as_utc(borrower.updated_at)
        self._session.flush()
        return self._to_entity(row)

    def delete(self, borrower_id: int) -> bool:
        holds_copy = sa.exists().where(col(CopyTable.borrower_id) == borrower_id)
        statement = sa.delete(BorrowerTable).where(
            col(BorrowerTable.id) == borrower_id, ~holds_copy
        )
        result = self._session.connection().execute(statement)
        return result.rowcount == 1

    def find_by_email(self, email: str) -> Borrower | None:
        statement = select(BorrowerTable).where(col(BorrowerTable.email) == email)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return self._to_entity(row)

    def exists_by_email(self, email: str) -> bool:
        statement = select(func.count()).select_from(BorrowerTable).where(col(BorrowerTable.email) == email)
        return self._session.exec(statement).one() > 0

    def list_all(self, with_loans: bool | None = None) -> list[Borrower]:
        statement = select(BorrowerTable).order_by(col(BorrowerTable.id))
        if with_loans is not None:
            holds_copy = sa.exists().where(col(CopyTable.borrower_id) == BorrowerTable.id)
            statement = statement.where(holds_copy if with_loans else ~holds_copy)
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def search_by_name(self, pattern: str) -> list[Borrower]:
        statement = (
            select(BorrowerTable)
            .where(col(BorrowerTable.name).icontains(pattern, autoescape=True))
            .order_by(col(BorrowerTable.id))
        )
        return [self._to_entity(row) for row in self._session.exec(statement).all()]
