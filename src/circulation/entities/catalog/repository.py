"""Copy repository: SQLModel implementation of the catalog store."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Session, col, func, select

from src.circulation.core.storage.stores import CatalogStore
from src.circulation.entities._base import as_utc
from src.circulation.entities.catalog.entity import Copy
from src.circulation.entities.catalog.table import CopyTable


def _availability_clause(available: bool):
    borrower = col(CopyTable.borrower_id)
    return borrower.is_(None) if available else borrower.is_not(None)


class CopyRepository(CatalogStore):
    """Data-access layer for copies."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @staticmethod
    def _to_entity(row: CopyTable) -> Copy:
        return Copy.model_validate(row, from_attributes=True)

    def _list(self, *clauses) -> list[Copy]:
        statement = select(CopyTable).where(*clauses).order_by(col(CopyTable.id))
        return [self._to_entity(row) for row in self._session.exec(statement).all()]

    def get(self, copy_id: int) -> Copy | None:
        row = self._session.get(CopyTable, copy_id, populate_existing=True)
        if row is None:
            return None
        return self._to_entity(row)

    def list_all(self, available: bool | None = None) -> list[Copy]:
        if available is None:
            return self._list()
        return self._list(_availability_clause(available))

    def save(self, copy: Copy) -> Copy:
        if copy.id is None:
            row = CopyTable(
                isbn=copy.isbn,
                title=copy.title,
                author=copy.author,
                created_at=copy.created_at,
                updated_at=copy.updated_at,
            )
            self._session.add(row)
        else:
            row = self._session.get(CopyTable, copy.id)
            if row is None:
                raise ValueError(f"Copy with ID {copy.id} not found")
            row.title = copy.title
            row.author = copy.author
            row.updated_at = as_utc(copy.updated_at)
        self._session.flush()
        return self._to_entity(row)

    def delete(self, copy_id: int, *, only_if_available: bool = False) -> bool:
        statement = sa.delete(CopyTable).where(col(CopyTable.id) == copy_id)
        if only_if_available:
            statement = statement.where(_availability_clause(True))
        result = self._session.connection().execute(statement)
        return result.rowcount == 1

    def find_by_isbn(self, isbn: str) -> list[Copy]:
        return self._list(col(CopyTable.isbn) == isbn)

    def exists_by_isbn(self, isbn: str) -> bool:
        statement = select(CopyTable.id).where(col(CopyTable.isbn) == isbn).limit(1)
        return self._session.exec(statement).first() is not None

    def first_available_by_isbn(self, isbn: str) -> Copy | None:
        statement = (
            select(CopyTable)
            .where(col(CopyTable.isbn) == isbn, _availability_clause(True))
            .order_by(col(CopyTable.id))
            .limit(1)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return self._to_entity(row)

    def find_conflicting(
        self, isbn: str, title: str, author: str, exclude_id: int | None = None
    ) -> list[Copy]:
        clauses = [
            col(CopyTable.isbn) == isbn,
            sa.or_(col(CopyTable.title) != title, col(CopyTable.author) != author),
        ]
        if exclude_id is not None:
            clauses.append(col(CopyTable.id) != exclude_id)
        return self._list(*clauses)

    def find_by_borrower(self, borrower_id: int) -> list[Copy]:
        return self._list(col(CopyTable.borrower_id) == borrower_id)

    def count_by_borrower(self, borrower_id: int) -> int:
        statement = (
            select(func.count())
            .select_from(CopyTable)
            .where(col(CopyTable.borrower_id) == borrower_id)
        )
        return self._session.exec(statement).one()

    def count_by_isbn(self, isbn: str, available: bool | None = None) -> int:
        statement = select(func.count()).select_from(CopyTable).where(col(CopyTable.isbn) == isbn)
        if available is not None:
            statement = statement.where(_availability_clause(available))
        return self._session.exec(statement).one()

    def search(self, title: str | None = None, author: str | None = None) -> list[Copy]:
        clauses = []
        if title:
            clauses.append(col(CopyTable.title).icontains(title, autoescape=True))
        if author:
            clauses.append(col(CopyTable.author).icontains(author, autoescape=True))
        return self._list(*clauses)

    def compare_and_set_borrower(
        self,
        copy_id: int,
        expected: int | None,
        new: int | None,
        updated_at: datetime,
    ) -> bool:
        current = col(CopyTable.borrower_id)
        statement = (
            sa.update(CopyTable)
            .where(col(CopyTable.id) == copy_id)
            .where(current.is_(None) if expected is None else current == expected)
            .values(borrower_id=new, updated_at=as_utc(updated_at))
        )
        result = self._session.connection().execute(statement)
        return result.rowcount == 1
