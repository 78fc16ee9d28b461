"""Schema management for the lending database."""

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import SQLModel

from src.circulation.entities.borrower import BorrowerTable  # noqa: F401
from src.circulation.entities.catalog import CopyTable  # noqa: F401
from src.circulation.entities.ledger import LedgerEntryTable  # noqa: F401


class DbManageService:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_all(self) -> None:
        """Create all database tables."""
        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")

    def table_names(self) -> list[str]:
        return sorted(SQLModel.metadata.tables)
