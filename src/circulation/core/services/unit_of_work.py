"""Shared transaction handling for the write-side services."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.circulation.core.result import Err


class TransactionalService:
    """Base class for services that own one unit of work.

    Every successful mutation ends with exactly one commit. A rejected
    operation rolls back whatever the unit of work holds before the ``Err``
    is handed to the caller; a database failure is rolled back, logged and
    re-raised.
    """

    def __init__(self, db_session: Session):
        self._session = db_session

    def _commit(self) -> None:
        self._session.commit()

    def _reject(self, operation: str, err: Err) -> Err:
        self._session.rollback()
        logger.info(
            "{} rejected: {}", operation, err.message, operation=operation, kind=str(err.kind)
        )
        return err

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.error(
                "Database transaction failed during {}",
                operation,
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise
