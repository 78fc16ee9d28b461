"""FastAPI dependency implementations."""

from collections.abc import Iterator
from datetime import timedelta

from fastapi import Depends, Request
from sqlmodel import Session

from src.circulation.api.http.app_data import ApplicationDependencies
from src.circulation.core.services import (
    BorrowerRegistry,
    CatalogService,
    LedgerQueryEngine,
    LendingStateMachine,
)


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> Iterator[Session]:
    """Yield a request-scoped database session."""
    session = app_deps.database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_catalog_service(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db_session: Session = Depends(get_db_session),
) -> CatalogService:
    return CatalogService(db_session, isbn_locks=app_deps.isbn_locks, clock=app_deps.clock)


def get_borrower_registry(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db_session: Session = Depends(get_db_session),
) -> BorrowerRegistry:
    return BorrowerRegistry(db_session, clock=app_deps.clock)


def get_lending_state_machine(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db_session: Session = Depends(get_db_session),
) -> LendingStateMachine:
    return LendingStateMachine(
        db_session,
        copy_locks=app_deps.copy_locks,
        clock=app_deps.clock,
        loan_period=timedelta(days=app_deps.lending.loan_period_days),
    )


def get_ledger_query_engine(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
    db_session: Session = Depends(get_db_session),
) -> LedgerQueryEngine:
    return LedgerQueryEngine(db_session, clock=app_deps.clock)
