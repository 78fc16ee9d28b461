"""Core services exports."""

# Database Services
from .database.db_manage import DbManageService
from .database.db_session import DbSessionService

# Lending Services
from .borrower_service import BorrowerRegistry
from .catalog_service import CatalogService
from .clock import MonotonicClock
from .ledger_query_service import AvailabilityMismatch, BorrowerStatistics, LedgerQueryEngine
from .lending_service import LendingStateMachine
from .locks import KeyedLocks

__all__ = [
    # Database Services
    "DbManageService",
    "DbSessionService",
    # Lending Services
    "AvailabilityMismatch",
    "BorrowerRegistry",
    "BorrowerStatistics",
    "CatalogService",
    "KeyedLocks",
    "LedgerQueryEngine",
    "LendingStateMachine",
    "MonotonicClock",
]
