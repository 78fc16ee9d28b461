"""Entities organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .borrower import Borrower, BorrowerRepository, BorrowerTable
from .catalog import Copy, CopyRepository, CopyTable
from .ledger import LedgerAction, LedgerEntry, LedgerEntryTable, LedgerRepository

__all__ = [
    "Borrower",
    "BorrowerRepository",
    "BorrowerTable",
    "Copy",
    "CopyRepository",
    "CopyTable",
    "LedgerAction",
    "LedgerEntry",
    "LedgerEntryTable",
    "LedgerRepository",
]
