"""Ledger entity package.

Ledger entries are immutable facts: "at time T, borrower B performed action A
on copy C". The repository only ever appends and reads them.
"""

from .entity import LedgerAction, LedgerEntry
from .repository import LedgerRepository
from .table import LedgerEntryTable

__all__ = ["LedgerAction", "LedgerEntry", "LedgerEntryTable", "LedgerRepository"]
