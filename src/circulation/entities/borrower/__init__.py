"""Borrower entity package: Borrower, its table and its repository."""

from .entity import Borrower
from .repository import BorrowerRepository
from .table import BorrowerTable

__all__ = ["Borrower", "BorrowerRepository", "BorrowerTable"]
