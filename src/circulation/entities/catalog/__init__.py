"""Catalog entity package: Copy, its table and its repository."""

from .entity import Copy
from .repository import CopyRepository
from .table import CopyTable

__all__ = ["Copy", "CopyRepository", "CopyTable"]
