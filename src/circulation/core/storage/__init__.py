"""Store interfaces used by the lending services."""

from .stores import BorrowerStore, CatalogStore, Ledger, RankingKey

__all__ = ["BorrowerStore", "CatalogStore", "Ledger", "RankingKey"]
