"""Circulation: lending consistency engine for physical book copies.

This package keeps copy availability, the catalog's ISBN metadata invariant
and the append-only lending ledger consistent, and derives loan, overdue and
ranking views from that ledger.
"""

__version__ = "0.1.0"
