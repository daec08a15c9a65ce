"""Domain port definitions for adapters."""

from __future__ import annotations

from .tables import Table, TableStore

__all__ = [
    "Table",
    "TableStore",
]
