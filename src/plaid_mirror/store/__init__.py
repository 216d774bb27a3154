"""Remote tabular store holding the transaction and account mirror."""

from .airtable_store import AirtableStore
from .interface import StoredRow, TabularStore

__all__ = ["AirtableStore", "StoredRow", "TabularStore"]
