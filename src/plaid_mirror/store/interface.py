"""Abstract interface for the remote tabular store holding the mirror.

The mirror is only ever listed, created, updated and deleted row by row, so
the interface is deliberately that small. Rows carry a storage identity
(``record_id``) assigned by the store, distinct from any domain ID stored in
their fields.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class StoredRow:
    """One row as the store returns it."""

    record_id: str
    fields: dict[str, Any] = field(default_factory=dict)


class TabularStore(ABC):
    """Row-level access to named tables.

    Implementations raise ``StoreError`` for any failure.
    """

    @abstractmethod
    def list(self, table: str) -> list[StoredRow]:
        """Return every row in ``table``."""

    @abstractmethod
    def create(self, table: str, fields: dict[str, Any]) -> StoredRow:
        """Insert a row and return it with its new record ID."""

    @abstractmethod
    def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given fields of an existing row."""

    @abstractmethod
    def delete(self, table: str, record_id: str) -> None:
        """Remove a row."""
