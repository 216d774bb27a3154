"""Airtable implementation of the mirror store.

Column layout of the ``Transactions`` table:

| Column | Content |
|---|---|
| PlaidID | Plaid transaction ID |
| AccountIDDedupe | Plaid account ID as text, used for matching |
| AccountID | Link to the ``Accounts`` row (created by typecast) |
| Amount, Name, MerchantName, Pending, DateTime | Transaction details |
| PlaidCategory1..3 | Category hierarchy |
| Address | Flattened merchant location |

Airtable omits empty cells from API responses, so every read falls back to
the field's empty value.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from pyairtable import Api
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import AirtableConfig
from ..exceptions import StoreError
from ..models import AccountRecord, TransactionRecord
from .interface import StoredRow, TabularStore

logger = logging.getLogger(__name__)


class AirtableStore(TabularStore):
    """Row access to one Airtable base."""

    def __init__(self, config: AirtableConfig, api: Api | None = None):
        if not config.api_key or not config.base_id:
            raise StoreError("Airtable API key and base ID are required")
        self.config = config
        self._api = api or Api(config.api_key)

    def _table(self, name: str) -> Any:
        return self._api.table(self.config.base_id, name)

    # Listing is idempotent, so transient failures are retried; writes are not.
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(requests.ConnectionError),
        reraise=True,
    )
    def _list_rows(self, table: str) -> list[dict[str, Any]]:
        return self._table(table).all()

    def list(self, table: str) -> list[StoredRow]:
        try:
            rows = self._list_rows(table)
        except requests.RequestException as e:
            raise StoreError(f"Failed to list {table}: {e}") from e
        logger.debug(f"Listed {len(rows)} rows from {table}")
        return [
            StoredRow(record_id=row["id"], fields=row.get("fields", {})) for row in rows
        ]

    def create(self, table: str, fields: dict[str, Any]) -> StoredRow:
        try:
            row = self._table(table).create(fields, typecast=True)
        except requests.RequestException as e:
            raise StoreError(f"Failed to create row in {table}: {e}") from e
        return StoredRow(record_id=row["id"], fields=row.get("fields", {}))

    def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        try:
            self._table(table).update(record_id, fields, typecast=True)
        except requests.RequestException as e:
            raise StoreError(f"Failed to update {record_id} in {table}: {e}") from e

    def delete(self, table: str, record_id: str) -> None:
        try:
            self._table(table).delete(record_id)
        except requests.RequestException as e:
            raise StoreError(f"Failed to delete {record_id} from {table}: {e}") from e


def transaction_to_fields(record: TransactionRecord) -> dict[str, Any]:
    """Map a transaction onto Transactions table columns."""
    return {
        "PlaidID": record.remote_id,
        "AccountIDDedupe": record.account_id,
        "AccountID": [record.account_id],
        "Amount": record.amount,
        "Name": record.name,
        "MerchantName": record.merchant_name,
        "Pending": record.pending,
        "DateTime": record.date,
        "PlaidCategory1": record.category_1,
        "PlaidCategory2": record.category_2,
        "PlaidCategory3": record.category_3,
        "Address": record.address,
    }


def transaction_from_row(row: StoredRow) -> TransactionRecord:
    """Map a Transactions table row back onto a mirror record."""
    f = row.fields
    return TransactionRecord(
        record_id=row.record_id,
        remote_id=str(f.get("PlaidID", "")),
        account_id=str(f.get("AccountIDDedupe", "")),
        amount=float(f.get("Amount") or 0.0),
        name=f.get("Name") or "",
        merchant_name=f.get("MerchantName") or "",
        pending=bool(f.get("Pending", False)),
        date=str(f.get("DateTime") or ""),
        category_1=f.get("PlaidCategory1") or "",
        category_2=f.get("PlaidCategory2") or "",
        category_3=f.get("PlaidCategory3") or "",
        address=f.get("Address") or "",
    )


def account_to_fields(record: AccountRecord) -> dict[str, Any]:
    return {"AccountID": record.account_id, "Name": record.name}


def account_from_row(row: StoredRow) -> AccountRecord:
    return AccountRecord(
        record_id=row.record_id,
        account_id=str(row.fields.get("AccountID", "")),
        name=row.fields.get("Name") or "",
    )
