"""Shared pytest fixtures for plaid-mirror tests.

Provides settings isolation, an in-memory tabular store and a scripted Plaid
gateway so sync logic can be exercised without network access.
"""

from collections.abc import Generator
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from plaid_mirror.config import (
    AirtableConfig,
    MirrorSettings,
    PlaidConfig,
    SyncConfig,
    clear_settings_cache,
)
from plaid_mirror.connectors.plaid_client import TransactionsPage, TransactionsRequest
from plaid_mirror.exceptions import StoreError
from plaid_mirror.models import TokenPair, TransactionRecord
from plaid_mirror.store.interface import StoredRow, TabularStore

LEGACY_ENV_VARS = (
    "PLAID_CLIENT_ID",
    "PLAID_SECRET",
    "PLAID_ENV",
    "AIRTABLE_KEY",
    "AIRTABLE_BASE_ID",
)


def make_record(
    remote_id: str,
    account_id: str = "acc-1",
    date: str = "2026-10-10",
    pending: bool = False,
    address: str = "",
    record_id: str | None = None,
    amount: float = 10.0,
    name: str = "Coffee Shop",
) -> TransactionRecord:
    """Build a transaction record with sensible defaults."""
    return TransactionRecord(
        record_id=record_id,
        remote_id=remote_id,
        account_id=account_id,
        amount=amount,
        name=name,
        pending=pending,
        date=date,
        address=address,
    )


def plaid_transaction(
    transaction_id: str,
    account_id: str = "acc-1",
    tx_date: date = date(2026, 10, 10),
    pending: bool = False,
    amount: float = 10.0,
) -> dict[str, Any]:
    """A Plaid transaction shaped like the SDK's ``to_dict`` output."""
    return {
        "transaction_id": transaction_id,
        "account_id": account_id,
        "amount": amount,
        "name": "Coffee Shop",
        "merchant_name": "Coffee Shop",
        "pending": pending,
        "date": tx_date,
        "category": ["Food and Drink", "Restaurants", "Coffee Shop"],
        "location": {"address": "1 Main St", "city": "Springfield", "region": "IL"},
    }


class InMemoryStore(TabularStore):
    """Tabular store backed by dicts that records every write in order."""

    def __init__(self, fail_on: str | None = None):
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.operations: list[tuple[str, str, str]] = []
        self.fail_on = fail_on
        self._next_id = 0

    def seed(self, table: str, fields: dict[str, Any]) -> str:
        self._next_id += 1
        record_id = f"rec{self._next_id:04d}"
        self.tables.setdefault(table, {})[record_id] = dict(fields)
        return record_id

    def _check(self, op: str) -> None:
        if self.fail_on == op:
            raise StoreError(f"{op} failed")

    def list(self, table: str) -> list[StoredRow]:
        self._check("list")
        return [
            StoredRow(record_id=rid, fields=dict(fields))
            for rid, fields in self.tables.get(table, {}).items()
        ]

    def create(self, table: str, fields: dict[str, Any]) -> StoredRow:
        self._check("create")
        record_id = self.seed(table, fields)
        self.operations.append(("create", table, record_id))
        return StoredRow(record_id=record_id, fields=dict(fields))

    def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        self._check("update")
        self.tables[table][record_id].update(fields)
        self.operations.append(("update", table, record_id))

    def delete(self, table: str, record_id: str) -> None:
        self._check("delete")
        del self.tables[table][record_id]
        self.operations.append(("delete", table, record_id))


class FakeGateway:
    """Scripted stand-in for ``PlaidGateway``.

    Transactions are served per access token and sliced by offset and count.
    Errors queued for a token are raised, one per call, before serving data.
    ``reported_totals`` overrides the total a token's pages report.
    """

    def __init__(
        self,
        transactions: dict[str, list[dict[str, Any]]] | None = None,
        accounts: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self.transactions = transactions or {}
        self.accounts = accounts or {}
        self.errors: dict[str, list[Exception]] = {}
        self.reported_totals: dict[str, int] = {}
        self.requests: list[TransactionsRequest] = []
        self.link_token_calls: list[str | None] = []

    def fail(self, access_token: str, *errors: Exception) -> None:
        self.errors.setdefault(access_token, []).extend(errors)

    def _raise_queued(self, access_token: str) -> None:
        queued = self.errors.get(access_token)
        if queued:
            raise queued.pop(0)

    def get_transactions_page(self, request: TransactionsRequest) -> TransactionsPage:
        self.requests.append(request)
        self._raise_queued(request.access_token)
        rows = self.transactions.get(request.access_token, [])
        if request.account_ids:
            rows = [r for r in rows if r["account_id"] in request.account_ids]
        page = rows[request.offset : request.offset + request.count]
        total = self.reported_totals.get(request.access_token, len(rows))
        return TransactionsPage(transactions=page, total=total)

    def get_accounts(self, access_token: str) -> list[dict[str, Any]]:
        self._raise_queued(access_token)
        return self.accounts.get(access_token, [])

    def create_link_token(self, access_token: str | None = None) -> str:
        self.link_token_calls.append(access_token)
        return "link-sandbox-token"

    def exchange_public_token(self, public_token: str) -> TokenPair:
        return TokenPair(item_id="item-new", access_token="access-new")


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[Path, None, None]:
    """Keep real credentials and the user's data directory out of tests."""
    for name in LEGACY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    data_dir = tmp_path / "data"
    monkeypatch.setenv("PLAID_MIRROR_DATA_DIR", str(data_dir))
    monkeypatch.setenv("PLAID_MIRROR_LOG_TO_FILE", "false")

    clear_settings_cache()
    yield data_dir
    clear_settings_cache()


@pytest.fixture
def settings(tmp_path: Path) -> MirrorSettings:
    """Settings with dummy credentials and a fixed sync start date."""
    return MirrorSettings(
        plaid=PlaidConfig(client_id="test-client", secret="test-secret"),
        airtable=AirtableConfig(api_key="key-test", base_id="app-test"),
        sync=SyncConfig(
            start_date=date(2026, 1, 1),
            sandbox_item_id="item-sandbox",
        ),
        data_dir=tmp_path / "data",
    )
