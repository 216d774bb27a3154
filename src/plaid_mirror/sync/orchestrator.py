"""Fetch transactions for linked items and apply them to the Airtable mirror.

Sync flow:
1. Resolve the requested item (or ``all``) and drop the sandbox item
2. Fetch every item's transactions in parallel, one thread per item, each
   guarded by the relink-on-expired-login wrapper
3. List the mirror once
4. Partition both sides by account and reconcile
5. Apply the plan sequentially: deletes, then creates, then updates

Writes are sequential because Airtable offers no transactions or optimistic
locking; interleaving writes could lose updates. A failed item fetch is logged
and skipped, while any store error aborts the run.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime

from ..config import MirrorSettings
from ..connectors.pagination import all_transactions
from ..connectors.plaid_client import PlaidGateway, TransactionsRequest
from ..link.broker import LinkBroker
from ..link.relink import with_relink_on_auth_error
from ..models import AccountRecord, ReconciliationPlan, TransactionRecord
from ..reconcile.engine import (
    find_duplicates,
    merge_plans,
    partition_by_account,
    reconcile,
)
from ..store.airtable_store import (
    account_from_row,
    account_to_fields,
    transaction_from_row,
    transaction_to_fields,
)
from ..store.interface import TabularStore
from ..utils.item_store import ItemRef, ItemStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counts of what a sync run wrote, plus items whose fetch failed."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed_items: list[ItemRef] = field(default_factory=list)

    @property
    def total_writes(self) -> int:
        return self.created + self.updated + self.deleted


class SyncOrchestrator:
    """Coordinates fetching, reconciliation and mirror writes."""

    def __init__(
        self,
        settings: MirrorSettings,
        gateway: PlaidGateway,
        items: ItemStore,
        broker: LinkBroker,
        store: TabularStore | None = None,
    ):
        self.settings = settings
        self.gateway = gateway
        self.items = items
        self.broker = broker
        self.store = store

    def _require_store(self) -> TabularStore:
        if self.store is None:
            raise ValueError("This operation needs a mirror store")
        return self.store

    def resolve_items(self, item_or_alias: str) -> list[ItemRef]:
        """Resolve an alias, item ID or ``all``, skipping the sandbox item.

        Raises:
            UnknownItemError: If the reference is unknown
        """
        sandbox_id = self.settings.sync.sandbox_item_id
        resolved = []
        for item in self.items.resolve_many(item_or_alias):
            if sandbox_id and item.item_id == sandbox_id:
                logger.debug(f"Skipping sandbox item {item}")
                continue
            resolved.append(item)
        return resolved

    def fetch_item_transactions(
        self,
        item: ItemRef,
        start_date: date | None = None,
        end_date: date | None = None,
        account_id: str | None = None,
    ) -> list[TransactionRecord]:
        """Fetch all transactions for one item, relinking once if needed.

        Args:
            item: Item to fetch
            start_date: First day; defaults to the configured sync start
            end_date: Last day; defaults to today
            account_id: Restrict to a single account

        Returns:
            list[TransactionRecord]: Source records in server order
        """
        start = start_date or self.settings.sync_start_date(item.alias)
        end = end_date or date.today()

        def fetch() -> list[TransactionRecord]:
            request = TransactionsRequest(
                access_token=self.items.token_for(item.item_id),
                start_date=start,
                end_date=end,
                account_ids=[account_id] if account_id else None,
                count=self.settings.plaid.page_size,
            )
            return [
                TransactionRecord.from_plaid(tx)
                for tx in all_transactions(self.gateway, request)
            ]

        return with_relink_on_auth_error(
            item, fetch, self.broker, self.settings.link.port
        )

    def fetch_transactions(
        self, items: list[ItemRef]
    ) -> tuple[list[TransactionRecord], list[ItemRef]]:
        """Fetch every item's transactions concurrently.

        Returns:
            tuple: (all fetched records, items whose fetch failed)
        """
        lock = threading.Lock()
        fetched: list[TransactionRecord] = []
        failed: list[ItemRef] = []

        def worker(item: ItemRef) -> None:
            logger.info(f"Downloading transactions for {item}")
            try:
                records = self.fetch_item_transactions(item)
            except Exception as e:
                logger.error(f"❌ Failed to download transactions for {item}: {e}")
                with lock:
                    failed.append(item)
                return
            with lock:
                fetched.extend(records)
            logger.info(f"✅ Downloaded {len(records)} transactions for {item}")

        if items:
            with ThreadPoolExecutor(
                max_workers=len(items), thread_name_prefix="fetch"
            ) as pool:
                list(pool.map(worker, items))

        return fetched, failed

    def list_mirror_transactions(self) -> list[TransactionRecord]:
        store = self._require_store()
        rows = store.list(self.settings.airtable.transactions_table)
        return [transaction_from_row(row) for row in rows]

    def plan(
        self,
        source: list[TransactionRecord],
        mirror: list[TransactionRecord],
        now: datetime | None = None,
    ) -> ReconciliationPlan:
        partitioned = partition_by_account(source)
        plans = reconcile(partitioned, partition_by_account(mirror), now=now)
        for account_id, plan in plans.items():
            counts = {action.value: n for action, n in plan.summary().items()}
            logger.debug(f"Account {account_id}: {counts}")

        duplicates = find_duplicates(mirror, accounts=partitioned)
        if duplicates:
            logger.warning(f"Removing {len(duplicates)} duplicate mirror rows")
        return merge_plans(
            [*plans.values(), ReconciliationPlan(to_delete=duplicates)]
        )

    def sync_transactions(
        self, item_or_alias: str, now: datetime | None = None
    ) -> SyncResult:
        """Bring the mirror in line with Plaid for the given item(s).

        Raises:
            UnknownItemError: If the reference is unknown (before any fetch)
            StoreError: If listing or writing the mirror fails
        """
        items = self.resolve_items(item_or_alias)
        source, failed = self.fetch_transactions(items)

        logger.info("Syncing all transactions")
        mirror = self.list_mirror_transactions()
        plan = self.plan(source, mirror, now=now)

        result = self.apply_plan(plan)
        result.failed_items = failed
        return result

    def apply_plan(self, plan: ReconciliationPlan) -> SyncResult:
        """Write a plan to the mirror: deletes, then creates, then updates.

        The first store error aborts the remaining writes.
        """
        store = self._require_store()
        table = self.settings.airtable.transactions_table
        result = SyncResult()

        for record in plan.to_delete:
            if record.record_id is None:
                raise ValueError(f"Cannot delete {record.remote_id}: no record ID")
            store.delete(table, record.record_id)
            result.deleted += 1
        if result.deleted:
            logger.info(f"Deleted {result.deleted} transactions")

        total = len(plan.to_create)
        for record in plan.to_create:
            store.create(table, transaction_to_fields(record))
            result.created += 1
            logger.info(f"Created {result.created}/{total} transactions")

        for record in plan.to_update:
            if record.record_id is None:
                raise ValueError(f"Cannot update {record.remote_id}: no record ID")
            store.update(table, record.record_id, transaction_to_fields(record))
            result.updated += 1
        if result.updated:
            logger.info(f"Updated {result.updated} transactions")

        return result

    def fetch_accounts(self, item: ItemRef) -> list[AccountRecord]:
        """List an item's accounts, relinking once if needed."""

        def fetch() -> list[AccountRecord]:
            token = self.items.token_for(item.item_id)
            accounts = self.gateway.get_accounts(token)
            return [AccountRecord.from_plaid(account) for account in accounts]

        return with_relink_on_auth_error(
            item, fetch, self.broker, self.settings.link.port
        )

    def sync_accounts(self, item_or_alias: str) -> list[AccountRecord]:
        """Create mirror rows for accounts not mirrored yet.

        Existing account rows are never modified or removed.

        Returns:
            list[AccountRecord]: The account rows that were created
        """
        store = self._require_store()
        table = self.settings.airtable.accounts_table
        items = self.resolve_items(item_or_alias)

        existing = {account_from_row(row).account_id for row in store.list(table)}
        created: list[AccountRecord] = []

        for item in items:
            logger.info(f"Syncing accounts for {item}")
            for account in self.fetch_accounts(item):
                if account.account_id in existing:
                    continue
                row = store.create(table, account_to_fields(account))
                existing.add(account.account_id)
                created.append(account.model_copy(update={"record_id": row.record_id}))
                logger.info(f"Created account {account.name or account.account_id}")

        return created
