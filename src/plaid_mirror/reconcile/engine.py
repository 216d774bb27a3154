"""Compute the writes that bring the Airtable mirror in line with Plaid.

For each account, source records (fresh from Plaid) are compared with mirror
records (currently stored) by Plaid transaction ID:

- in source only → create
- in both, ``pending`` or ``address`` changed → update, keeping the mirror's
  record ID so the same stored row is rewritten
- in mirror only and dated after the deletion cutoff → delete

Amount, name, date and categories are treated as immutable once recorded.

When the mirror holds several rows for one account and Plaid ID, all but the
last are deleted.

The cutoff is one calendar month before now. A mirror record older than that
which is missing from the feed is left alone: the feed's date window may not
cover it, so its absence says nothing. Recent absences are trusted, since
they come from pending transactions settling under a new ID or from Plaid
dropping a transaction.
"""

import calendar
import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime

from ..models import DATE_FORMAT, ReconciliationPlan, TransactionRecord

logger = logging.getLogger(__name__)

RecordsById = Mapping[str, TransactionRecord]
RecordsByAccount = Mapping[str, RecordsById]


def deletion_cutoff(now: datetime | None = None) -> date:
    """Return the date one calendar month before ``now``.

    The day is clamped to the length of the previous month, so March 31st
    maps to the last day of February.
    """
    today = (now or datetime.now()).date()
    if today.month == 1:
        year, month = today.year - 1, 12
    else:
        year, month = today.year, today.month - 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def partition_by_account(
    records: Iterable[TransactionRecord],
) -> dict[str, dict[str, TransactionRecord]]:
    """Group records by account ID, then by Plaid transaction ID.

    A later record with the same key replaces an earlier one.
    """
    partitioned: dict[str, dict[str, TransactionRecord]] = {}
    for record in records:
        partitioned.setdefault(record.account_id, {})[record.remote_id] = record
    return partitioned


def find_duplicates(
    records: Iterable[TransactionRecord], accounts: Iterable[str] | None = None
) -> list[TransactionRecord]:
    """Return the mirror rows made redundant by a later row with the same key.

    ``partition_by_account`` keeps the last row per account and Plaid ID; every
    earlier row with that key is returned here so it can be deleted. Rows left
    behind by an interrupted run are the usual source.

    Args:
        records: Mirror records in store order
        accounts: Limit the result to these account IDs
    """
    wanted = set(accounts) if accounts is not None else None
    kept: dict[tuple[str, str], TransactionRecord] = {}
    duplicates: list[TransactionRecord] = []
    for record in records:
        if wanted is not None and record.account_id not in wanted:
            continue
        key = (record.account_id, record.remote_id)
        if key in kept:
            duplicates.append(kept[key])
        kept[key] = record
    return duplicates


def reconcile_account(
    source: RecordsById,
    mirror: RecordsById,
    now: datetime | None = None,
) -> ReconciliationPlan:
    """Plan the writes for a single account.

    Args:
        source: Freshly fetched records keyed by Plaid transaction ID
        mirror: Stored records keyed by Plaid transaction ID
        now: Reference time for the deletion cutoff

    Returns:
        ReconciliationPlan: Disjoint create, update and delete lists
    """
    plan = ReconciliationPlan()
    cutoff = deletion_cutoff(now)

    for remote_id in sorted(source):
        record = source[remote_id]
        existing = mirror.get(remote_id)
        if existing is None:
            plan.to_create.append(record)
        elif existing.mutable_fields() != record.mutable_fields():
            plan.to_update.append(record.with_record_id(existing.record_id))

    for remote_id in sorted(mirror):
        if remote_id in source:
            continue
        record = mirror[remote_id]
        recorded_on = _parse_date(record)
        if recorded_on is not None and recorded_on > cutoff:
            plan.to_delete.append(record)

    return plan


def reconcile(
    source: RecordsByAccount,
    mirror: RecordsByAccount,
    now: datetime | None = None,
) -> dict[str, ReconciliationPlan]:
    """Plan the writes for every account present in the fetched records.

    Mirror-only accounts are skipped: they belong to items that were not
    fetched in this run (or whose fetch failed), so nothing can be concluded
    about their transactions.

    Returns:
        dict: Account ID → plan, only for accounts with something to do
    """
    plans: dict[str, ReconciliationPlan] = {}
    for account_id in sorted(source):
        plan = reconcile_account(
            source[account_id], mirror.get(account_id, {}), now=now
        )
        if not plan.is_empty:
            plans[account_id] = plan
    return plans


def merge_plans(plans: Iterable[ReconciliationPlan]) -> ReconciliationPlan:
    merged = ReconciliationPlan()
    for plan in plans:
        merged = merged.merge(plan)
    return merged


def _parse_date(record: TransactionRecord) -> date | None:
    try:
        return datetime.strptime(record.date, DATE_FORMAT).date()
    except ValueError:
        # Never delete on the strength of a date we cannot read
        logger.warning(
            f"Skipping deletion check for {record.remote_id} in account "
            f"{record.account_id}: unparseable date {record.date!r}"
        )
        return None
