"""Reconciliation of fetched transactions against the stored mirror."""

from .engine import (
    deletion_cutoff,
    find_duplicates,
    merge_plans,
    partition_by_account,
    reconcile,
    reconcile_account,
)

__all__ = [
    "deletion_cutoff",
    "find_duplicates",
    "merge_plans",
    "partition_by_account",
    "reconcile",
    "reconcile_account",
]
