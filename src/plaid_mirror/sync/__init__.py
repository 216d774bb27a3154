"""Sync orchestration between Plaid and the mirror store."""

from .orchestrator import SyncOrchestrator, SyncResult

__all__ = ["SyncOrchestrator", "SyncResult"]
