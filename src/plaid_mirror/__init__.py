"""plaid-mirror: Plaid-linked bank transactions mirrored into Airtable.

This package provides:
- An interactive Plaid Link broker served from a local callback endpoint
- Paginated transaction and account extraction through the Plaid SDK
- A reconciliation engine that keeps an Airtable mirror in sync
- A CLI for linking, listing and syncing institutions
"""

__version__ = "0.1.0"
