"""plaid-mirror CLI package.

Commands for linking institutions, managing linked items, reading Plaid data
and mirroring it into Airtable.
"""

from .main import app, main

__all__ = ["app", "main"]
