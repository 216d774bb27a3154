"""Mirror synchronization commands.

Both commands accept an item ID, an alias, or ``all`` for every aliased item.
"""

import logging
from typing import Annotated

import typer

from ...exceptions import PlaidMirrorError
from ..context import build_context

app = typer.Typer(help="Mirror Plaid data into Airtable")
logger = logging.getLogger(__name__)


@app.command("transactions")
def sync_transactions(
    item: Annotated[str, typer.Argument(help="Item ID, alias, or 'all'")],
) -> None:
    """Create, update and delete Airtable rows to match Plaid transactions.

    Rows missing from Plaid are only deleted when dated within the last month.
    """
    try:
        ctx = build_context()
        result = ctx.orchestrator().sync_transactions(item)
    except PlaidMirrorError as e:
        logger.error(f"❌ Sync failed: {e}")
        raise typer.Exit(1) from e

    logger.info(
        f"✅ Sync completed: {result.created} created, "
        f"{result.updated} updated, {result.deleted} deleted"
    )
    if result.failed_items:
        failed = ", ".join(str(i) for i in result.failed_items)
        logger.warning(f"⚠️  Skipped items that failed to download: {failed}")
        raise typer.Exit(1)


@app.command("accounts")
def sync_accounts(
    item: Annotated[str, typer.Argument(help="Item ID, alias, or 'all'")],
) -> None:
    """Add Airtable rows for accounts that are not mirrored yet."""
    try:
        ctx = build_context()
        created = ctx.orchestrator().sync_accounts(item)
    except PlaidMirrorError as e:
        logger.error(f"❌ Account sync failed: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Created {len(created)} account rows")
