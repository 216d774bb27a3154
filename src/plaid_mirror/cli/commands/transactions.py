"""Commands that read accounts and transactions straight from Plaid."""

import json
import logging
from datetime import datetime
from typing import Annotated

import typer

from ...exceptions import PlaidMirrorError
from ...utils.serializers import get_serializer
from ..context import build_context

logger = logging.getLogger(__name__)


def accounts(
    item: Annotated[str, typer.Argument(help="Item ID or alias")],
) -> None:
    """Print the accounts of a linked item as JSON."""
    try:
        ctx = build_context()
        orchestrator = ctx.orchestrator(with_store=False)
        records = orchestrator.fetch_accounts(ctx.items.resolve(item))
    except PlaidMirrorError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    rows = [r.model_dump(exclude={"record_id"}) for r in records]
    typer.echo(json.dumps(rows, indent=2))


def transactions(
    item: Annotated[str, typer.Argument(help="Item ID or alias")],
    from_date: Annotated[
        datetime | None,
        typer.Option("--from", formats=["%Y-%m-%d"], help="First day (YYYY-MM-DD)"),
    ] = None,
    to_date: Annotated[
        datetime | None,
        typer.Option("--to", formats=["%Y-%m-%d"], help="Last day (YYYY-MM-DD)"),
    ] = None,
    account_id: Annotated[
        str | None,
        typer.Option("--account-id", help="Only this account"),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--output-format", "-o", help="Output format: json or csv"),
    ] = "json",
) -> None:
    """Print an item's transactions in the given date range."""
    try:
        serializer = get_serializer(output_format)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--output-format") from e

    try:
        ctx = build_context()
        orchestrator = ctx.orchestrator(with_store=False)
        records = orchestrator.fetch_item_transactions(
            ctx.items.resolve(item),
            start_date=from_date.date() if from_date else None,
            end_date=to_date.date() if to_date else None,
            account_id=account_id,
        )
    except PlaidMirrorError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    typer.echo(serializer.serialize(records), nl=False)
