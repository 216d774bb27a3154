"""Link and relink commands."""

import logging
from typing import Annotated

import typer

from ...exceptions import PlaidMirrorError
from ...utils.item_store import validate_alias
from ..context import AppContext, build_context

logger = logging.getLogger(__name__)


def link(
    item: Annotated[
        str | None,
        typer.Argument(
            help="Item ID or alias to relink; omit to link a new institution"
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", help="Local port for the Plaid Link page"),
    ] = None,
) -> None:
    """Link a bank account, or relink one whose login has expired.

    After a fresh link you are asked for an optional alias, which can be used
    instead of the item ID in every other command.
    """
    try:
        ctx = build_context()
        if item:
            ref = ctx.items.resolve(item)
            ctx.broker.relink(ref.item_id, port)
            logger.info(f"✅ Relinked {ref}")
            return

        pair = ctx.broker.link(port)
        ctx.items.set_token(pair.item_id, pair.access_token)
        ctx.items.save()
        logger.info(f"✅ Linked new item {pair.item_id}")
    except PlaidMirrorError as e:
        logger.error(f"❌ Link failed: {e}")
        raise typer.Exit(1) from e

    _prompt_for_alias(ctx, pair.item_id)


def _prompt_for_alias(ctx: AppContext, item_id: str) -> None:
    while True:
        alias = typer.prompt(
            "Give this item an alias (leave blank to skip)",
            default="",
            show_default=False,
        ).strip()
        if not alias:
            return
        try:
            validate_alias(alias)
        except ValueError as e:
            logger.warning(f"⚠️  {e}")
            continue
        ctx.items.set_alias(item_id, alias)
        return
