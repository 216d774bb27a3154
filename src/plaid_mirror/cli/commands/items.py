"""Commands for inspecting and managing linked items."""

import json
import logging
from typing import Annotated

import typer

from ...exceptions import PlaidMirrorError
from ..context import build_context

logger = logging.getLogger(__name__)


def tokens() -> None:
    """Print stored access tokens, keyed by alias where one exists."""
    try:
        ctx = build_context()
    except PlaidMirrorError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    typer.echo(json.dumps(ctx.items.tokens_by_display_name(), indent=2))


def alias(
    item_id: Annotated[str, typer.Argument(help="Item ID to name")],
    name: Annotated[str, typer.Argument(help="Alias made of [0-9A-Za-z_]")],
) -> None:
    """Give a linked item a friendly alias."""
    try:
        ctx = build_context()
        ctx.items.set_alias(item_id, name)
    except (PlaidMirrorError, ValueError) as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e


def aliases() -> None:
    """Print every alias and the item ID it points to."""
    try:
        ctx = build_context()
    except PlaidMirrorError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    typer.echo(json.dumps(ctx.items.aliases(), indent=2))


def unlink(
    item: Annotated[str, typer.Argument(help="Item ID or alias")],
) -> None:
    """Remove an item at Plaid and forget its token and alias."""
    try:
        ctx = build_context()
        ref = ctx.items.resolve(item)
        ctx.gateway.remove_item(ctx.items.token_for(ref.item_id))
        ctx.items.remove(ref)
    except PlaidMirrorError as e:
        logger.error(f"❌ Unlink failed: {e}")
        raise typer.Exit(1) from e
    logger.info(f"✅ Unlinked {ref}")


def institution(
    item: Annotated[str, typer.Argument(help="Item ID or alias")],
) -> None:
    """Print the institution and metadata of a linked item."""
    try:
        ctx = build_context()
        ref = ctx.items.resolve(item)
        details = ctx.gateway.get_item(ctx.items.token_for(ref.item_id))
    except PlaidMirrorError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    typer.echo(json.dumps(details, indent=2, default=str))
