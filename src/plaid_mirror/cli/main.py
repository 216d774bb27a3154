"""Main CLI application for plaid-mirror.

This module provides the single entry point for all plaid-mirror commands:
linking institutions, managing items, reading Plaid data and syncing the
Airtable mirror.
"""

import logging
from typing import Annotated

import typer
from dotenv import load_dotenv

from ..logging import setup_logging
from .commands import items, link, sync, transactions

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="plaid-mirror",
    help="plaid-mirror: Link bank accounts with Plaid and mirror them to Airtable",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for plaid-mirror.

    Credentials are read from the environment (or a .env file in the current
    directory): PLAID_CLIENT_ID, PLAID_SECRET, PLAID_ENV, AIRTABLE_KEY and
    AIRTABLE_BASE_ID.

    Examples:
      plaid-mirror link                    # Link a new institution
      plaid-mirror sync transactions all   # Mirror every aliased item
    """
    load_dotenv()
    setup_logging(cli_mode=True, verbose=verbose)


app.command("link")(link.link)
app.command("tokens")(items.tokens)
app.command("alias")(items.alias)
app.command("aliases")(items.aliases)
app.command("unlink")(items.unlink)
app.command("institution")(items.institution)
app.command("accounts")(transactions.accounts)
app.command("transactions")(transactions.transactions)
app.add_typer(sync.app, name="sync", help="Mirror Plaid data into Airtable")


def main() -> None:
    """Entry point for the plaid-mirror CLI application."""
    app()


if __name__ == "__main__":
    main()
