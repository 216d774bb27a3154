# ruff: noqa: S101,S106
"""Tests for the plaid-mirror CLI.

Tests CLI-specific behaviour: argument parsing, output and exit codes. The
service objects are replaced with mocks; sync logic is covered in
test_orchestrator.py.
"""

import json
from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from conftest import make_record
from typer.testing import CliRunner

from plaid_mirror.cli.main import app
from plaid_mirror.exceptions import LinkTimeoutError, StoreError
from plaid_mirror.models import AccountRecord, TokenPair
from plaid_mirror.sync.orchestrator import SyncResult
from plaid_mirror.utils.item_store import ItemRef, ItemStore

COMMAND_MODULES = ("link", "items", "transactions", "sync")


class TestCLI:
    """Test CLI commands against a mocked application context."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        """Create a CLI runner for testing."""
        return CliRunner()

    @pytest.fixture(autouse=True)
    def mock_setup_logging(self, mocker: Any) -> MagicMock:
        """Mock setup_logging and dotenv loading for every command."""
        mocker.patch("plaid_mirror.cli.main.load_dotenv")
        return mocker.patch("plaid_mirror.cli.main.setup_logging")

    @pytest.fixture
    def items(self, tmp_path: Path) -> ItemStore:
        return ItemStore(
            tmp_path,
            tokens={"item-1": "access-1", "item-2": "access-2"},
            aliases={"chase": "item-1"},
        )

    @pytest.fixture
    def ctx(self, mocker: Any, items: ItemStore) -> MagicMock:
        ctx = MagicMock()
        ctx.items = items
        for module in COMMAND_MODULES:
            mocker.patch(
                f"plaid_mirror.cli.commands.{module}.build_context", return_value=ctx
            )
        return ctx

    @pytest.mark.unit
    def test_verbose_flag(
        self, runner: CliRunner, ctx: MagicMock, mock_setup_logging: MagicMock
    ) -> None:
        result = runner.invoke(app, ["--verbose", "aliases"])

        assert result.exit_code == 0
        mock_setup_logging.assert_called_once_with(cli_mode=True, verbose=True)

    @pytest.mark.unit
    def test_tokens(self, runner: CliRunner, ctx: MagicMock) -> None:
        result = runner.invoke(app, ["tokens"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"chase": "access-1", "item-2": "access-2"}

    @pytest.mark.unit
    def test_aliases(self, runner: CliRunner, ctx: MagicMock) -> None:
        result = runner.invoke(app, ["aliases"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"chase": "item-1"}

    @pytest.mark.unit
    def test_alias_sets_name(
        self, runner: CliRunner, ctx: MagicMock, items: ItemStore
    ) -> None:
        result = runner.invoke(app, ["alias", "item-2", "amex"])

        assert result.exit_code == 0
        assert items.resolve("amex") == ItemRef("item-2", "amex")

    @pytest.mark.unit
    def test_alias_rejects_invalid_name(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        result = runner.invoke(app, ["alias", "item-2", "my-bank"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_link_new_item_with_alias(
        self, runner: CliRunner, ctx: MagicMock, items: ItemStore
    ) -> None:
        ctx.broker.link.return_value = TokenPair(
            item_id="item-new", access_token="access-new"
        )

        result = runner.invoke(app, ["link"], input="bad alias\nchecking\n")

        assert result.exit_code == 0
        assert items.token_for("item-new") == "access-new"
        assert items.alias_for("item-new") == "checking"
        assert ItemStore.load(items.data_dir).has_token("item-new")

    @pytest.mark.unit
    def test_link_new_item_without_alias(
        self, runner: CliRunner, ctx: MagicMock, items: ItemStore
    ) -> None:
        ctx.broker.link.return_value = TokenPair(
            item_id="item-new", access_token="access-new"
        )

        result = runner.invoke(app, ["link"], input="\n")

        assert result.exit_code == 0
        assert items.alias_for("item-new") is None

    @pytest.mark.unit
    def test_link_existing_item_relinks(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        result = runner.invoke(app, ["link", "chase", "--port", "9191"])

        assert result.exit_code == 0
        ctx.broker.relink.assert_called_once_with("item-1", 9191)
        ctx.broker.link.assert_not_called()

    @pytest.mark.unit
    def test_link_timeout_exits_nonzero(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        ctx.broker.link.side_effect = LinkTimeoutError("too slow")

        result = runner.invoke(app, ["link"])

        assert result.exit_code == 1
        assert "Traceback" not in result.output

    @pytest.mark.unit
    def test_transactions_csv(self, runner: CliRunner, ctx: MagicMock) -> None:
        fetch = ctx.orchestrator.return_value.fetch_item_transactions
        fetch.return_value = [make_record("t1", date="2026-10-02", amount=4.5)]

        result = runner.invoke(
            app,
            [
                "transactions",
                "chase",
                "--from",
                "2026-10-01",
                "--to",
                "2026-10-05",
                "--output-format",
                "csv",
            ],
        )

        assert result.exit_code == 0
        assert result.stdout.splitlines() == [
            "Date,Amount,Description",
            "2026-10-02,4.500000,Coffee Shop",
        ]
        ctx.orchestrator.assert_called_once_with(with_store=False)
        fetch.assert_called_once_with(
            ItemRef("item-1", "chase"),
            start_date=date(2026, 10, 1),
            end_date=date(2026, 10, 5),
            account_id=None,
        )

    @pytest.mark.unit
    def test_transactions_invalid_format(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        result = runner.invoke(app, ["transactions", "chase", "-o", "xml"])

        assert result.exit_code == 2

    @pytest.mark.unit
    def test_transactions_unknown_item(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        result = runner.invoke(app, ["transactions", "wells"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_accounts(self, runner: CliRunner, ctx: MagicMock) -> None:
        ctx.orchestrator.return_value.fetch_accounts.return_value = [
            AccountRecord(account_id="acc-1", name="Checking")
        ]

        result = runner.invoke(app, ["accounts", "chase"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"account_id": "acc-1", "name": "Checking"}
        ]

    @pytest.mark.unit
    def test_sync_transactions(self, runner: CliRunner, ctx: MagicMock) -> None:
        sync = ctx.orchestrator.return_value.sync_transactions
        sync.return_value = SyncResult(created=2, updated=1, deleted=0)

        result = runner.invoke(app, ["sync", "transactions", "all"])

        assert result.exit_code == 0
        sync.assert_called_once_with("all")

    @pytest.mark.unit
    def test_sync_transactions_with_failed_items(
        self, runner: CliRunner, ctx: MagicMock
    ) -> None:
        ctx.orchestrator.return_value.sync_transactions.return_value = SyncResult(
            created=1, failed_items=[ItemRef("item-2")]
        )

        result = runner.invoke(app, ["sync", "transactions", "all"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_sync_store_error(self, runner: CliRunner, ctx: MagicMock) -> None:
        ctx.orchestrator.return_value.sync_transactions.side_effect = StoreError(
            "Airtable unavailable"
        )

        result = runner.invoke(app, ["sync", "transactions", "chase"])

        assert result.exit_code == 1
        assert "Traceback" not in result.output

    @pytest.mark.unit
    def test_sync_accounts(self, runner: CliRunner, ctx: MagicMock) -> None:
        ctx.orchestrator.return_value.sync_accounts.return_value = []

        result = runner.invoke(app, ["sync", "accounts", "chase"])

        assert result.exit_code == 0
        ctx.orchestrator.return_value.sync_accounts.assert_called_once_with("chase")

    @pytest.mark.unit
    def test_unlink(
        self, runner: CliRunner, ctx: MagicMock, items: ItemStore
    ) -> None:
        result = runner.invoke(app, ["unlink", "chase"])

        assert result.exit_code == 0
        ctx.gateway.remove_item.assert_called_once_with("access-1")
        assert not items.has_token("item-1")
        assert items.aliases() == {}

    @pytest.mark.unit
    def test_institution(self, runner: CliRunner, ctx: MagicMock) -> None:
        ctx.gateway.get_item.return_value = {
            "item_id": "item-1",
            "institution_id": "ins_3",
        }

        result = runner.invoke(app, ["institution", "chase"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["institution_id"] == "ins_3"
        ctx.gateway.get_item.assert_called_once_with("access-1")


class TestCLIConfiguration:
    """Commands fail cleanly without credentials."""

    @pytest.mark.unit
    def test_missing_credentials_exit_nonzero(self, mocker: Any) -> None:
        mocker.patch("plaid_mirror.cli.main.load_dotenv")
        mocker.patch("plaid_mirror.cli.main.setup_logging")

        result = CliRunner().invoke(app, ["aliases"])

        assert result.exit_code == 1
        assert "Traceback" not in result.output
