# ruff: noqa: S101,S106
"""Tests for the Plaid gateway and error classification."""

import json
from datetime import date
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from plaid.exceptions import ApiException

from plaid_mirror.config import PlaidConfig
from plaid_mirror.connectors.plaid_client import (
    PlaidGateway,
    TransactionsRequest,
    classify_api_exception,
    plaid_host,
)
from plaid_mirror.exceptions import PlaidApiError, PlaidErrorKind
from plaid_mirror.models import TokenPair


def api_exception(
    error_code: str | None = None,
    error_type: str = "ITEM_ERROR",
    status: int = 400,
) -> ApiException:
    exc = ApiException(status=status, reason="Bad Request")
    exc.body = json.dumps(
        {
            "error_type": error_type,
            "error_code": error_code,
            "error_message": f"{error_code} happened",
        }
    )
    return exc


class TestClassifyApiException:
    """Tests for translating SDK exceptions."""

    @pytest.mark.unit
    def test_item_login_required(self) -> None:
        error = classify_api_exception(api_exception("ITEM_LOGIN_REQUIRED"))

        assert error.kind is PlaidErrorKind.ITEM_LOGIN_REQUIRED
        assert error.requires_relink
        assert error.code == "ITEM_LOGIN_REQUIRED"
        assert error.status == 400
        assert str(error) == "ITEM_LOGIN_REQUIRED happened"

    @pytest.mark.unit
    def test_product_not_ready(self) -> None:
        error = classify_api_exception(api_exception("PRODUCT_NOT_READY"))

        assert error.kind is PlaidErrorKind.PRODUCT_NOT_READY
        assert not error.requires_relink

    @pytest.mark.unit
    def test_rate_limit_by_error_type(self) -> None:
        exc = api_exception("TRANSACTIONS_LIMIT", error_type="RATE_LIMIT_EXCEEDED")

        assert classify_api_exception(exc).kind is PlaidErrorKind.RATE_LIMIT

    @pytest.mark.unit
    def test_unreadable_body_is_unknown(self) -> None:
        exc = ApiException(status=500, reason="Server Error")
        exc.body = "<html>oops</html>"

        error = classify_api_exception(exc)

        assert error.kind is PlaidErrorKind.UNKNOWN
        assert error.code is None


class TestPlaidHost:
    """Tests for environment host selection."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("environment", "host"),
        [
            ("sandbox", "https://sandbox.plaid.com"),
            ("development", "https://development.plaid.com"),
            ("production", "https://production.plaid.com"),
        ],
    )
    def test_hosts(self, environment: str, host: str) -> None:
        assert plaid_host(environment) == host


class TestPlaidGateway:
    """Tests for PlaidGateway with a mocked SDK client."""

    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def gateway(self, client: MagicMock) -> PlaidGateway:
        config = PlaidConfig(
            client_id="test-client",
            secret="test-secret",
            max_retries=2,
            retry_delay=0.1,
        )
        return PlaidGateway(config, client=client)

    @pytest.mark.unit
    def test_fresh_link_token_requests_transactions(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        request_cls = mocker.patch(
            "plaid_mirror.connectors.plaid_client.LinkTokenCreateRequest"
        )
        client.link_token_create.return_value = SimpleNamespace(
            link_token="link-sandbox-1"
        )

        assert gateway.create_link_token() == "link-sandbox-1"

        kwargs = request_cls.call_args.kwargs
        assert "products" in kwargs
        assert "access_token" not in kwargs
        assert kwargs["client_name"] == "plaid-mirror"

    @pytest.mark.unit
    def test_relink_token_is_bound_to_access_token(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        request_cls = mocker.patch(
            "plaid_mirror.connectors.plaid_client.LinkTokenCreateRequest"
        )
        client.link_token_create.return_value = SimpleNamespace(
            link_token="link-sandbox-2"
        )

        gateway.create_link_token(access_token="access-1")

        kwargs = request_cls.call_args.kwargs
        assert kwargs["access_token"] == "access-1"
        assert "products" not in kwargs

    @pytest.mark.unit
    def test_empty_link_token_is_an_error(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        mocker.patch("plaid_mirror.connectors.plaid_client.LinkTokenCreateRequest")
        client.link_token_create.return_value = SimpleNamespace(link_token="")

        with pytest.raises(PlaidApiError):
            gateway.create_link_token()

    @pytest.mark.unit
    def test_exchange_public_token(
        self, gateway: PlaidGateway, client: MagicMock
    ) -> None:
        client.item_public_token_exchange.return_value = SimpleNamespace(
            item_id="item-1", access_token="access-1"
        )

        pair = gateway.exchange_public_token("public-sandbox-1")

        assert pair == TokenPair(item_id="item-1", access_token="access-1")

    @pytest.mark.unit
    def test_api_exception_is_classified(
        self, gateway: PlaidGateway, client: MagicMock
    ) -> None:
        client.accounts_get.side_effect = api_exception("ITEM_LOGIN_REQUIRED")

        with pytest.raises(PlaidApiError) as exc_info:
            gateway.get_accounts("access-1")

        assert exc_info.value.kind is PlaidErrorKind.ITEM_LOGIN_REQUIRED

    @pytest.mark.unit
    def test_transactions_retry_while_product_not_ready(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        sleep = mocker.patch("plaid_mirror.connectors.plaid_client.time.sleep")
        client.transactions_get.side_effect = [
            api_exception("PRODUCT_NOT_READY"),
            SimpleNamespace(
                transactions=[{"transaction_id": "t1"}], total_transactions=1
            ),
        ]

        page = gateway.get_transactions_page(
            TransactionsRequest(
                access_token="access-1",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 10, 19),
            )
        )

        assert page.total == 1
        assert len(page.transactions) == 1
        sleep.assert_called_once_with(0.1)

    @pytest.mark.unit
    def test_transactions_give_up_after_max_retries(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        mocker.patch("plaid_mirror.connectors.plaid_client.time.sleep")
        client.transactions_get.side_effect = api_exception("PRODUCT_NOT_READY")

        with pytest.raises(PlaidApiError) as exc_info:
            gateway.get_transactions_page(
                TransactionsRequest(
                    access_token="access-1",
                    start_date=date(2026, 1, 1),
                    end_date=date(2026, 10, 19),
                )
            )

        assert exc_info.value.kind is PlaidErrorKind.PRODUCT_NOT_READY
        assert client.transactions_get.call_count == 3

    @pytest.mark.unit
    def test_other_errors_are_not_retried(
        self, gateway: PlaidGateway, client: MagicMock, mocker: Any
    ) -> None:
        sleep = mocker.patch("plaid_mirror.connectors.plaid_client.time.sleep")
        client.transactions_get.side_effect = api_exception("ITEM_LOGIN_REQUIRED")

        with pytest.raises(PlaidApiError):
            gateway.get_transactions_page(
                TransactionsRequest(
                    access_token="access-1",
                    start_date=date(2026, 1, 1),
                    end_date=date(2026, 10, 19),
                )
            )

        assert client.transactions_get.call_count == 1
        sleep.assert_not_called()

    @pytest.mark.unit
    def test_get_item_returns_dict(
        self, gateway: PlaidGateway, client: MagicMock
    ) -> None:
        item = MagicMock()
        item.to_dict.return_value = {"item_id": "item-1", "institution_id": "ins_3"}
        client.item_get.return_value = SimpleNamespace(item=item)

        assert gateway.get_item("access-1")["institution_id"] == "ins_3"
