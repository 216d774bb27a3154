"""Plaid API gateway using straightforward SDK calls.

This module wraps the Plaid Python SDK with the handful of endpoints the
application needs and translates ``ApiException`` into ``PlaidApiError`` with
a classified ``PlaidErrorKind``, so no call site has to inspect raw error
bodies.
"""

import json
import logging
import socket
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.link_token_transactions import LinkTokenTransactions
from plaid.model.products import Products
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions

from ..config import PlaidConfig
from ..exceptions import PlaidApiError, PlaidErrorKind
from ..models import TokenPair

logger = logging.getLogger(__name__)

CLIENT_NAME = "plaid-mirror"

T = TypeVar("T")

_ERROR_TYPE_KINDS = {
    "RATE_LIMIT_EXCEEDED": PlaidErrorKind.RATE_LIMIT,
    "INVALID_REQUEST": PlaidErrorKind.INVALID_REQUEST,
    "INVALID_INPUT": PlaidErrorKind.INVALID_REQUEST,
    "API_ERROR": PlaidErrorKind.API_ERROR,
}


@dataclass
class TransactionsRequest:
    """One page request against ``/transactions/get``."""

    access_token: str
    start_date: date
    end_date: date
    account_ids: list[str] | None = None
    count: int = 100
    offset: int = 0


@dataclass
class TransactionsPage:
    """Transactions returned by one page request plus the server total."""

    transactions: list[Any] = field(default_factory=list)
    total: int = 0


def classify_api_exception(exc: ApiException) -> PlaidApiError:
    """Translate an SDK exception into a ``PlaidApiError``.

    Args:
        exc: Exception raised by the Plaid SDK

    Returns:
        PlaidApiError: Error carrying the classified kind and raw code
    """
    error_code: str | None = None
    error_type: str | None = None
    message = str(exc)

    body = getattr(exc, "body", None)
    if isinstance(body, (str, bytes)):
        try:
            details = json.loads(body)
        except ValueError:
            details = None
        if isinstance(details, dict):
            error_code = details.get("error_code")
            error_type = details.get("error_type")
            message = details.get("error_message") or message

    kind = PlaidErrorKind.UNKNOWN
    if error_code == PlaidErrorKind.ITEM_LOGIN_REQUIRED.value:
        kind = PlaidErrorKind.ITEM_LOGIN_REQUIRED
    elif error_code == PlaidErrorKind.PRODUCT_NOT_READY.value:
        kind = PlaidErrorKind.PRODUCT_NOT_READY
    elif error_type in _ERROR_TYPE_KINDS:
        kind = _ERROR_TYPE_KINDS[error_type]

    return PlaidApiError(
        message,
        kind=kind,
        code=error_code,
        status=getattr(exc, "status", None),
    )


def plaid_host(environment: str) -> str:
    """Get the Plaid API base URL for an environment name.

    Returns:
        str: The Plaid API base URL
    """
    env_name = environment.lower()
    if env_name == "production":
        return "https://production.plaid.com"
    if env_name == "development":
        return "https://development.plaid.com"
    return "https://sandbox.plaid.com"


class PlaidGateway:
    """Thin client over the Plaid endpoints used by plaid-mirror."""

    def __init__(self, config: PlaidConfig, client: Any | None = None):
        """Initialize the gateway.

        Args:
            config: Plaid credentials and request settings
            client: Pre-built ``PlaidApi`` instance, mainly for tests
        """
        self.config = config
        if client is None:
            configuration = Configuration(
                host=plaid_host(config.environment),
                api_key={
                    "clientId": config.client_id,
                    "secret": config.secret,
                },
            )
            client = plaid_api.PlaidApi(ApiClient(configuration))
        # Typed as Any to avoid partial-unknowns from the SDK stubs
        self.client: Any = client

        logger.debug(f"Initialized Plaid gateway for {config.environment} environment")

    def _call(self, fn: Callable[[Any], T], request: Any) -> T:
        try:
            return fn(request)
        except ApiException as e:
            raise classify_api_exception(e) from e

    def create_link_token(self, access_token: str | None = None) -> str:
        """Create a link token for a fresh link or, given a token, a relink.

        Args:
            access_token: Existing access token; puts Link in update mode

        Returns:
            str: Short-lived link token
        """
        kwargs: dict[str, Any] = {
            "user": LinkTokenCreateRequestUser(client_user_id=socket.gethostname()),
            "client_name": CLIENT_NAME,
            "country_codes": [CountryCode(c) for c in self.config.country_codes],
            "language": self.config.language,
            "transactions": LinkTokenTransactions(
                days_requested=self.config.days_requested
            ),
        }
        if access_token:
            kwargs["access_token"] = access_token
        else:
            kwargs["products"] = [Products("transactions")]

        response: Any = self._call(
            self.client.link_token_create, LinkTokenCreateRequest(**kwargs)
        )
        link_token = getattr(response, "link_token", None)
        if not isinstance(link_token, str) or not link_token:
            raise PlaidApiError("Plaid returned an empty link token")
        return link_token

    def exchange_public_token(self, public_token: str) -> TokenPair:
        """Exchange a Link public token for a durable access token."""
        response: Any = self._call(
            self.client.item_public_token_exchange,
            ItemPublicTokenExchangeRequest(public_token=public_token),
        )
        return TokenPair(
            item_id=getattr(response, "item_id"),
            access_token=getattr(response, "access_token"),
        )

    def get_transactions_page(self, request: TransactionsRequest) -> TransactionsPage:
        """Fetch one page of transactions.

        Retries while Plaid reports PRODUCT_NOT_READY, which happens for a
        short time after an item is first linked.
        """
        options: dict[str, Any] = {"count": request.count, "offset": request.offset}
        if request.account_ids:
            options["account_ids"] = list(request.account_ids)

        sdk_request = TransactionsGetRequest(
            access_token=request.access_token,
            start_date=request.start_date,
            end_date=request.end_date,
            options=TransactionsGetRequestOptions(**options),
        )

        response: Any | None = None
        for attempt in range(self.config.max_retries + 1):
            try:
                response = self._call(self.client.transactions_get, sdk_request)
                break
            except PlaidApiError as e:
                if (
                    e.kind is PlaidErrorKind.PRODUCT_NOT_READY
                    and attempt < self.config.max_retries
                ):
                    logger.debug("Transactions not ready yet, retrying")
                    time.sleep(self.config.retry_delay)
                    continue
                raise

        if response is None:
            raise PlaidApiError("Failed to fetch transactions: no response from Plaid")

        return TransactionsPage(
            transactions=list(getattr(response, "transactions", None) or []),
            total=int(getattr(response, "total_transactions", 0) or 0),
        )

    def get_accounts(self, access_token: str) -> list[Any]:
        """List the accounts belonging to an item."""
        response: Any = self._call(
            self.client.accounts_get, AccountsGetRequest(access_token=access_token)
        )
        return list(getattr(response, "accounts", None) or [])

    def get_item(self, access_token: str) -> dict[str, Any]:
        """Fetch item metadata (institution, products, consent status)."""
        response: Any = self._call(
            self.client.item_get, ItemGetRequest(access_token=access_token)
        )
        item = getattr(response, "item", None)
        to_dict = getattr(item, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return dict(item or {})

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token and remove the item at Plaid."""
        self._call(
            self.client.item_remove, ItemRemoveRequest(access_token=access_token)
        )
