"""Drive ``/transactions/get`` to completion across pages."""

import logging
from dataclasses import replace
from typing import Any

from ..exceptions import PlaidApiError, PlaidErrorKind
from .plaid_client import PlaidGateway, TransactionsRequest

logger = logging.getLogger(__name__)


def all_transactions(
    gateway: PlaidGateway, request: TransactionsRequest
) -> list[Any]:
    """Fetch every transaction matching ``request``.

    Pages are requested sequentially, advancing the offset by the page size
    until the accumulated count reaches the total reported by the server.
    The first failing request propagates; partial results are discarded. An
    empty page before the total is reached counts as a failure.

    Args:
        gateway: Plaid gateway used for each page request
        request: Date range, account filter and page size/offset

    Returns:
        list: Transactions in server-delivered order

    Raises:
        PlaidApiError: If a page request fails or the feed ends early
    """
    page = gateway.get_transactions_page(request)
    transactions = list(page.transactions)
    total = page.total

    while len(transactions) < total:
        request = replace(request, offset=request.offset + request.count)
        page = gateway.get_transactions_page(request)
        if not page.transactions:
            raise PlaidApiError(
                f"Transaction feed truncated: Plaid reported {total} transactions "
                f"but returned an empty page at offset {request.offset}",
                kind=PlaidErrorKind.API_ERROR,
            )
        transactions.extend(page.transactions)
        total = page.total

    logger.debug(f"Fetched {len(transactions)} transactions")
    return transactions
