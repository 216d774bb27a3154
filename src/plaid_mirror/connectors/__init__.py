"""Connectors for the Plaid API.

``plaid_client`` is the only module that talks to the Plaid SDK; everything
else consumes the classified errors and plain results it returns.
"""

from .pagination import all_transactions
from .plaid_client import (
    PlaidGateway,
    TransactionsPage,
    TransactionsRequest,
    classify_api_exception,
)

__all__ = [
    "PlaidGateway",
    "TransactionsPage",
    "TransactionsRequest",
    "all_transactions",
    "classify_api_exception",
]
