"""Exception hierarchy for plaid-mirror.

Errors are classified once, at the boundary where they enter the application
(Plaid SDK, Airtable client, local callback server), so callers only ever deal
with the types defined here.
"""

from enum import Enum


class PlaidMirrorError(Exception):
    """Base class for all application errors."""


class ConfigurationError(PlaidMirrorError):
    """Required configuration is missing or invalid."""


class PlaidErrorKind(Enum):
    """Closed set of Plaid failure categories the application reacts to."""

    ITEM_LOGIN_REQUIRED = "ITEM_LOGIN_REQUIRED"
    PRODUCT_NOT_READY = "PRODUCT_NOT_READY"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    INVALID_REQUEST = "INVALID_REQUEST"
    API_ERROR = "API_ERROR"
    UNKNOWN = "UNKNOWN"


class PlaidApiError(PlaidMirrorError):
    """A Plaid API call failed.

    Attributes:
        kind: Classified failure category
        code: Raw Plaid ``error_code`` when the response carried one
        status: HTTP status of the failed response, if any
    """

    def __init__(
        self,
        message: str,
        kind: PlaidErrorKind = PlaidErrorKind.UNKNOWN,
        code: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.status = status

    @property
    def requires_relink(self) -> bool:
        return self.kind is PlaidErrorKind.ITEM_LOGIN_REQUIRED


class LinkError(PlaidMirrorError):
    """A link or relink flow failed at the local callback endpoint."""


class LinkTimeoutError(LinkError):
    """The user did not complete the link flow in time."""


class StoreError(PlaidMirrorError):
    """The remote tabular store rejected or failed an operation."""


class UnknownItemError(PlaidMirrorError):
    """An alias or item ID does not refer to a linked institution."""
