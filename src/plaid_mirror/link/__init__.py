"""Plaid Link flows served from a local callback endpoint."""

from .broker import LinkBroker
from .relink import with_relink_on_auth_error

__all__ = ["LinkBroker", "with_relink_on_auth_error"]
