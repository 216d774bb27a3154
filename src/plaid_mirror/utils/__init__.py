"""Utility modules for plaid-mirror.

This package provides the persistent item/alias store and output serializers.
"""

from .item_store import ItemRef, ItemStore
from .serializers import get_serializer

__all__ = ["ItemRef", "ItemStore", "get_serializer"]
