"""Retry an API action once after relinking an item whose login expired."""

import logging
from collections.abc import Callable
from typing import TypeVar

from ..exceptions import PlaidApiError
from ..utils.item_store import ItemRef
from .broker import LinkBroker

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_relink_on_auth_error(
    item: ItemRef,
    action: Callable[[], T],
    broker: LinkBroker,
    port: int | None = None,
) -> T:
    """Run ``action``, relinking ``item`` and retrying once on expired login.

    Only ``ITEM_LOGIN_REQUIRED`` triggers a relink. The retried action's
    outcome is final: a second expired-login error is raised, not retried.

    Args:
        item: Item the action talks to
        action: Zero-argument callable performing the API work
        broker: Broker used to run the relink flow
        port: Callback port for the relink flow

    Returns:
        The action's return value

    Raises:
        PlaidApiError: Any error from the action other than a first expired login
        LinkError: If the relink flow fails
    """
    try:
        return action()
    except PlaidApiError as e:
        if not e.requires_relink:
            raise
        logger.info(f"Login expired for {item}. Relinking...")

    broker.relink(item.item_id, port)

    logger.info("Re-running action...")
    return action()
