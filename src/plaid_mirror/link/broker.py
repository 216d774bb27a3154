"""Interactive Plaid Link broker.

Linking an institution needs a human in a browser: we create a link token,
serve a page that opens Plaid's hosted Link widget, and wait for the page to
post the outcome back to a local callback server.

Fresh link:
1. Create a link token requesting the transactions product
2. Serve ``/link`` and open the browser
3. Receive a public token from the page
4. Exchange it server-side for ``TokenPair(item_id, access_token)``

Relink (Link update mode):
1. Create a link token bound to the item's existing access token
2. Serve ``/relink`` and open the browser
3. Receive success or an error from the page; the access token is unchanged

The broker never persists tokens; callers store the returned ``TokenPair``.
"""

import logging
import threading
import webbrowser
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any

from ..config import LinkConfig
from ..connectors.plaid_client import PlaidGateway
from ..exceptions import LinkTimeoutError
from ..models import TokenPair
from ..utils.item_store import ItemStore
from .server import CallbackServer, Flow, create_callback_app

logger = logging.getLogger(__name__)


class LinkBroker:
    """Runs link and relink flows against a one-shot local callback server."""

    def __init__(
        self,
        gateway: PlaidGateway,
        items: ItemStore,
        config: LinkConfig,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ):
        self.gateway = gateway
        self.items = items
        self.config = config
        self._open_browser = open_browser
        self._relink_lock = threading.Lock()

    def link(self, port: int | None = None) -> TokenPair:
        """Link a new institution.

        Args:
            port: Callback port; defaults to the configured link port

        Returns:
            TokenPair: Item ID and access token for the new item

        Raises:
            PlaidApiError: If the link token cannot be created or exchanged
            LinkError: If the callback reports an error or the port is busy
            LinkTimeoutError: If the user does not finish in time
        """
        link_token = self.gateway.create_link_token()
        public_token = self._run_flow("link", link_token, port)
        pair = self.gateway.exchange_public_token(public_token)
        logger.debug(f"Exchanged public token for item {pair.item_id}")
        return pair

    def relink(self, item_id: str, port: int | None = None) -> None:
        """Re-authenticate an existing item in Link update mode.

        Only one relink flow runs at a time per broker; concurrent callers
        (for example several fetch threads hitting expired logins) queue up.

        Raises:
            UnknownItemError: If no access token is stored for the item
            PlaidApiError: If the link token cannot be created
            LinkError: If the callback reports an error or the port is busy
            LinkTimeoutError: If the user does not finish in time
        """
        with self._relink_lock:
            logger.info(f"Starting relink server for {item_id}")
            access_token = self.items.token_for(item_id)
            link_token = self.gateway.create_link_token(access_token=access_token)
            self._run_flow("relink", link_token, port)

    def _run_flow(self, flow: Flow, link_token: str, port: int | None) -> Any:
        future: Future[Any] = Future()
        server = CallbackServer(
            create_callback_app(flow, link_token, future),
            host=self.config.host,
            port=port or self.config.port,
        )

        with server:
            url = server.url(f"/{flow}")
            logger.info(
                "Your browser should open automatically. "
                f"If it doesn't, please visit {url} to continue linking!"
            )
            if self.config.open_browser:
                self._launch_browser(url)

            try:
                return future.result(timeout=self.config.timeout_seconds)
            except FuturesTimeoutError as e:
                raise LinkTimeoutError(
                    f"Plaid Link was not completed within "
                    f"{self.config.timeout_seconds:.0f}s"
                ) from e

    def _launch_browser(self, url: str) -> None:
        try:
            opened = self._open_browser(url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open a browser: {e}")
            return
        if opened is False:
            logger.debug("No browser available; use the URL above")
