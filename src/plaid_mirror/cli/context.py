"""Build the service objects a CLI command needs from the current settings."""

import logging
from dataclasses import dataclass

from ..config import MirrorSettings, get_settings
from ..connectors.plaid_client import PlaidGateway
from ..link.broker import LinkBroker
from ..store.airtable_store import AirtableStore
from ..sync.orchestrator import SyncOrchestrator
from ..utils.item_store import ItemStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Objects shared by the commands of one CLI invocation."""

    settings: MirrorSettings
    gateway: PlaidGateway
    items: ItemStore
    broker: LinkBroker

    def orchestrator(self, with_store: bool = True) -> SyncOrchestrator:
        """Create a sync orchestrator, connecting to Airtable if requested.

        Raises:
            ConfigurationError: If Airtable credentials are missing
        """
        store = None
        if with_store:
            self.settings.validate_required_credentials(airtable=True)
            store = AirtableStore(self.settings.airtable)
        return SyncOrchestrator(
            settings=self.settings,
            gateway=self.gateway,
            items=self.items,
            broker=self.broker,
            store=store,
        )


def build_context() -> AppContext:
    """Load settings and the item store and wire up the Plaid services.

    Raises:
        ConfigurationError: If settings are invalid or Plaid credentials missing
    """
    settings = get_settings()
    settings.validate_required_credentials()

    items = ItemStore.load(settings.data_dir)
    gateway = PlaidGateway(settings.plaid)
    broker = LinkBroker(gateway, items, settings.link)
    logger.debug(f"Using data directory {settings.data_dir}")
    return AppContext(settings=settings, gateway=gateway, items=items, broker=broker)
