"""EtherFund — Gateway Wiring & Request Dependencies."""

from collections import OrderedDict
from typing import Optional

from fastapi import Request
from web3 import AsyncWeb3

from etherfund.config import Settings, settings
from etherfund.connectors.chain.abi import load_abi
from etherfund.connectors.chain.client import ContractGateway, connect
from etherfund.connectors.ipfs.client import ContentStoreGateway
from etherfund.core.logging import get_logger
from etherfund.presentation.forms import CampaignForms
from etherfund.reader.event_reader import EventLogReader
from etherfund.readmodel.service import DashboardController, DashboardService

logger = get_logger("dependencies")


class Services:
    """Everything a request needs, built once per application."""

    def __init__(
        self,
        chain: ContractGateway,
        store: ContentStoreGateway,
        config: Settings = settings,
    ):
        self.config = config
        self.chain = chain
        self.store = store
        self.reader = EventLogReader(chain, store, concurrency=config.update_fetch_concurrency)
        self.dashboards = DashboardService(chain, self.reader, recent_limit=config.recent_activity_limit)
        self.controllers: "OrderedDict[int, DashboardController]" = OrderedDict()
        self.forms = CampaignForms(chain, store, self.controller_for)

    def controller_for(self, campaign_id: int) -> DashboardController:
        """One controller per campaign, so overlapping loads share one read.

        The least recently used campaigns are forgotten past
        ``dashboard_controller_limit``.
        """
        controller = self.controllers.pop(campaign_id, None)
        if controller is None:
            controller = DashboardController(self.dashboards)
        self.controllers[campaign_id] = controller
        while len(self.controllers) > max(self.config.dashboard_controller_limit, 1):
            self.controllers.popitem(last=False)
        return controller

    async def close(self) -> None:
        await self.store.close()
        await self.chain.close()


def build_services(config: Settings = settings, w3: Optional[AsyncWeb3] = None) -> Services:
    """Create gateways from configuration."""
    handle = w3 if w3 is not None else connect(config)
    chain = ContractGateway(
        handle,
        contract_address=config.contract_address,
        abi=load_abi(config.contract_abi_path),
        timeout=config.rpc_timeout_seconds,
        confirmation_timeout=config.confirmation_timeout_seconds,
        sender_address=config.sender_address,
        signer_private_key=config.signer_private_key,
        start_block=config.start_block,
    )
    store = ContentStoreGateway(
        base_url=config.ipfs_api_url,
        project_id=config.ipfs_project_id,
        project_secret=config.ipfs_project_secret,
        auth_token=config.ipfs_auth_token,
        timeout=config.ipfs_timeout_seconds,
        cache_size=config.content_cache_size,
    )
    logger.info(f"Gateways ready: rpc={config.rpc_url} ipfs={config.ipfs_host}")
    return Services(chain, store, config)


def get_services(request: Request) -> Services:
    """Dependency: the application's Services."""
    return request.app.state.services
