"""EtherFund — Write Paths (New Campaign, Post Update).

Each write checks field presence locally, goes through the content store
and/or contract gateway, and on success re-runs the full read path for the
campaign. A failed write touches no dashboard state and is never retried.
"""

import time
from typing import Callable, Optional

from pydantic import BaseModel

from etherfund.connectors.chain.client import ContractGateway
from etherfund.connectors.ipfs.client import ContentStoreGateway
from etherfund.core.errors import RpcError, ValidationError
from etherfund.core.logging import get_logger
from etherfund.core.units import ether_to_wei
from etherfund.models.dashboard_models import DashboardState
from etherfund.models.raw_models import TransactionReceipt
from etherfund.readmodel.service import DashboardController

logger = get_logger("presentation.forms")

CAMPAIGN_FIELDS = ("minimum_contribution", "name", "description", "image_url", "target")


class CampaignFormFields(BaseModel):
    """Fields of the new-campaign form, as typed (amounts in ETH)."""

    minimum_contribution: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    target: Optional[str] = None


class UpdateFormFields(BaseModel):
    """Fields of the post-update form."""

    text: Optional[str] = None


class WriteResult(BaseModel):
    """Confirmed write plus the dashboard reloaded after it."""

    receipt: TransactionReceipt
    dashboard: Optional[DashboardState] = None


class CampaignForms:
    """Validates and submits the two dashboard forms."""

    def __init__(
        self,
        chain: ContractGateway,
        store: ContentStoreGateway,
        controller_for: Callable[[int], DashboardController],
    ):
        self.chain = chain
        self.store = store
        self.controller_for = controller_for

    async def post_update(self, campaign_id: int, text: Optional[str]) -> WriteResult:
        """Store the update body, record its content id on-chain, reload."""
        if not text or not text.strip():
            raise ValidationError("Update text is required", ["text"])

        body = {"content": text, "timestamp": int(time.time() * 1000)}
        content_id = await self.store.put(body)
        receipt = await self.chain.submit_update(campaign_id, content_id)

        state = await self.controller_for(campaign_id).load(campaign_id, refresh=True)
        return WriteResult(receipt=receipt, dashboard=state)

    async def create_campaign(self, fields: CampaignFormFields) -> WriteResult:
        """Submit createCampaign and load the new campaign's dashboard."""
        missing = [
            name
            for name in CAMPAIGN_FIELDS
            if not (getattr(fields, name) or "").strip()
        ]
        if missing:
            raise ValidationError("All fields are required", missing)

        minimum_wei = ether_to_wei(fields.minimum_contribution)
        target_wei = ether_to_wei(fields.target)

        receipt = await self.chain.create_campaign(
            minimum_wei,
            fields.name.strip(),
            fields.description.strip(),
            fields.image_url.strip(),
            target_wei,
        )
        if receipt.campaign_id is None:
            raise RpcError(
                f"Transaction {receipt.transaction_hash} emitted no CampaignCreated event"
            )

        logger.info(
            f"New campaign {receipt.campaign_id} submitted",
            extra={"campaign_id": receipt.campaign_id, "tx_hash": receipt.transaction_hash},
        )
        state = await self.controller_for(receipt.campaign_id).load(receipt.campaign_id, refresh=True)
        return WriteResult(receipt=receipt, dashboard=state)
