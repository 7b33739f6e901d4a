"""EtherFund — Raw Chain Models (Immutable)."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class RawEvent(BaseModel):
    """A contract log as returned by the node, with its arguments decoded.

    Never modify this data; records are derived from it.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str
    args: Dict[str, Any]
    block_number: int
    log_index: int
    transaction_hash: str


class TransactionReceipt(BaseModel):
    """Confirmed write, trimmed to what the dashboard needs."""

    model_config = ConfigDict(frozen=True)

    transaction_hash: str
    block_number: int
    status: int = 1
    gas_used: int = 0
    campaign_id: Optional[int] = None  # Set by createCampaign from CampaignCreated
