"""EtherFund — Campaign Records.

Typed, append-only records decoded from contract events, plus the live
snapshot read from the contract. Amounts are exact ether Decimals.
Record identity is (source_tx_id, log_index): one transaction may emit
several events of the same kind.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class CampaignSnapshot(BaseModel):
    """Current on-chain state. The only source of truth for totals."""

    model_config = ConfigDict(frozen=True)

    campaign_id: int
    goal_amount: Decimal
    raised_amount: Decimal
    contributor_count: int
    minimum_contribution: Decimal = Decimal(0)
    name: str = ""
    description: str = ""
    image_url: str = ""
    owner: str = ""


class DonationRecord(BaseModel):
    """One DonationReceived event."""

    model_config = ConfigDict(frozen=True)

    donor_address: str
    amount: Decimal
    occurred_at: datetime
    source_tx_id: str
    log_index: int = 0
    block_number: int = 0

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.source_tx_id, self.log_index)


class DisbursementRecord(BaseModel):
    """One FundsDisbursed event."""

    model_config = ConfigDict(frozen=True)

    recipient_address: str
    amount: Decimal
    occurred_at: datetime
    source_tx_id: str
    log_index: int = 0
    block_number: int = 0

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.source_tx_id, self.log_index)


class UpdateBody(BaseModel):
    """Update payload stored in the content store."""

    model_config = ConfigDict(frozen=True)

    content: str
    authored_at: Optional[datetime] = None


class UpdateRef(BaseModel):
    """A CampaignUpdate event before its body has been fetched."""

    model_config = ConfigDict(frozen=True)

    content_id: str
    occurred_at: datetime
    source_tx_id: str
    log_index: int = 0
    block_number: int = 0

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.source_tx_id, self.log_index)


class UpdateRecord(BaseModel):
    """A CampaignUpdate event with its resolved body."""

    model_config = ConfigDict(frozen=True)

    body: UpdateBody
    occurred_at: datetime
    source_tx_id: str
    content_id: str
    log_index: int = 0
    block_number: int = 0

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.source_tx_id, self.log_index)


class AuditKind(str, Enum):
    DONATION = "donation"
    DISBURSEMENT = "disbursement"


class AuditEntry(BaseModel):
    """Donation or disbursement, unified for the chronological audit log."""

    model_config = ConfigDict(frozen=True)

    kind: AuditKind
    counterparty: str
    amount: Decimal
    occurred_at: datetime
    source_tx_id: str
    log_index: int = 0
