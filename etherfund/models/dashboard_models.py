"""EtherFund — Dashboard Read Model."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from etherfund.models.record_models import (
    AuditEntry,
    CampaignSnapshot,
    DisbursementRecord,
    DonationRecord,
    UpdateRecord,
)


class DashboardView(BaseModel):
    """Everything the dashboard renders for one campaign.

    Built fresh on every load; never patched in place.
    """

    model_config = ConfigDict(frozen=True)

    campaign_id: int
    snapshot: CampaignSnapshot
    progress_ratio: float
    recent_donations: List[DonationRecord] = []
    recent_disbursements: List[DisbursementRecord] = []
    audit_log: List[AuditEntry] = []
    updates: List[UpdateRecord] = []
    generated_at: datetime


class DashboardStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class DashboardState(BaseModel):
    """What the presentation layer sees: a view, or a single unavailable state."""

    model_config = ConfigDict(frozen=True)

    campaign_id: int
    status: DashboardStatus
    view: Optional[DashboardView] = None
    error: Optional[str] = None
    generation: int = 0
