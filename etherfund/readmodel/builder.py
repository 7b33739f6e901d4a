"""EtherFund — Read-Model Builder.

Pure fold of an already-fetched snapshot and event histories into a
DashboardView. No I/O. Totals always come from the snapshot; records are
history only and are never summed.
"""

from datetime import datetime, timezone
from typing import List, Sequence, TypeVar

from etherfund.config import settings
from etherfund.models.dashboard_models import DashboardView
from etherfund.models.record_models import (
    AuditEntry,
    AuditKind,
    CampaignSnapshot,
    DisbursementRecord,
    DonationRecord,
    UpdateRecord,
)
from etherfund.reader.event_reader import newest_first

T = TypeVar("T")


def compute_progress_ratio(snapshot: CampaignSnapshot) -> float:
    """raised / goal, defined as 0.0 for a zero goal."""
    if snapshot.goal_amount == 0:
        return 0.0
    return float(snapshot.raised_amount / snapshot.goal_amount)


def recent(records: Sequence[T], limit: int | None = None) -> List[T]:
    """Leading slice of an already newest-first sequence."""
    limit = settings.recent_activity_limit if limit is None else limit
    return list(records[: max(limit, 0)])


def merge_audit_log(
    donations: Sequence[DonationRecord],
    disbursements: Sequence[DisbursementRecord],
) -> List[AuditEntry]:
    """Chronological (newest first) merge of donations and disbursements."""
    entries = [
        AuditEntry(
            kind=AuditKind.DONATION,
            counterparty=d.donor_address,
            amount=d.amount,
            occurred_at=d.occurred_at,
            source_tx_id=d.source_tx_id,
            log_index=d.log_index,
        )
        for d in donations
    ] + [
        AuditEntry(
            kind=AuditKind.DISBURSEMENT,
            counterparty=d.recipient_address,
            amount=d.amount,
            occurred_at=d.occurred_at,
            source_tx_id=d.source_tx_id,
            log_index=d.log_index,
        )
        for d in disbursements
    ]
    return newest_first(entries)


def fold_dashboard(
    campaign_id: int,
    snapshot: CampaignSnapshot,
    donations: Sequence[DonationRecord],
    disbursements: Sequence[DisbursementRecord],
    updates: Sequence[UpdateRecord],
    recent_limit: int | None = None,
) -> DashboardView:
    """Build the dashboard view from fetched data."""
    donations = newest_first(list(donations))
    disbursements = newest_first(list(disbursements))
    return DashboardView(
        campaign_id=campaign_id,
        snapshot=snapshot,
        progress_ratio=compute_progress_ratio(snapshot),
        recent_donations=recent(donations, recent_limit),
        recent_disbursements=recent(disbursements, recent_limit),
        audit_log=merge_audit_log(donations, disbursements),
        updates=newest_first(list(updates)),
        generated_at=datetime.now(timezone.utc),
    )
