"""EtherFund — Dashboard Rendering.

Pure functions from read-model values to display-ready dicts: three stat
cards, recent donations, disbursement timeline, audit log and update feed.
Percentages use floats; amounts are printed from their exact Decimals.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from etherfund.config import settings
from etherfund.core.units import format_ether
from etherfund.models.dashboard_models import DashboardState, DashboardStatus, DashboardView
from etherfund.models.record_models import (
    AuditEntry,
    DisbursementRecord,
    DonationRecord,
    UpdateRecord,
)

CURRENCY = "ETH"


def short_address(address: str) -> str:
    """0x1234...abcd"""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_amount(amount: Decimal) -> str:
    return f"{format_ether(amount)} {CURRENCY}"


def format_date(moment: Optional[datetime]) -> str:
    return moment.strftime("%Y-%m-%d") if moment else ""


def format_datetime(moment: Optional[datetime]) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC") if moment else ""


def tx_link(tx_hash: str, explorer_tx_url: str | None = None) -> str:
    return f"{explorer_tx_url or settings.explorer_tx_url}{tx_hash}"


def _activity_row(address: str, amount: Decimal, occurred_at: datetime, tx_hash: str, explorer: str | None) -> Dict[str, str]:
    return {
        "address": short_address(address),
        "amount": format_amount(amount),
        "date": format_date(occurred_at),
        "tx": tx_hash,
        "tx_url": tx_link(tx_hash, explorer),
    }


def render_donations(records: List[DonationRecord], explorer: str | None = None) -> List[Dict[str, str]]:
    return [
        _activity_row(d.donor_address, d.amount, d.occurred_at, d.source_tx_id, explorer)
        for d in records
    ]


def render_disbursements(records: List[DisbursementRecord], explorer: str | None = None) -> List[Dict[str, str]]:
    return [
        _activity_row(d.recipient_address, d.amount, d.occurred_at, d.source_tx_id, explorer)
        for d in records
    ]


def render_audit_log(entries: List[AuditEntry], explorer: str | None = None) -> List[Dict[str, str]]:
    rows = []
    for entry in entries:
        row = _activity_row(entry.counterparty, entry.amount, entry.occurred_at, entry.source_tx_id, explorer)
        row["type"] = entry.kind.value.capitalize()
        rows.append(row)
    return rows


def render_updates(updates: List[UpdateRecord], explorer: str | None = None) -> List[Dict[str, str]]:
    return [
        {
            "content": u.body.content,
            "posted_at": format_datetime(u.occurred_at),
            "authored_at": format_datetime(u.body.authored_at),
            "content_id": u.content_id,
            "tx": u.source_tx_id,
            "tx_url": tx_link(u.source_tx_id, explorer),
        }
        for u in updates
    ]


def render_dashboard(view: DashboardView, explorer: str | None = None) -> Dict[str, Any]:
    """Render a dashboard view."""
    snapshot = view.snapshot
    progress_pct = view.progress_ratio * 100
    return {
        "status": DashboardStatus.READY.value,
        "campaign_id": view.campaign_id,
        "campaign": {
            "name": snapshot.name,
            "description": snapshot.description,
            "image_url": snapshot.image_url,
            "owner": snapshot.owner,
            "minimum_contribution": format_amount(snapshot.minimum_contribution),
        },
        "stats": {
            "total_raised": format_amount(snapshot.raised_amount),
            "goal": format_amount(snapshot.goal_amount),
            "contributors": snapshot.contributor_count,
            "progress_percent": f"{progress_pct:.2f}%",
            "progress_bar": min(max(progress_pct, 0.0), 100.0),
        },
        "recent_donations": render_donations(view.recent_donations, explorer),
        "disbursement_timeline": render_disbursements(view.recent_disbursements, explorer),
        "audit_log": render_audit_log(view.audit_log, explorer),
        "updates": render_updates(view.updates, explorer),
        "generated_at": view.generated_at.isoformat(),
    }


def render_state(state: DashboardState, explorer: str | None = None) -> Dict[str, Any]:
    """Render a dashboard state: the view when ready, otherwise one notice."""
    if state.status == DashboardStatus.READY and state.view is not None:
        return render_dashboard(state.view, explorer)
    message = (
        "Loading campaign data..."
        if state.status == DashboardStatus.LOADING
        else "Campaign data is currently unavailable."
    )
    return {
        "status": state.status.value,
        "campaign_id": state.campaign_id,
        "message": message,
        "error": state.error,
    }
