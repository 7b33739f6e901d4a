"""EtherFund — Raw Event → Record Transformer.

Converts decoded contract logs and call results into typed records.
Amounts are converted from wei exactly; timestamps are the contract's
block-time seconds.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from etherfund.core.errors import DecodeError, NotFound
from etherfund.core.units import wei_to_ether
from etherfund.models.raw_models import RawEvent
from etherfund.models.record_models import (
    CampaignSnapshot,
    DisbursementRecord,
    DonationRecord,
    UpdateBody,
    UpdateRef,
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Outputs of campaigns(id) the totals are read from
SNAPSHOT_OUTPUTS = ("goal", "balance", "contributorCount")


def _timestamp(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise DecodeError(f"Invalid block timestamp {value!r}: {e}") from e


def _arg(event: RawEvent, name: str) -> Any:
    try:
        return event.args[name]
    except KeyError as e:
        raise DecodeError(
            f"{event.event_name} in {event.transaction_hash} has no '{name}' argument"
        ) from e


def to_snapshot(campaign_id: int, fields: Dict[str, Any]) -> CampaignSnapshot:
    """Build a snapshot from the ``campaigns(id)`` struct keyed by output name.

    A mapping lookup for an unknown id returns the zero struct, which is
    reported as NotFound.
    """
    missing = [name for name in SNAPSHOT_OUTPUTS if name not in fields]
    if missing:
        raise DecodeError(
            f"campaigns({campaign_id}) has no output named {', '.join(missing)}; "
            "the configured ABI does not match the EtherFund contract"
        )

    owner = str(fields.get("owner") or ZERO_ADDRESS)
    goal = int(fields.get("goal") or 0)
    if owner.lower() == ZERO_ADDRESS and goal == 0:
        raise NotFound(f"Campaign {campaign_id} does not exist on-chain")

    return CampaignSnapshot(
        campaign_id=campaign_id,
        goal_amount=wei_to_ether(goal),
        raised_amount=wei_to_ether(int(fields["balance"])),
        contributor_count=int(fields["contributorCount"]),
        minimum_contribution=wei_to_ether(int(fields.get("minContribution") or 0)),
        name=str(fields.get("name") or ""),
        description=str(fields.get("description") or ""),
        image_url=str(fields.get("imageUrl") or ""),
        owner=owner,
    )


def to_donation(event: RawEvent) -> DonationRecord:
    return DonationRecord(
        donor_address=str(_arg(event, "donor")),
        amount=wei_to_ether(int(_arg(event, "amount"))),
        occurred_at=_timestamp(_arg(event, "timestamp")),
        source_tx_id=event.transaction_hash,
        log_index=event.log_index,
        block_number=event.block_number,
    )


def to_disbursement(event: RawEvent) -> DisbursementRecord:
    return DisbursementRecord(
        recipient_address=str(_arg(event, "recipient")),
        amount=wei_to_ether(int(_arg(event, "amount"))),
        occurred_at=_timestamp(_arg(event, "timestamp")),
        source_tx_id=event.transaction_hash,
        log_index=event.log_index,
        block_number=event.block_number,
    )


def to_update_ref(event: RawEvent) -> UpdateRef:
    return UpdateRef(
        content_id=str(_arg(event, "ipfsHash")),
        occurred_at=_timestamp(_arg(event, "timestamp")),
        source_tx_id=event.transaction_hash,
        log_index=event.log_index,
        block_number=event.block_number,
    )


def to_update_body(payload: Any) -> UpdateBody:
    """Parse a stored update payload.

    Accepts ``{"content", "timestamp"}`` with a millisecond timestamp (as the
    update form writes it) or ``{"content", "authoredAt"}`` in seconds.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("content"), str):
        raise DecodeError("Update payload has no 'content' string")

    authored_at: Optional[datetime] = None
    try:
        if payload.get("timestamp") is not None:
            authored_at = datetime.fromtimestamp(
                int(payload["timestamp"]) / 1000, tz=timezone.utc
            )
        elif payload.get("authoredAt") is not None:
            authored_at = _timestamp(payload["authoredAt"])
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise DecodeError(f"Update payload has an invalid timestamp: {e}") from e

    return UpdateBody(content=payload["content"], authored_at=authored_at)


def dedupe(records: List[Any]) -> List[Any]:
    """Drop repeated (source_tx_id, log_index) identities, keeping the first."""
    seen = set()
    unique = []
    for record in records:
        if record.identity in seen:
            continue
        seen.add(record.identity)
        unique.append(record)
    return unique
