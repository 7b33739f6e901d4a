"""EtherFund — Event Log Reader.

Pulls a campaign's contract events, decodes them into records,
de-duplicates by (tx hash, log index) and orders them newest first.
Update bodies are resolved from the content store with bounded concurrency;
one unresolvable update is dropped and logged, never failing the batch.
"""

import asyncio
from typing import Callable, List, Optional, TypeVar

from etherfund.config import settings
from etherfund.connectors.chain.abi import (
    DISBURSEMENT_EVENT,
    DONATION_EVENT,
    UPDATE_EVENT,
)
from etherfund.connectors.chain.client import BlockId, ContractGateway
from etherfund.connectors.chain.transformer import (
    dedupe,
    to_disbursement,
    to_donation,
    to_update_body,
    to_update_ref,
)
from etherfund.connectors.ipfs.client import ContentStoreGateway
from etherfund.core.errors import DecodeError, NotFound, StoreUnavailable, Timeout
from etherfund.core.logging import get_logger
from etherfund.models.raw_models import RawEvent
from etherfund.models.record_models import (
    DisbursementRecord,
    DonationRecord,
    UpdateRecord,
    UpdateRef,
)

logger = get_logger("reader.events")

R = TypeVar("R")

# Per-record failures that drop one update instead of the feed
RESOLUTION_ERRORS = (NotFound, DecodeError, StoreUnavailable, Timeout)


def newest_first(records: List[R]) -> List[R]:
    """Sort by occurred_at descending; ties by (source_tx_id, log_index) ascending."""
    ordered = sorted(records, key=lambda r: (r.source_tx_id, r.log_index))
    return sorted(ordered, key=lambda r: r.occurred_at, reverse=True)


class EventLogReader:
    """Loads typed, ordered event histories for one campaign at a time."""

    def __init__(
        self,
        chain: ContractGateway,
        store: ContentStoreGateway,
        concurrency: int | None = None,
        from_block: Optional[BlockId] = None,
        to_block: Optional[BlockId] = None,
    ):
        self.chain = chain
        self.store = store
        self.concurrency = max(1, concurrency or settings.update_fetch_concurrency)
        self.from_block = from_block
        self.to_block = to_block

    async def _load(
        self,
        event_name: str,
        campaign_id: int,
        decode: Callable[[RawEvent], R],
    ) -> List[R]:
        events = await self.chain.query_events(
            event_name, campaign_id, self.from_block, self.to_block
        )
        return dedupe([decode(e) for e in events])

    async def load_donations(self, campaign_id: int) -> List[DonationRecord]:
        records = await self._load(DONATION_EVENT, campaign_id, to_donation)
        return newest_first(records)

    async def load_disbursements(self, campaign_id: int) -> List[DisbursementRecord]:
        records = await self._load(DISBURSEMENT_EVENT, campaign_id, to_disbursement)
        return newest_first(records)

    async def load_updates(self, campaign_id: int) -> List[UpdateRecord]:
        refs = await self._load(UPDATE_EVENT, campaign_id, to_update_ref)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def resolve(ref: UpdateRef) -> Optional[UpdateRecord]:
            async with semaphore:
                try:
                    payload = await self.store.get(ref.content_id)
                    body = to_update_body(payload)
                except RESOLUTION_ERRORS as e:
                    logger.warning(
                        f"Dropping update {ref.content_id}: {e}",
                        extra={"campaign_id": campaign_id, "content_id": ref.content_id},
                    )
                    return None
            return UpdateRecord(
                body=body,
                occurred_at=ref.occurred_at,
                source_tx_id=ref.source_tx_id,
                content_id=ref.content_id,
                log_index=ref.log_index,
                block_number=ref.block_number,
            )

        resolved = await asyncio.gather(*(resolve(ref) for ref in refs))
        updates = [u for u in resolved if u is not None]
        if len(updates) < len(refs):
            logger.info(
                f"Resolved {len(updates)} of {len(refs)} updates",
                extra={"campaign_id": campaign_id},
            )
        return newest_first(updates)
