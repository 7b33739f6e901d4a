"""EtherFund — Dashboard Load Orchestrator.

Runs the read path:
  snapshot + donations + disbursements + updates (concurrently) → fold → view

DashboardService builds views; DashboardController holds the state a viewer
sees and makes sure a superseded load can never overwrite a newer one.
"""

import asyncio
import time
from typing import Optional

from etherfund.connectors.chain.client import ContractGateway
from etherfund.core.errors import EtherFundError
from etherfund.core.logging import get_logger
from etherfund.models.dashboard_models import (
    DashboardState,
    DashboardStatus,
    DashboardView,
)
from etherfund.reader.event_reader import EventLogReader
from etherfund.readmodel.builder import fold_dashboard

logger = get_logger("readmodel.service")


class DashboardService:
    """Fetches everything a dashboard needs and folds it into a view."""

    def __init__(self, chain: ContractGateway, reader: EventLogReader, recent_limit: int | None = None):
        self.chain = chain
        self.reader = reader
        self.recent_limit = recent_limit

    async def build_dashboard(self, campaign_id: int) -> DashboardView:
        """Fetch the snapshot and the three histories concurrently, then fold."""
        started = time.monotonic()
        snapshot, donations, disbursements, updates = await asyncio.gather(
            self.chain.fetch_snapshot(campaign_id),
            self.reader.load_donations(campaign_id),
            self.reader.load_disbursements(campaign_id),
            self.reader.load_updates(campaign_id),
        )
        view = fold_dashboard(
            campaign_id,
            snapshot,
            donations,
            disbursements,
            updates,
            recent_limit=self.recent_limit,
        )
        logger.info(
            f"Dashboard built: {len(donations)} donations, "
            f"{len(disbursements)} disbursements, {len(updates)} updates",
            extra={
                "campaign_id": campaign_id,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return view

    async def load_state(self, campaign_id: int, generation: int = 0) -> DashboardState:
        """Like build_dashboard, but any gateway failure becomes one unavailable state."""
        try:
            view = await self.build_dashboard(campaign_id)
        except EtherFundError as e:
            logger.error(
                f"Dashboard unavailable: {e.kind}: {e}",
                extra={"campaign_id": campaign_id},
            )
            return DashboardState(
                campaign_id=campaign_id,
                status=DashboardStatus.UNAVAILABLE,
                error=str(e),
                generation=generation,
            )
        return DashboardState(
            campaign_id=campaign_id,
            status=DashboardStatus.READY,
            view=view,
            generation=generation,
        )


class DashboardController:
    """The dashboard state one viewer sees.

    A load for the campaign already loading joins that load. A load for a
    different campaign, or a refresh, starts a new generation and cancels the
    load it supersedes. Only the newest generation is ever committed to
    ``state``; callers whose load was superseded wait for and return the
    newest state instead.
    """

    def __init__(self, service: DashboardService):
        self.service = service
        self.state: Optional[DashboardState] = None
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_campaign: Optional[int] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def load(self, campaign_id: int, refresh: bool = False) -> DashboardState:
        """Load a campaign's dashboard.

        ``refresh`` forces a new read even when one for the same campaign is
        in flight, e.g. after a write that the in-flight read predates.
        """
        if self.loading and not refresh and self._inflight_campaign == campaign_id:
            return await self._settle(self._inflight)

        self._generation += 1
        generation = self._generation
        if self.loading:
            self._inflight.cancel()
            logger.info(
                f"Superseded in-flight load (generation {generation - 1})",
                extra={"campaign_id": campaign_id},
            )
        task = asyncio.create_task(self.service.load_state(campaign_id, generation))
        self._inflight = task
        self._inflight_campaign = campaign_id
        return await self._settle(task)

    async def _settle(self, task: asyncio.Task) -> DashboardState:
        while True:
            try:
                result = await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
                task = self._inflight
                continue
            if result.generation == self._generation:
                self.state = result
                return result
            logger.debug(
                f"Discarding stale result (generation {result.generation})",
                extra={"campaign_id": result.campaign_id},
            )
            task = self._inflight

    async def reload(self) -> Optional[DashboardState]:
        """Re-run the read path for the current campaign."""
        if self.state is None:
            return None
        return await self.load(self.state.campaign_id, refresh=True)
