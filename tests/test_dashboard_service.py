"""
Unit Tests for the Dashboard Service and Controller
Concurrent read path, unavailable state, superseded loads
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from etherfund.core.errors import NotFound, RpcError, Timeout
from etherfund.models.dashboard_models import DashboardState, DashboardStatus
from etherfund.reader.event_reader import EventLogReader
from etherfund.readmodel.service import DashboardController, DashboardService
from factories import DONOR, disbursement, donation, raw_event, update


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def mock_chain(sample_snapshot):
    chain = MagicMock()
    chain.fetch_snapshot = AsyncMock(return_value=sample_snapshot)
    return chain


@pytest.fixture
def mock_reader():
    reader = MagicMock()
    reader.load_donations = AsyncMock(
        return_value=[donation(ts, f"0x{ts:02x}") for ts in (9, 8, 7, 6, 5, 4, 3)]
    )
    reader.load_disbursements = AsyncMock(return_value=[disbursement(2, "0xd2")])
    reader.load_updates = AsyncMock(return_value=[update(1, "0xu1")])
    return reader


@pytest.fixture
def service(mock_chain, mock_reader):
    return DashboardService(mock_chain, mock_reader, recent_limit=5)


# ============================================================================
# BUILD DASHBOARD
# ============================================================================

class TestBuildDashboard:
    """Read path fan-out and fold"""

    @pytest.mark.asyncio
    async def test_builds_view(self, service, mock_chain, mock_reader):
        view = await service.build_dashboard(7)

        assert view.campaign_id == 7
        assert view.progress_ratio == pytest.approx(0.5)
        assert len(view.recent_donations) == 5
        assert len(view.audit_log) == 8
        assert len(view.updates) == 1
        mock_chain.fetch_snapshot.assert_awaited_once_with(7)
        mock_reader.load_updates.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self, mock_chain, mock_reader, sample_snapshot):
        started = []
        release = asyncio.Event()

        def waiting(name, value):
            async def effect(campaign_id):
                started.append(name)
                await release.wait()
                return value
            return effect

        mock_chain.fetch_snapshot = AsyncMock(side_effect=waiting("snapshot", sample_snapshot))
        mock_reader.load_donations = AsyncMock(side_effect=waiting("donations", []))
        mock_reader.load_disbursements = AsyncMock(side_effect=waiting("disbursements", []))
        mock_reader.load_updates = AsyncMock(side_effect=waiting("updates", []))
        service = DashboardService(mock_chain, mock_reader)

        task = asyncio.create_task(service.build_dashboard(7))
        for _ in range(10):
            await asyncio.sleep(0)
        assert sorted(started) == ["disbursements", "donations", "snapshot", "updates"]

        release.set()
        view = await task
        assert view.audit_log == []

    @pytest.mark.asyncio
    async def test_missing_update_content_keeps_other_updates(self, mock_chain):
        events = [
            raw_event("CampaignUpdate", {"campaignId": 7, "ipfsHash": "QmOk", "timestamp": 10}, block=1, tx="0x01"),
            raw_event("CampaignUpdate", {"campaignId": 7, "ipfsHash": "QmGone", "timestamp": 20}, block=2, tx="0x02"),
        ]

        async def query_events(event_name, campaign_id, from_block=None, to_block=None):
            return events if event_name == "CampaignUpdate" else []

        async def get(content_id):
            if content_id == "QmGone":
                raise NotFound("gone")
            return {"content": "still here"}

        mock_chain.query_events = AsyncMock(side_effect=query_events)
        store = MagicMock()
        store.get = AsyncMock(side_effect=get)
        service = DashboardService(mock_chain, EventLogReader(mock_chain, store))

        view = await service.build_dashboard(7)

        assert [u.content_id for u in view.updates] == ["QmOk"]


class TestLoadState:
    """Errors collapse into one unavailable state"""

    @pytest.mark.asyncio
    async def test_ready(self, service):
        state = await service.load_state(7, generation=3)
        assert state.status == DashboardStatus.READY
        assert state.view is not None
        assert state.generation == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RpcError("node down"), NotFound("no campaign"), Timeout("slow")])
    async def test_unavailable(self, service, mock_chain, error):
        mock_chain.fetch_snapshot.side_effect = error
        state = await service.load_state(7)
        assert state.status == DashboardStatus.UNAVAILABLE
        assert state.view is None
        assert state.error == str(error)

    @pytest.mark.asyncio
    async def test_history_failure_is_unavailable(self, service, mock_reader):
        mock_reader.load_disbursements.side_effect = RpcError("logs failed")
        state = await service.load_state(7)
        assert state.status == DashboardStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_out_of_range_event_time_is_unavailable(self, mock_chain):
        bad = raw_event(
            "DonationReceived",
            {"campaignId": 7, "donor": DONOR, "amount": 1, "timestamp": 10**20},
            block=1,
        )

        async def query_events(event_name, campaign_id, from_block=None, to_block=None):
            return [bad] if event_name == "DonationReceived" else []

        mock_chain.query_events = AsyncMock(side_effect=query_events)
        service = DashboardService(mock_chain, EventLogReader(mock_chain, MagicMock()))

        state = await service.load_state(7)

        assert state.status == DashboardStatus.UNAVAILABLE


# ============================================================================
# CONTROLLER
# ============================================================================

class TestDashboardController:
    """Generation counter and cancellation of superseded loads"""

    @pytest.mark.asyncio
    async def test_load_commits_state(self, service):
        controller = DashboardController(service)
        state = await controller.load(7)
        assert controller.state is state
        assert state.generation == 1

    @pytest.mark.asyncio
    async def test_superseded_load_never_overwrites(self):
        slow_started = asyncio.Event()
        never = asyncio.Event()

        async def load_state(campaign_id, generation=0):
            if campaign_id == 1:
                slow_started.set()
                await never.wait()
            return DashboardState(
                campaign_id=campaign_id,
                status=DashboardStatus.UNAVAILABLE,
                generation=generation,
            )

        service = MagicMock()
        service.load_state = load_state
        controller = DashboardController(service)

        first = asyncio.create_task(controller.load(1))
        await slow_started.wait()
        second = await controller.load(2)
        first_result = await first

        assert second.campaign_id == 2
        assert first_result.campaign_id == 2
        assert controller.state.campaign_id == 2
        assert controller.generation == 2

    @pytest.mark.asyncio
    async def test_stale_completed_result_discarded(self):
        results = {}

        async def load_state(campaign_id, generation=0):
            state = DashboardState(
                campaign_id=campaign_id, status=DashboardStatus.UNAVAILABLE, generation=generation
            )
            results[generation] = state
            return state

        service = MagicMock()
        service.load_state = load_state
        controller = DashboardController(service)

        await controller.load(1)
        await controller.load(2)

        assert controller.state is results[2]

    @pytest.mark.asyncio
    async def test_reload_uses_current_campaign(self, service):
        controller = DashboardController(service)
        assert await controller.reload() is None
        await controller.load(7)
        state = await controller.reload()
        assert state.campaign_id == 7
        assert state.generation == 2

    @pytest.mark.asyncio
    async def test_same_campaign_loads_share_one_read(self):
        calls = []
        release = asyncio.Event()

        async def load_state(campaign_id, generation=0):
            calls.append(generation)
            await release.wait()
            return DashboardState(
                campaign_id=campaign_id, status=DashboardStatus.UNAVAILABLE, generation=generation
            )

        service = MagicMock()
        service.load_state = load_state
        controller = DashboardController(service)

        first = asyncio.create_task(controller.load(7))
        second = asyncio.create_task(controller.load(7))
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(first, second)

        assert calls == [1]
        assert results[0] is results[1]
        assert controller.generation == 1

    @pytest.mark.asyncio
    async def test_staggered_viewers_each_wait_one_load(self):
        load_seconds = 0.1

        async def load_state(campaign_id, generation=0):
            await asyncio.sleep(load_seconds)
            return DashboardState(
                campaign_id=campaign_id, status=DashboardStatus.UNAVAILABLE, generation=generation
            )

        service = MagicMock()
        service.load_state = load_state
        controller = DashboardController(service)
        loop = asyncio.get_running_loop()

        async def viewer():
            started = loop.time()
            await controller.load(1)
            return loop.time() - started

        tasks = []
        for _ in range(11):
            tasks.append(asyncio.create_task(viewer()))
            await asyncio.sleep(load_seconds / 2)
        latencies = await asyncio.gather(*tasks)

        assert max(latencies) < load_seconds * 3
        assert controller.generation < 11

    @pytest.mark.asyncio
    async def test_refresh_supersedes_same_campaign(self):
        release = asyncio.Event()

        async def load_state(campaign_id, generation=0):
            if generation == 1:
                await release.wait()
            return DashboardState(
                campaign_id=campaign_id, status=DashboardStatus.UNAVAILABLE, generation=generation
            )

        service = MagicMock()
        service.load_state = load_state
        controller = DashboardController(service)

        first = asyncio.create_task(controller.load(7))
        await asyncio.sleep(0)
        refreshed = await controller.load(7, refresh=True)

        assert refreshed.generation == 2
        assert (await first).generation == 2
        assert controller.state is refreshed
