"""
Shared fixtures for EtherFund tests
"""
from decimal import Decimal

import pytest

from etherfund.models.raw_models import TransactionReceipt
from etherfund.models.record_models import CampaignSnapshot
from factories import OWNER


@pytest.fixture
def sample_snapshot():
    """Campaign halfway to a 10 ETH goal"""
    return CampaignSnapshot(
        campaign_id=7,
        goal_amount=Decimal("10"),
        raised_amount=Decimal("5"),
        contributor_count=3,
        minimum_contribution=Decimal("0.01"),
        name="Clean Water",
        description="Wells for three villages",
        image_url="https://example.org/well.png",
        owner=OWNER,
    )


@pytest.fixture
def sample_receipt():
    """Confirmed write receipt"""
    return TransactionReceipt(
        transaction_hash="0x" + "ab" * 32,
        block_number=42,
        status=1,
        gas_used=21000,
        campaign_id=7,
    )
