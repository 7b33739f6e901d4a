"""
Unit Tests for the Raw Event Transformer
Decoding of contract logs, the campaign struct and update payloads
"""
from decimal import Decimal

import pytest

from etherfund.connectors.chain.transformer import (
    ZERO_ADDRESS,
    dedupe,
    to_disbursement,
    to_donation,
    to_snapshot,
    to_update_body,
    to_update_ref,
)
from etherfund.core.errors import DecodeError, NotFound
from factories import DONOR, OWNER, RECIPIENT, at, donation, raw_event


class TestSnapshot:
    """campaigns(id) struct decoding"""

    def test_converts_wei_exactly(self):
        snapshot = to_snapshot(
            3,
            {
                "owner": OWNER,
                "name": "Clean Water",
                "description": "Wells",
                "imageUrl": "https://example.org/well.png",
                "minContribution": 10**16,
                "goal": 10 * 10**18,
                "balance": 1_234_567_890_123_456_789,
                "contributorCount": 4,
            },
        )
        assert snapshot.campaign_id == 3
        assert snapshot.goal_amount == Decimal("10")
        assert snapshot.raised_amount == Decimal("1.234567890123456789")
        assert snapshot.minimum_contribution == Decimal("0.01")
        assert snapshot.contributor_count == 4
        assert snapshot.name == "Clean Water"

    def test_zero_struct_is_not_found(self):
        with pytest.raises(NotFound):
            to_snapshot(99, {"owner": ZERO_ADDRESS, "goal": 0, "balance": 0, "contributorCount": 0})

    def test_zero_goal_with_owner_is_a_campaign(self):
        snapshot = to_snapshot(1, {"owner": OWNER, "goal": 0, "balance": 0, "contributorCount": 0})
        assert snapshot.goal_amount == 0

    def test_other_struct_layout_is_decode_error(self):
        fields = {"owner": OWNER, "goal": 10 * 10**18, "raised": 5 * 10**18, "donorsCount": 3}
        with pytest.raises(DecodeError) as exc_info:
            to_snapshot(1, fields)
        assert "balance" in str(exc_info.value)
        assert "contributorCount" in str(exc_info.value)


class TestEventDecoding:
    """RawEvent -> typed records"""

    def test_donation(self):
        event = raw_event(
            "DonationReceived",
            {"campaignId": 7, "donor": DONOR, "amount": 5 * 10**17, "timestamp": 1_700_000_000},
            block=10,
            log_index=3,
            tx="0xabc",
        )
        record = to_donation(event)
        assert record.donor_address == DONOR
        assert record.amount == Decimal("0.5")
        assert record.occurred_at == at(1_700_000_000)
        assert record.identity == ("0xabc", 3)
        assert record.block_number == 10

    def test_disbursement(self):
        event = raw_event(
            "FundsDisbursed",
            {"campaignId": 7, "recipient": RECIPIENT, "amount": 10**18, "timestamp": 1_700_000_100},
            block=11,
        )
        record = to_disbursement(event)
        assert record.recipient_address == RECIPIENT
        assert record.amount == Decimal("1")

    def test_update_ref(self):
        event = raw_event(
            "CampaignUpdate",
            {"campaignId": 7, "ipfsHash": "QmUpdate", "timestamp": 1_700_000_200},
            block=12,
        )
        ref = to_update_ref(event)
        assert ref.content_id == "QmUpdate"
        assert ref.occurred_at == at(1_700_000_200)

    def test_missing_argument_is_decode_error(self):
        event = raw_event("DonationReceived", {"campaignId": 7, "donor": DONOR}, block=1)
        with pytest.raises(DecodeError):
            to_donation(event)

    @pytest.mark.parametrize("timestamp", [10**20, -(10**20)])
    def test_out_of_range_timestamp_is_decode_error(self, timestamp):
        event = raw_event(
            "DonationReceived",
            {"campaignId": 7, "donor": DONOR, "amount": 1, "timestamp": timestamp},
            block=1,
        )
        with pytest.raises(DecodeError):
            to_donation(event)


class TestUpdateBody:
    """Stored update payloads"""

    def test_millisecond_timestamp(self):
        body = to_update_body({"content": "Wells dug", "timestamp": 1_700_000_000_000})
        assert body.content == "Wells dug"
        assert body.authored_at == at(1_700_000_000)

    def test_authored_at_seconds(self):
        body = to_update_body({"content": "Wells dug", "authoredAt": 1_700_000_000})
        assert body.authored_at == at(1_700_000_000)

    def test_no_timestamp(self):
        assert to_update_body({"content": "x"}).authored_at is None

    @pytest.mark.parametrize("payload", [None, [], {"text": "x"}, {"content": 5}])
    def test_malformed_payload(self, payload):
        with pytest.raises(DecodeError):
            to_update_body(payload)

    def test_bad_timestamp(self):
        with pytest.raises(DecodeError):
            to_update_body({"content": "x", "timestamp": "soon"})


class TestDedupe:
    """Identity is (tx hash, log index)"""

    def test_same_tx_different_log_index_kept(self):
        records = [donation(1, "0xaa", 0), donation(1, "0xaa", 1)]
        assert len(dedupe(records)) == 2

    def test_exact_duplicate_dropped(self):
        records = [donation(1, "0xaa", 0), donation(1, "0xaa", 0), donation(2, "0xbb", 0)]
        assert [r.identity for r in dedupe(records)] == [("0xaa", 0), ("0xbb", 0)]
