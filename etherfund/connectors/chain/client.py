"""EtherFund — Contract Gateway.

Typed reads and writes against the EtherFund contract over a JSON-RPC
provider. The connection handle is passed in explicitly; nothing here reads
an ambient provider. Reads and writes are never retried: a retried write can
double-submit.
"""

import asyncio
import time
from typing import Any, Awaitable, Dict, List, Optional, Union

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.logs import DISCARD

from etherfund.config import Settings, settings
from etherfund.connectors.chain.abi import (
    CREATED_EVENT,
    load_abi,
    output_names,
)
from etherfund.connectors.chain.transformer import to_snapshot
from etherfund.core.errors import (
    EtherFundError,
    RpcError,
    Timeout,
    UnavailableProvider,
    UserRejected,
)
from etherfund.core.logging import get_logger
from etherfund.models.raw_models import RawEvent, TransactionReceipt
from etherfund.models.record_models import CampaignSnapshot

logger = get_logger("chain.client")

USER_REJECTED_CODE = 4001  # EIP-1193
BlockId = Union[int, str]


def _rpc_error_body(exc: Exception) -> Dict[str, Any]:
    """Extract the JSON-RPC error object from a web3 exception, if any."""
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict) and isinstance(response.get("error"), dict):
        return response["error"]
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return {}


def _is_user_rejection(exc: Exception) -> bool:
    body = _rpc_error_body(exc)
    if body.get("code") == USER_REJECTED_CODE:
        return True
    message = str(body.get("message") or exc).lower()
    return "user denied" in message or "user rejected" in message


def connect(config: Settings = settings) -> Optional[AsyncWeb3]:
    """Build the connection handle from configuration."""
    if not config.rpc_url:
        logger.warning("No RPC URL configured, chain access disabled")
        return None
    return AsyncWeb3(AsyncHTTPProvider(config.rpc_url))


class ContractGateway:
    """Async gateway to the EtherFund contract."""

    def __init__(
        self,
        w3: Optional[AsyncWeb3],
        contract_address: str | None = None,
        abi: List[Dict[str, Any]] | None = None,
        timeout: float | None = None,
        confirmation_timeout: float | None = None,
        sender_address: str | None = None,
        signer_private_key: str | None = None,
        start_block: int | None = None,
    ):
        self.w3 = w3
        self.abi = abi or load_abi(settings.contract_abi_path)
        self.contract_address = contract_address or settings.contract_address
        self.timeout = timeout or settings.rpc_timeout_seconds
        self.confirmation_timeout = (
            confirmation_timeout or settings.confirmation_timeout_seconds
        )
        self.sender_address = sender_address or settings.sender_address
        self.signer_private_key = signer_private_key or settings.signer_private_key
        self.start_block = settings.start_block if start_block is None else start_block
        self._contract = None

    @property
    def contract(self):
        if self.w3 is None:
            raise UnavailableProvider("No wallet or JSON-RPC provider is connected")
        if not self.contract_address:
            raise UnavailableProvider("No contract address configured")
        if self._contract is None:
            self._contract = self.w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(self.contract_address),
                abi=self.abi,
            )
        return self._contract

    async def close(self) -> None:
        provider = getattr(self.w3, "provider", None)
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    # ── Core Call Guard ──

    async def _guard(self, awaitable: Awaitable[Any], action: str, timeout: float | None = None) -> Any:
        """Await a provider call, translating failures into EtherFund errors."""
        limit = timeout or self.timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=limit)
        except EtherFundError:
            raise
        except (asyncio.TimeoutError, TimeExhausted) as e:
            raise Timeout(f"{action} timed out after {limit}s") from e
        except (Web3Exception, ValueError, aiohttp.ClientError, OSError) as e:
            if _is_user_rejection(e):
                raise UserRejected(f"{action} was rejected by the signer") from e
            body = _rpc_error_body(e)
            raise RpcError(f"{action} failed: {e}", code=body.get("code")) from e

    # ── Reads ──

    async def fetch_snapshot(self, campaign_id: int) -> CampaignSnapshot:
        """Read the campaign struct and convert it to a snapshot."""
        contract = self.contract
        started = time.monotonic()
        result = await self._guard(
            contract.functions.campaigns(campaign_id).call(),
            f"campaigns({campaign_id})",
        )
        fields = dict(zip(output_names(self.abi, "campaigns"), result))
        logger.debug(
            f"Fetched snapshot for campaign {campaign_id}",
            extra={
                "campaign_id": campaign_id,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return to_snapshot(campaign_id, fields)

    async def query_events(
        self,
        event_name: str,
        campaign_id: int,
        from_block: BlockId | None = None,
        to_block: BlockId | None = None,
    ) -> List[RawEvent]:
        """Fetch logs of one event type for a campaign, oldest first."""
        contract = self.contract
        event = getattr(contract.events, event_name)
        started = time.monotonic()
        logs = await self._guard(
            event().get_logs(
                argument_filters={"campaignId": campaign_id},
                from_block=self.start_block if from_block is None else from_block,
                to_block="latest" if to_block is None else to_block,
            ),
            f"{event_name} logs for campaign {campaign_id}",
        )
        events = [
            RawEvent(
                event_name=log["event"],
                args=dict(log["args"]),
                block_number=int(log["blockNumber"]),
                log_index=int(log["logIndex"]),
                transaction_hash=AsyncWeb3.to_hex(log["transactionHash"]),
            )
            for log in logs
        ]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        logger.info(
            f"Fetched {len(events)} {event_name} events",
            extra={
                "campaign_id": campaign_id,
                "event_name": event_name,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return events

    async def chain_status(self) -> Dict[str, Any]:
        """Connection, head block and gas price, for the status panel."""
        status = {"connected": False, "block_number": 0, "gas_price_gwei": "0", "chain_id": None}
        if self.w3 is None:
            return status
        try:
            if not await self._guard(self.w3.is_connected(), "is_connected"):
                return status
            status["connected"] = True
            status["block_number"] = await self._guard(self.w3.eth.block_number, "block_number")
            gas_wei = await self._guard(self.w3.eth.gas_price, "gas_price")
            status["gas_price_gwei"] = "{:.1f}".format(AsyncWeb3.from_wei(gas_wei, "gwei"))
            status["chain_id"] = await self._guard(self.w3.eth.chain_id, "chain_id")
        except EtherFundError as e:
            logger.warning(f"Chain status incomplete: {e}")
        return status

    # ── Writes ──

    async def _send(self, function_call: Any, action: str) -> Any:
        """Sign (or ask the node to sign) and broadcast; return the raw receipt."""
        if self.signer_private_key:
            account = self.w3.eth.account.from_key(self.signer_private_key)
            nonce = await self._guard(
                self.w3.eth.get_transaction_count(account.address), "get_transaction_count"
            )
            txn = await self._guard(
                function_call.build_transaction({"from": account.address, "nonce": nonce}),
                f"build {action}",
            )
            signed = account.sign_transaction(txn)
            tx_hash = await self._guard(
                self.w3.eth.send_raw_transaction(signed.raw_transaction), f"send {action}"
            )
        else:
            sender = self.sender_address
            if not sender:
                accounts = await self._guard(self.w3.eth.accounts, "eth_accounts")
                if not accounts:
                    raise UnavailableProvider("Provider exposes no account to sign with")
                sender = accounts[0]
            tx_hash = await self._guard(
                function_call.transact({"from": AsyncWeb3.to_checksum_address(sender)}),
                f"send {action}",
            )

        tx_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info(f"Broadcast {action}, waiting for confirmation", extra={"tx_hash": tx_hex})
        receipt = await self._guard(
            self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirmation_timeout),
            f"confirm {action}",
            timeout=self.confirmation_timeout + self.timeout,
        )
        if int(receipt["status"]) != 1:
            raise RpcError(f"{action} reverted in transaction {tx_hex}")
        return receipt

    @staticmethod
    def _receipt(raw: Any, campaign_id: Optional[int] = None) -> TransactionReceipt:
        return TransactionReceipt(
            transaction_hash=AsyncWeb3.to_hex(raw["transactionHash"]),
            block_number=int(raw["blockNumber"]),
            status=int(raw["status"]),
            gas_used=int(raw.get("gasUsed", 0)),
            campaign_id=campaign_id,
        )

    async def submit_update(self, campaign_id: int, content_id: str) -> TransactionReceipt:
        """Record an update's content id on-chain; returns after one confirmation."""
        contract = self.contract
        raw = await self._send(
            contract.functions.addCampaignUpdate(campaign_id, content_id),
            f"addCampaignUpdate({campaign_id})",
        )
        receipt = self._receipt(raw, campaign_id)
        logger.info(
            f"Update {content_id} confirmed in block {receipt.block_number}",
            extra={"campaign_id": campaign_id, "content_id": content_id, "tx_hash": receipt.transaction_hash},
        )
        return receipt

    async def create_campaign(
        self,
        minimum_contribution_wei: int,
        name: str,
        description: str,
        image_url: str,
        target_wei: int,
    ) -> TransactionReceipt:
        """Create a campaign; the receipt carries the new id from CampaignCreated."""
        contract = self.contract
        raw = await self._send(
            contract.functions.createCampaign(
                minimum_contribution_wei, name, description, image_url, target_wei
            ),
            "createCampaign",
        )
        created = getattr(contract.events, CREATED_EVENT)().process_receipt(raw, errors=DISCARD)
        campaign_id = int(created[0]["args"]["campaignId"]) if created else None
        receipt = self._receipt(raw, campaign_id)
        logger.info(
            f"Campaign {campaign_id} created in block {receipt.block_number}",
            extra={"campaign_id": campaign_id, "tx_hash": receipt.transaction_hash},
        )
        return receipt
