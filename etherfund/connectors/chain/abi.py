"""EtherFund — Contract ABI.

The canonical EtherFund interface. A build artifact can replace it through
``contract_abi_path`` (Hardhat/Truffle artifact with an ``abi`` field, or a raw
ABI array).
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from etherfund.core.logging import get_logger

logger = get_logger("chain.abi")


def _arg(name: str, abi_type: str, indexed: Optional[bool] = None) -> Dict[str, Any]:
    arg = {"name": name, "type": abi_type, "internalType": abi_type}
    if indexed is not None:
        arg["indexed"] = indexed
    return arg


def _event(name: str, inputs: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "event", "name": name, "anonymous": False, "inputs": inputs}


ETHERFUND_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "campaigns",
        "stateMutability": "view",
        "inputs": [_arg("campaignId", "uint256")],
        "outputs": [
            _arg("owner", "address"),
            _arg("name", "string"),
            _arg("description", "string"),
            _arg("imageUrl", "string"),
            _arg("minContribution", "uint256"),
            _arg("goal", "uint256"),
            _arg("balance", "uint256"),
            _arg("contributorCount", "uint256"),
        ],
    },
    {
        "type": "function",
        "name": "createCampaign",
        "stateMutability": "nonpayable",
        "inputs": [
            _arg("minContribution", "uint256"),
            _arg("name", "string"),
            _arg("description", "string"),
            _arg("imageUrl", "string"),
            _arg("target", "uint256"),
        ],
        "outputs": [_arg("campaignId", "uint256")],
    },
    {
        "type": "function",
        "name": "addCampaignUpdate",
        "stateMutability": "nonpayable",
        "inputs": [_arg("campaignId", "uint256"), _arg("ipfsHash", "string")],
        "outputs": [],
    },
    _event(
        "DonationReceived",
        [
            _arg("campaignId", "uint256", indexed=True),
            _arg("donor", "address", indexed=True),
            _arg("amount", "uint256", indexed=False),
            _arg("timestamp", "uint256", indexed=False),
        ],
    ),
    _event(
        "FundsDisbursed",
        [
            _arg("campaignId", "uint256", indexed=True),
            _arg("recipient", "address", indexed=True),
            _arg("amount", "uint256", indexed=False),
            _arg("timestamp", "uint256", indexed=False),
        ],
    ),
    _event(
        "CampaignUpdate",
        [
            _arg("campaignId", "uint256", indexed=True),
            _arg("ipfsHash", "string", indexed=False),
            _arg("timestamp", "uint256", indexed=False),
        ],
    ),
    _event(
        "CampaignCreated",
        [
            _arg("campaignId", "uint256", indexed=True),
            _arg("owner", "address", indexed=True),
            _arg("name", "string", indexed=False),
            _arg("target", "uint256", indexed=False),
        ],
    ),
]

DONATION_EVENT = "DonationReceived"
DISBURSEMENT_EVENT = "FundsDisbursed"
UPDATE_EVENT = "CampaignUpdate"
CREATED_EVENT = "CampaignCreated"


def load_abi(path: Optional[str] = None) -> List[Dict[str, Any]]:
    """Return the ABI from a build artifact, or the embedded one.

    Raises:
        FileNotFoundError if ``path`` is given but does not exist.
        ValueError if the file holds neither an ABI array nor an ``abi`` field.
    """
    if not path:
        return ETHERFUND_ABI

    artifact = Path(path)
    if not artifact.exists():
        raise FileNotFoundError(f"ABI artifact not found: {artifact}")

    with artifact.open(encoding="utf-8") as f:
        data = json.load(f)

    abi = data.get("abi") if isinstance(data, dict) else data
    if not isinstance(abi, list) or not abi:
        raise ValueError(f"No ABI found in {artifact}")

    logger.info(f"Loaded contract ABI from {artifact} ({len(abi)} entries)")
    return abi


def output_names(abi: List[Dict[str, Any]], function_name: str) -> List[str]:
    """Names of a function's outputs, used to key positional call results."""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return [o.get("name", "") for o in entry.get("outputs", [])]
    raise ValueError(f"Function {function_name} not in ABI")
