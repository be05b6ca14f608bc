from __future__ import annotations

from typing import Any, Dict, List

# Well-known ENS registry (same address on mainnet and the public testnets).
ENS_ADDRESS = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_RPC_URL = "https://rpc.ankr.com/eth"

# Apex whose resolver is warmed by EnsDnsResolver.init().
ENS_TLD = "eth"

# Middle label marking an NS owner name as "<registry address>._eth.<zone>".
ABSTRACT_REGISTRY_MARKER = "_eth"
ADDRESS_TEXT_LENGTH = 42

CACHE_TTL = 30 * 60
DEFAULT_CACHE_SIZE = 3000
DEFAULT_TIMEOUT = 10.0


def _fn(
    name: str,
    inputs: List[tuple],
    outputs: List[str],
    mutability: str = "view",
) -> Dict[str, Any]:
    """Build a JSON ABI function entry from (name, type) pairs."""
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


ENS_ABI: List[Dict[str, Any]] = [
    _fn("setOwner", [("node", "bytes32"), ("owner", "address")], [], "nonpayable"),
    _fn(
        "setSubnodeOwner",
        [("node", "bytes32"), ("label", "bytes32"), ("owner", "address")],
        [],
        "nonpayable",
    ),
    _fn(
        "setResolver", [("node", "bytes32"), ("resolver", "address")], [], "nonpayable"
    ),
    _fn("owner", [("node", "bytes32")], ["address"]),
    _fn("resolver", [("node", "bytes32")], ["address"]),
]

RESOLVER_ABI: List[Dict[str, Any]] = [
    _fn(
        "interfaceImplementer",
        [("nodehash", "bytes32"), ("interfaceId", "bytes4")],
        ["address"],
    ),
    _fn("addr", [("nodehash", "bytes32")], ["address"]),
    _fn("name", [("nodehash", "bytes32")], ["string"]),
    _fn("text", [("nodehash", "bytes32"), ("key", "string")], ["string"]),
    _fn("contenthash", [("nodehash", "bytes32")], ["bytes"]),
    _fn("ABI", [("node", "bytes32"), ("contentType", "uint256")], ["uint256", "bytes"]),
    _fn(
        "dnsRecord",
        [("node", "bytes32"), ("name", "bytes32"), ("resource", "uint16")],
        ["bytes"],
    ),
    _fn("hasDNSRecords", [("node", "bytes32"), ("name", "bytes32")], ["bool"]),
]
