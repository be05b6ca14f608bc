"""Registry and resolver contract capabilities.

Brief:
  The engine only talks to the chain through the abstract Registry and
  Resolver classes below. Web3ContractFactory binds them to addresses with
  web3.py; tests supply in-memory factories with the same surface.

Inputs:
  - Contract addresses and an AsyncWeb3 instance (or RPC URL).

Outputs:
  - Registry / Resolver handles whose methods are coroutines.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Tuple

from web3 import AsyncWeb3, Web3

from .constants import DEFAULT_RPC_URL, DEFAULT_TIMEOUT, ENS_ABI, RESOLVER_ABI
from .errors import RemoteFailure, RemoteTimeout

logger = logging.getLogger(__name__)


def to_bytes(value: Any) -> bytes:
    """Brief: Normalize a contract `bytes` result to raw bytes.

    Inputs:
      - value: bytes-like result, hex text with a "0x" prefix, or None.

    Outputs:
      - bytes: Raw bytes; b"" for None, "0x" or empty input.

    Example:
      >>> to_bytes("0x0102")
      b'\\x01\\x02'
    """

    if value is None:
        return b""
    if isinstance(value, str):
        # Hex text always carries a two character "0x" prefix.
        return bytes.fromhex(value[2:])
    return bytes(value)


def is_zero_address(address: Optional[str]) -> bool:
    if not address:
        return True
    try:
        return int(str(address), 16) == 0
    except ValueError:
        return False


class Registry:
    """Brief: Read capability of an ENS-style registry contract.

    Inputs:
      - address: Registry contract address.

    Outputs:
      - Registry instance; subclasses implement the coroutines.
    """

    def __init__(self, address: str) -> None:
        self.address = address

    async def resolver(self, node_hash: bytes) -> str:
        raise NotImplementedError("Registry.resolver() must be implemented by a subclass")

    async def owner(self, node_hash: bytes) -> str:
        raise NotImplementedError("Registry.owner() must be implemented by a subclass")


class Resolver:
    """Brief: Read capability of a public resolver bound to one address.

    Inputs:
      - address: Resolver contract address; also used in record cache keys.

    Outputs:
      - Resolver instance; subclasses implement the coroutines.

    Notes:
      - dns_record() may return raw bytes or "0x"-prefixed hex text; callers
        normalize through to_bytes().
    """

    def __init__(self, address: str) -> None:
        self.address = address

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.address!r})"

    async def dns_record(self, node_hash: bytes, name_hash: bytes, qtype: int) -> Any:
        raise NotImplementedError(
            "Resolver.dns_record() must be implemented by a subclass"
        )

    async def has_dns_records(self, node_hash: bytes, name_hash: bytes) -> bool:
        raise NotImplementedError(
            "Resolver.has_dns_records() must be implemented by a subclass"
        )

    async def addr(self, node_hash: bytes) -> str:
        raise NotImplementedError("Resolver.addr() must be implemented by a subclass")

    async def name(self, node_hash: bytes) -> str:
        raise NotImplementedError("Resolver.name() must be implemented by a subclass")

    async def text(self, node_hash: bytes, key: str) -> str:
        raise NotImplementedError("Resolver.text() must be implemented by a subclass")

    async def contenthash(self, node_hash: bytes) -> bytes:
        raise NotImplementedError(
            "Resolver.contenthash() must be implemented by a subclass"
        )

    async def abi(self, node_hash: bytes, content_types: int) -> Tuple[int, bytes]:
        raise NotImplementedError("Resolver.abi() must be implemented by a subclass")


class ContractFactory:
    """Brief: Bind Registry and Resolver handles to contract addresses."""

    def registry(self, address: str) -> Registry:
        raise NotImplementedError(
            "ContractFactory.registry() must be implemented by a subclass"
        )

    def resolver(self, address: str) -> Resolver:
        raise NotImplementedError(
            "ContractFactory.resolver() must be implemented by a subclass"
        )


class _Web3Contract:
    """Brief: Shared call plumbing for web3-backed handles.

    Inputs:
      - w3: AsyncWeb3 instance.
      - address: Contract address (any case; checksummed on first call).
      - abi: JSON ABI.
      - timeout: Per-call timeout in seconds.

    Outputs:
      - Mixin providing _call(method, *args).
    """

    def _init_contract(self, w3: AsyncWeb3, address: str, abi: list, timeout: float) -> None:
        self._w3 = w3
        self._abi = abi
        self._timeout = float(timeout)
        self._contract = None
        self._raw_address = address

    def _bound(self):
        if self._contract is None:
            self._contract = self._w3.eth.contract(
                address=Web3.to_checksum_address(self._raw_address), abi=self._abi
            )
        return self._contract

    async def _call(self, method: str, *args: Any) -> Any:
        """Brief: Call a view method, mapping every failure to RemoteFailure.

        Inputs:
          - method: ABI function name.
          - *args: Function arguments.

        Outputs:
          - Decoded return value.

        Raises:
          - RemoteTimeout: The call exceeded the timeout.
          - RemoteFailure: Invalid address, network error, revert or
            decoding error.
        """

        logger.debug("eth_call %s.%s", self._raw_address, method)
        try:
            fn = getattr(self._bound().functions, method)
            return await asyncio.wait_for(fn(*args).call(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise RemoteTimeout(
                f"{method} on {self._raw_address} timed out after {self._timeout}s",
                address=self._raw_address,
                method=method,
            ) from exc
        except Exception as exc:
            raise RemoteFailure(
                f"{method} on {self._raw_address} failed: {exc}",
                address=self._raw_address,
                method=method,
            ) from exc


class Web3Registry(_Web3Contract, Registry):
    def __init__(self, w3: AsyncWeb3, address: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        Registry.__init__(self, address)
        self._init_contract(w3, address, ENS_ABI, timeout)

    async def resolver(self, node_hash: bytes) -> str:
        return await self._call("resolver", node_hash)

    async def owner(self, node_hash: bytes) -> str:
        return await self._call("owner", node_hash)


class Web3Resolver(_Web3Contract, Resolver):
    def __init__(self, w3: AsyncWeb3, address: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        Resolver.__init__(self, address)
        self._init_contract(w3, address, RESOLVER_ABI, timeout)

    async def dns_record(self, node_hash: bytes, name_hash: bytes, qtype: int) -> bytes:
        return await self._call("dnsRecord", node_hash, name_hash, int(qtype))

    async def has_dns_records(self, node_hash: bytes, name_hash: bytes) -> bool:
        return bool(await self._call("hasDNSRecords", node_hash, name_hash))

    async def addr(self, node_hash: bytes) -> str:
        return await self._call("addr", node_hash)

    async def name(self, node_hash: bytes) -> str:
        return await self._call("name", node_hash)

    async def text(self, node_hash: bytes, key: str) -> str:
        return await self._call("text", node_hash, key)

    async def contenthash(self, node_hash: bytes) -> bytes:
        return await self._call("contenthash", node_hash)

    async def abi(self, node_hash: bytes, content_types: int) -> Tuple[int, bytes]:
        content_type, data = await self._call("ABI", node_hash, int(content_types))
        return int(content_type), bytes(data)


class Web3ContractFactory(ContractFactory):
    """Brief: ContractFactory backed by an AsyncWeb3 HTTP provider.

    Inputs:
      - rpc_url: JSON-RPC endpoint (ignored when w3 is given).
      - timeout: Per-call timeout in seconds.
      - w3: Optional pre-built AsyncWeb3 instance.

    Outputs:
      - Web3ContractFactory instance.

    Example use:
        >>> factory = Web3ContractFactory("https://rpc.ankr.com/eth")
        >>> registry = factory.registry("0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e")
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        w3: Optional[AsyncWeb3] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout = float(timeout)
        self.w3 = w3 if w3 is not None else AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))

    def registry(self, address: str) -> Registry:
        return Web3Registry(self.w3, address, self.timeout)

    def resolver(self, address: str) -> Resolver:
        return Web3Resolver(self.w3, address, self.timeout)
