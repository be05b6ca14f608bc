from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Coroutine, Dict, List, Optional

from dnslib import DNSRecord
from pydantic import BaseModel, Field

from ensdns.constants import (
    CACHE_TTL,
    DEFAULT_CACHE_SIZE,
    DEFAULT_RPC_URL,
    DEFAULT_TIMEOUT,
    ENS_ADDRESS,
)
from ensdns.contracts import ContractFactory, Web3ContractFactory
from ensdns.errors import RemoteFailure
from ensdns.plugins.resolve.base import (
    BasePlugin,
    PluginContext,
    PluginDecision,
    plugin_aliases,
)
from ensdns.resolver import EnsDnsResolver
from ensdns.rrset import DNSError, build_reply, servfail_reply, unpack_rrset

logger = logging.getLogger(__name__)


class EnsRecordsConfig(BaseModel):
    """Brief: Typed configuration model for EnsRecords.

    Inputs:
      - rpc_url: Ethereum JSON-RPC endpoint.
      - registry: Root registry address used for `suffixes`.
      - cache_size: Shared record/resolver cache capacity (entries).
      - cache_ttl: Seconds a cached record or resolver stays fresh.
      - timeout: Seconds allowed per contract call.
      - suffixes: Names answered through the root registry.
      - zones: Mapping of zone suffix -> NS name of the form
        "<registry address>._eth.<zone>" for zones served by another registry.
      - warm_cache: Look up the "eth" resolver during setup().

    Outputs:
      - EnsRecordsConfig instance with normalized field types.
    """

    rpc_url: str = Field(default=DEFAULT_RPC_URL)
    registry: str = Field(default=ENS_ADDRESS)
    cache_size: int = Field(default=DEFAULT_CACHE_SIZE, ge=1)
    cache_ttl: int = Field(default=CACHE_TTL, ge=0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    suffixes: List[str] = Field(default_factory=lambda: ["eth"])
    zones: Dict[str, str] = Field(default_factory=dict)
    warm_cache: bool = False

    class Config:
        extra = "allow"


@plugin_aliases("ens", "ens_records", "eip1185")
class EnsRecords(BasePlugin):
    """
    Answer DNS queries from EIP-1185 records stored on an ENS registry.

    Example use:
        In config.yaml:
        plugins:
          - module: ens
            config:
              rpc_url: https://rpc.ankr.com/eth
              suffixes: [eth]
              zones:
                forever: 0x0000000000000000000000000000000000000001._eth.forever
    """

    pre_priority = 50

    @classmethod
    def get_config_model(cls):
        """Brief: Return the Pydantic model used to validate plugin configuration.

        Inputs:
          - None.

        Outputs:
          - EnsRecordsConfig class for use by the core config loader.
        """

        return EnsRecordsConfig

    def make_factory(self) -> ContractFactory:
        return Web3ContractFactory(
            str(self.config.get("rpc_url", DEFAULT_RPC_URL)),
            timeout=float(self.config.get("timeout", DEFAULT_TIMEOUT)),
        )

    def setup(self) -> None:
        """
        Brief: Build the resolution engine and start its event loop thread.

        Inputs:
          - None (reads self.config; see EnsRecordsConfig).

        Outputs:
          - None; sets self.engine, self.suffixes and self.zones.
        """

        self.engine = EnsDnsResolver(
            self.make_factory(),
            registry_address=str(self.config.get("registry", ENS_ADDRESS)),
            cache_size=int(self.config.get("cache_size", DEFAULT_CACHE_SIZE)),
            cache_ttl=float(self.config.get("cache_ttl", CACHE_TTL)),
        )
        self.suffixes = [
            self.normalize_qname(s) for s in (self.config.get("suffixes") or ["eth"])
        ]
        zones = self.config.get("zones") or {}
        self.zones = {self.normalize_qname(k): str(v) for k, v in dict(zones).items()}

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name=f"ensdns-{self.name}", daemon=True
        )
        self._thread.start()

        if bool(self.config.get("warm_cache", False)):
            self._run(self.engine.init())
            logger.info("EnsRecords warmed resolver %r", self.engine.ens_resolver)

    def close(self) -> None:
        loop = getattr(self, "_loop", None)
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(loop.stop)
        self._thread.join(timeout=5)
        loop.close()

    def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    @staticmethod
    def _in_zone(name: str, suffix: str) -> bool:
        return name == suffix or name.endswith("." + suffix)

    def _lookup(self, name: str, qtype: int) -> Optional[Coroutine[Any, Any, Optional[bytes]]]:
        """Brief: Pick the registry path for name, or None when not served.

        Inputs:
          - name: Fully qualified query name.
          - qtype: Numeric query type.

        Outputs:
          - Coroutine resolving to RRset bytes, or None.
        """

        bare = self.normalize_qname(name)
        # Most specific zone wins.
        for zone in sorted(self.zones, key=len, reverse=True):
            if self._in_zone(bare, zone):
                return self.engine.resolve_from_abstract_ens(name, qtype, self.zones[zone])
        for suffix in self.suffixes:
            if self._in_zone(bare, suffix):
                return self.engine.resolve_from_ens(name, qtype)
        return None

    def pre_resolve(
        self, qname: str, qtype: int, req: bytes, ctx: PluginContext
    ) -> Optional[PluginDecision]:
        """Brief: Answer queries under configured suffixes/zones from the chain.

        Inputs:
          - qname: Queried domain name.
          - qtype: DNS record type (numeric code).
          - req: Raw DNS request bytes.
          - ctx: Plugin context.

        Outputs:
          - PluginDecision("override") carrying the packed reply when records
            were found, or a SERVFAIL reply when a contract call failed.
          - None when the name is not served here or the chain has no data,
            so other plugins or upstreams may answer.
        """

        if not self.targets_qtype(qtype):
            return None

        name = self.normalize_qname(qname, lower=True) + "."
        coro = self._lookup(name, int(qtype))
        if coro is None:
            return None

        try:
            request = DNSRecord.parse(req)
        except DNSError as e:
            coro.close()
            logger.warning("EnsRecords parse failure: %s", e)
            return None

        try:
            rrset = self._run(coro)
        except RemoteFailure as e:
            logger.warning("EnsRecords lookup failed for %s: %s", name, e)
            return PluginDecision(
                action="override",
                stat="servfail",
                response=servfail_reply(request).pack(),
                plugin_label=self.name,
            )

        if rrset is None:
            logger.debug("EnsRecords no data for %s %s", name, self.qtype_name(qtype))
            return None

        try:
            records = unpack_rrset(rrset)
        except DNSError as e:
            logger.warning("EnsRecords malformed RRset for %s: %s", name, e)
            return PluginDecision(
                action="override",
                stat="servfail",
                response=servfail_reply(request).pack(),
                plugin_label=self.name,
            )

        logger.info(
            "EnsRecords answered %s %s with %d record(s)",
            name,
            self.qtype_name(qtype),
            len(records),
        )
        reply = build_reply(request, records)
        return PluginDecision(
            action="override", response=reply.pack(), plugin_label=self.name
        )
