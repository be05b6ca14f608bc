"""EIP-1185 DNS resolution over an ENS-style registry.

Brief:
  EnsDnsResolver walks registry -> resolver -> dnsRecord() to find the RRset
  for a (name, type) query, applying DNS fallback precedence when no exact
  record exists:

    1. exact (name, type), with DS appended to NS answers,
    2. NS (+DS) delegation at the zone apex,
    3. CNAME at name.

  Resolver handles and record bytes are cached in one shared EnsCache.

Inputs:
  - A ContractFactory binding registry/resolver addresses to handles.

Outputs:
  - Packed RRset bytes, or None when the chain holds no data.
"""

from __future__ import annotations

import logging
from typing import Optional

from dnslib import QTYPE

from .cache import EnsCache
from .constants import CACHE_TTL, DEFAULT_CACHE_SIZE, ENS_ADDRESS, ENS_TLD
from .contracts import ContractFactory, Resolver, is_zero_address, to_bytes
from .errors import RemoteFailure
from .naming import (
    fqdn,
    hash_dns_name,
    namehash,
    parse_abstract_registry,
    to_node,
    trim_fqdn,
)

logger = logging.getLogger(__name__)


class EnsDnsResolver:
    """Brief: Resolution engine owning its cache and contract factory.

    Inputs:
      - factory: ContractFactory used to bind registries and resolvers.
      - registry_address: Root registry for resolve_from_ens (defaults to
        the well-known ENS registry).
      - cache: Optional EnsCache; when omitted one is created from
        cache_size/cache_ttl.
      - cache_size: Capacity of the created cache (entries).
      - cache_ttl: Freshness of cached entries in seconds.

    Outputs:
      - EnsDnsResolver instance.

    Example use:
        >>> from ensdns.contracts import Web3ContractFactory
        >>> engine = EnsDnsResolver(Web3ContractFactory())
        >>> # rrset = await engine.resolve_from_ens("www.example.eth.", 1)
    """

    def __init__(
        self,
        factory: ContractFactory,
        *,
        registry_address: str = ENS_ADDRESS,
        cache: Optional[EnsCache] = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
        cache_ttl: float = CACHE_TTL,
    ) -> None:
        self.factory = factory
        self.registry_address = registry_address
        self.cache = cache if cache is not None else EnsCache(cache_size, cache_ttl)
        self.ens_resolver: Optional[Resolver] = None

    async def init(self) -> None:
        """Brief: Warm the resolver of the top-level apex ("eth")."""

        self.ens_resolver = await self.get_ens_resolver(ENS_TLD)

    def reset_cache(self) -> None:
        self.cache.reset()

    async def get_ens_resolver(self, node: str) -> Optional[Resolver]:
        return await self.get_resolver(node, self.registry_address)

    async def get_resolver(
        self, node: str, registry_address: str
    ) -> Optional[Resolver]:
        """Brief: Return the resolver registered for node in a registry.

        Inputs:
          - node: Registry name (zone apex), without trailing dot.
          - registry_address: Address of the registry to ask.

        Outputs:
          - Optional[Resolver]: Cached or freshly bound handle; None when the
            registry reports the zero address. None is never cached, so the
            registry is asked again on every lookup until a resolver is set.

        Raises:
          - RemoteFailure: The registry call failed.
        """

        cached = self.cache.get_resolver(node, registry_address)
        if cached is not None:
            return cached

        registry = self.factory.registry(registry_address)
        resolver_addr = await registry.resolver(namehash(node))
        if is_zero_address(resolver_addr):
            logger.debug("no resolver for %s in registry %s", node, registry_address)
            return None

        resolver = self.factory.resolver(resolver_addr)
        logger.debug("resolver for %s in registry %s: %s", node, registry_address, resolver_addr)
        self.cache.set_resolver(node, registry_address, resolver)
        return resolver

    async def get_rrset(
        self, name: str, qtype: int, node: str, resolver: Optional[Resolver]
    ) -> Optional[bytes]:
        """Brief: Fetch the RRset stored for exactly (name, qtype).

        Inputs:
          - name: Owner name as queried (cache keys use it verbatim).
          - qtype: Numeric DNS type.
          - node: Zone apex the resolver serves.
          - resolver: Resolver handle or None.

        Outputs:
          - Optional[bytes]: Packed RRs, or None when there is no resolver or
            the stored set is empty.

        Raises:
          - RemoteFailure: The dnsRecord() call failed or returned hex text
            that does not decode; nothing is cached.
        """

        if resolver is None:
            return None

        record = self.cache.get_record(name, qtype, resolver.address)
        if record is None:
            raw = await resolver.dns_record(
                namehash(trim_fqdn(node)), hash_dns_name(name), qtype
            )
            try:
                record = to_bytes(raw)
            except ValueError as exc:
                raise RemoteFailure(
                    f"dnsRecord on {resolver.address} returned undecodable data: {exc}",
                    address=resolver.address,
                    method="dnsRecord",
                ) from exc
            self.cache.set_record(name, qtype, resolver.address, record)
        else:
            logger.debug("cache hit %s/%s via %s", name, qtype, resolver.address)

        if not record:
            return None
        return record

    async def resolve_with_resolver(
        self, name: str, qtype: int, node: str, resolver: Optional[Resolver]
    ) -> Optional[bytes]:
        """Brief: Apply exact -> NS/DS delegation -> CNAME precedence.

        Inputs:
          - name: Query name.
          - qtype: Numeric DNS type.
          - node: Zone apex for the query.
          - resolver: Resolver serving node (None yields None).

        Outputs:
          - Optional[bytes]: Answer bytes; NS answers carry the DS set
            appended when one exists.
        """

        rrset = await self.get_rrset(name, qtype, node, resolver)
        if rrset:
            if qtype == QTYPE.NS:
                ds_set = await self.get_rrset(name, QTYPE.DS, node, resolver)
                if ds_set:
                    return rrset + ds_set
            return rrset

        # Without the full zone we cannot prove that no other data exists
        # below a cut, so delegation is only looked up at the apex.
        sname = fqdn(node)
        ns_set = await self.get_rrset(sname, QTYPE.NS, node, resolver)
        if ns_set:
            ds_set = await self.get_rrset(sname, QTYPE.DS, node, resolver)
            if ds_set:
                return ns_set + ds_set
            return ns_set

        return await self.get_rrset(name, QTYPE.CNAME, node, resolver)

    async def resolve_from_ens(
        self, name: str, qtype: int, node: Optional[str] = None
    ) -> Optional[bytes]:
        """Brief: Resolve (name, qtype) through the root registry."""

        if not node:
            node = to_node(name)
        resolver = await self.get_ens_resolver(trim_fqdn(node))
        return await self.resolve_with_resolver(name, qtype, node, resolver)

    async def resolve_from_registry(
        self,
        name: str,
        qtype: int,
        registry_address: str,
        node: Optional[str] = None,
    ) -> Optional[bytes]:
        """Brief: Resolve (name, qtype) through an explicit registry address."""

        if not node:
            node = to_node(name)
        resolver = await self.get_resolver(trim_fqdn(node), registry_address)
        return await self.resolve_with_resolver(name, qtype, node, resolver)

    async def resolve_from_abstract_ens(
        self, name: str, qtype: int, ns: str, node: Optional[str] = None
    ) -> Optional[bytes]:
        """Brief: Resolve through the registry named by an "<addr>._eth.<zone>" NS.

        Inputs:
          - name: Query name.
          - qtype: Numeric DNS type.
          - ns: NS name carrying the registry address in its first label.
          - node: Optional zone apex; derived from name when omitted.

        Outputs:
          - Optional[bytes]: Answer bytes, or None (without any remote call)
            when ns does not have the expected shape.
        """

        registry_address = parse_abstract_registry(ns)
        if registry_address is None:
            logger.debug("ignoring malformed registry NS %r", ns)
            return None
        return await self.resolve_from_registry(name, qtype, registry_address, node)

    async def resolve_text(self, name: str, key: str) -> Optional[str]:
        """Brief: Look up an EIP-634 text record for a registry name.

        Inputs:
          - name: Registry name such as "example.eth".
          - key: Text record key such as "url" or "email".

        Outputs:
          - Optional[str]: Value, or None when no resolver or empty text.
        """

        resolver = await self.get_ens_resolver(trim_fqdn(name))
        if resolver is None:
            return None
        value = await resolver.text(namehash(name), key)
        return value or None
