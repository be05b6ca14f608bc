"""Shared record/resolver cache for the ENS DNS engine.

Brief:
  One capacity-bounded LRU store holds both DNS record entries and resolver
  handles, distinguished by a tag in the key.

Notes:
  - Staleness is checked on read only. A stale entry reads as a miss but
    stays in the store (and keeps its slot) until it is overwritten by the
    next successful fetch or pushed out by LRU pressure.
  - Empty records are stored as b"" so "queried and empty" is remembered;
    absent resolvers are never stored.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Optional, Tuple

from cachetools import LRUCache

from .constants import CACHE_TTL, DEFAULT_CACHE_SIZE

if TYPE_CHECKING:
    from .contracts import Resolver

logger = logging.getLogger(__name__)

# Stored for records that were queried and found empty.
EMPTY_RECORD = b""


class CacheTag(enum.IntEnum):
    DNS = 0
    RESOLVER = 1


class EnsCache:
    """Thread-safe two-tier cache of DNS records and resolver handles.

    Brief:
      Entries are (stored_at, value) pairs inside a cachetools.LRUCache. The
      TTL is compared against time.time() on every read.

    Inputs:
      - size: Maximum number of entries across both tiers.
      - ttl: Seconds an entry stays fresh.

    Outputs:
      - EnsCache instance.

    Example use:
        >>> cache = EnsCache(10)
        >>> cache.set_record("example.eth.", 1, "0xabc", b"rr")
        >>> cache.get_record("example.eth.", 1, "0xabc")
        b'rr'
    """

    def __init__(self, size: int = DEFAULT_CACHE_SIZE, ttl: float = CACHE_TTL) -> None:
        self.size = int(size)
        self.ttl = float(ttl)
        self._store: LRUCache = LRUCache(maxsize=self.size)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    @staticmethod
    def to_dns_key(name: str, qtype: int, resolver_address: str) -> Tuple[Any, ...]:
        return (CacheTag.DNS, name, int(qtype), resolver_address)

    @staticmethod
    def to_resolver_key(node: str, registry_address: str) -> Tuple[Any, ...]:
        return (CacheTag.RESOLVER, node, registry_address)

    def _get_fresh(self, key: Tuple[Any, ...]) -> Any | None:
        """Brief: Return the cached value for key unless missing or stale.

        Inputs:
          - key: Tagged cache key.

        Outputs:
          - Any | None: Value when present and younger than ttl.
        """

        now = time.time()
        with self._lock:
            item = self._store.get(key)
        if item is None:
            return None
        stored_at, value = item
        if now > stored_at + self.ttl:
            logger.debug("stale cache entry %r", key)
            return None
        return value

    def _put(self, key: Tuple[Any, ...], value: Any) -> None:
        with self._lock:
            self._store[key] = (time.time(), value)

    def set_record(
        self, name: str, qtype: int, resolver_address: str, record: Optional[bytes]
    ) -> None:
        """Brief: Cache RRset bytes; a falsy record is cached as EMPTY_RECORD."""

        self._put(
            self.to_dns_key(name, qtype, resolver_address),
            bytes(record) if record else EMPTY_RECORD,
        )

    def get_record(
        self, name: str, qtype: int, resolver_address: str
    ) -> Optional[bytes]:
        """Brief: Return cached RRset bytes.

        Outputs:
          - None on miss or stale entry, EMPTY_RECORD when the record was
            fetched and found empty, otherwise the raw bytes.
        """

        return self._get_fresh(self.to_dns_key(name, qtype, resolver_address))

    def set_resolver(
        self, node: str, registry_address: str, resolver: Optional["Resolver"]
    ) -> None:
        # Absence is not cached so a newly set resolver is seen right away.
        if resolver is None:
            return
        self._put(self.to_resolver_key(node, registry_address), resolver)

    def get_resolver(self, node: str, registry_address: str) -> Optional["Resolver"]:
        return self._get_fresh(self.to_resolver_key(node, registry_address))

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
