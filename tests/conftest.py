"""
Brief: Global pytest configuration: src/ on sys.path, per-test 10s timeout,
and in-memory registry/resolver fakes shared by engine and plugin tests.

Inputs:
  - None

Outputs:
  - None
"""

import os
import signal
import sys

import pytest

# Ensure 'src' is on sys.path so 'ensdns' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from dnslib import RR  # noqa: E402

from ensdns.constants import ENS_ADDRESS, ZERO_ADDRESS  # noqa: E402
from ensdns.contracts import ContractFactory, Registry, Resolver  # noqa: E402
from ensdns.naming import hash_dns_name, namehash  # noqa: E402
from ensdns.rrset import pack_rrset  # noqa: E402


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


# Install handler if supported on this platform
if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        yield


class FakeRegistry(Registry):
    """Brief: Registry answering resolver() from a node-hash mapping."""

    def __init__(self, factory, address):
        super().__init__(address)
        self.factory = factory

    async def resolver(self, node_hash):
        self.factory.calls.append(("resolver", self.address, node_hash))
        if self.factory.fail is not None:
            raise self.factory.fail
        nodes = self.factory.registries.get(self.address, {})
        return nodes.get(node_hash, ZERO_ADDRESS)

    async def owner(self, node_hash):
        return ZERO_ADDRESS


class FakeResolver(Resolver):
    """Brief: Resolver answering dns_record()/text() from factory tables."""

    def __init__(self, factory, address):
        super().__init__(address)
        self.factory = factory

    async def dns_record(self, node_hash, name_hash, qtype):
        self.factory.calls.append(("dnsRecord", self.address, name_hash, qtype))
        if self.factory.fail is not None:
            raise self.factory.fail
        return self.factory.records.get((self.address, node_hash, name_hash, qtype), "0x")

    async def text(self, node_hash, key):
        self.factory.calls.append(("text", self.address, node_hash, key))
        return self.factory.texts.get((self.address, node_hash, key), "")


class FakeContractFactory(ContractFactory):
    """Brief: In-memory ContractFactory recording every remote call.

    Inputs:
      - None.

    Outputs:
      - Factory with helpers to register resolvers, records and text values.
        Setting `fail` to an exception makes every remote call raise it.
    """

    def __init__(self):
        self.registries = {}
        self.records = {}
        self.texts = {}
        self.calls = []
        self.fail = None

    def registry(self, address):
        return FakeRegistry(self, address)

    def resolver(self, address):
        return FakeResolver(self, address)

    def set_resolver(self, node, resolver_address, registry_address=ENS_ADDRESS):
        self.registries.setdefault(registry_address, {})[namehash(node)] = resolver_address

    def add_records(self, resolver_address, node, name, qtype, *zone_lines):
        rrs = []
        for line in zone_lines:
            rrs.extend(RR.fromZone(line))
        key = (resolver_address, namehash(node), hash_dns_name(name), int(qtype))
        self.records[key] = pack_rrset(rrs)

    def add_text(self, resolver_address, name, key, value):
        self.texts[(resolver_address, namehash(name), key)] = value

    def remote_calls(self, kind=None):
        return [c for c in self.calls if kind is None or c[0] == kind]


@pytest.fixture
def fake_factory():
    """
    Brief: Provide a fresh FakeContractFactory for each test.

    Inputs:
      - None

    Outputs:
      - FakeContractFactory instance
    """
    return FakeContractFactory()
