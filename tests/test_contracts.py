"""
Brief: Tests for ensdns.contracts web3 bindings using a stand-in AsyncWeb3.

Inputs:
  - None

Outputs:
  - None
"""

import asyncio

import pytest

from ensdns.constants import ENS_ADDRESS, ZERO_ADDRESS
from ensdns.contracts import (
    ContractFactory,
    Registry,
    Web3ContractFactory,
    Web3Registry,
    Web3Resolver,
    is_zero_address,
    to_bytes,
)
from ensdns.errors import RemoteFailure, RemoteTimeout


class _Call:
    def __init__(self, result=None, exc=None, delay=0.0):
        self.result = result
        self.exc = exc
        self.delay = delay

    async def call(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


class _Functions:
    def __init__(self, behaviours, seen):
        self._behaviours = behaviours
        self._seen = seen

    def __getattr__(self, method):
        def _fn(*args):
            self._seen.append((method, args))
            return self._behaviours[method]

        return _fn


class _Eth:
    def __init__(self, behaviours):
        self.behaviours = behaviours
        self.seen = []
        self.bound = []

    def contract(self, address, abi):
        self.bound.append(address)

        class _Contract:
            functions = _Functions(self.behaviours, self.seen)

        return _Contract()


class FakeW3:
    """Brief: Minimal object exposing w3.eth.contract(...).functions.X(...).call()."""

    def __init__(self, **behaviours):
        self.eth = _Eth(behaviours)


def test_to_bytes_normalizes_hex_and_bytes():
    assert to_bytes(None) == b""
    assert to_bytes("0x") == b""
    assert to_bytes("0x0102ff") == b"\x01\x02\xff"
    assert to_bytes(b"\x01") == b"\x01"
    assert to_bytes(bytearray(b"\x02")) == b"\x02"


def test_is_zero_address():
    assert is_zero_address(ZERO_ADDRESS)
    assert is_zero_address(None)
    assert is_zero_address("")
    assert not is_zero_address(ENS_ADDRESS)


def test_registry_resolver_call_is_checksummed_and_forwarded():
    """
    Brief: Registry.resolver() binds a checksummed address and passes args.

    Inputs:
      - None

    Outputs:
      - None: Asserts result, bound address and call arguments
    """
    w3 = FakeW3(resolver=_Call(result="0x" + "11" * 20))
    registry = Web3Registry(w3, ENS_ADDRESS.lower(), timeout=1)

    result = asyncio.run(registry.resolver(b"\x00" * 32))

    assert result == "0x" + "11" * 20
    assert w3.eth.bound == [ENS_ADDRESS]
    assert w3.eth.seen == [("resolver", (b"\x00" * 32,))]


def test_resolver_dns_record_passes_qtype_as_int():
    w3 = FakeW3(dnsRecord=_Call(result=b"\x01\x02"))
    resolver = Web3Resolver(w3, ENS_ADDRESS)

    assert asyncio.run(resolver.dns_record(b"n" * 32, b"h" * 32, 1)) == b"\x01\x02"
    assert w3.eth.seen == [("dnsRecord", (b"n" * 32, b"h" * 32, 1))]


def test_resolver_text_and_has_dns_records():
    w3 = FakeW3(text=_Call(result="https://example.org"), hasDNSRecords=_Call(result=1))
    resolver = Web3Resolver(w3, ENS_ADDRESS)

    assert asyncio.run(resolver.text(b"n" * 32, "url")) == "https://example.org"
    assert asyncio.run(resolver.has_dns_records(b"n" * 32, b"h" * 32)) is True


def test_call_timeout_raises_remote_timeout():
    w3 = FakeW3(resolver=_Call(result=ZERO_ADDRESS, delay=1.0))
    registry = Web3Registry(w3, ENS_ADDRESS, timeout=0.01)

    with pytest.raises(RemoteTimeout) as excinfo:
        asyncio.run(registry.resolver(b"\x00" * 32))

    assert excinfo.value.method == "resolver"
    assert isinstance(excinfo.value, RemoteFailure)


def test_call_error_raises_remote_failure_with_cause():
    boom = RuntimeError("execution reverted")
    w3 = FakeW3(dnsRecord=_Call(exc=boom))
    resolver = Web3Resolver(w3, ENS_ADDRESS)

    with pytest.raises(RemoteFailure) as excinfo:
        asyncio.run(resolver.dns_record(b"n" * 32, b"h" * 32, 1))

    assert excinfo.value.__cause__ is boom
    assert excinfo.value.address == ENS_ADDRESS


def test_invalid_address_raises_remote_failure():
    w3 = FakeW3(resolver=_Call(result=ZERO_ADDRESS))
    registry = Web3Registry(w3, "0x1234")

    with pytest.raises(RemoteFailure):
        asyncio.run(registry.resolver(b"\x00" * 32))
    assert w3.eth.bound == []


def test_factory_binds_handles_with_shared_w3():
    w3 = FakeW3()
    factory = Web3ContractFactory(timeout=3, w3=w3)

    registry = factory.registry(ENS_ADDRESS)
    resolver = factory.resolver("0x" + "11" * 20)

    assert isinstance(registry, Registry)
    assert registry.address == ENS_ADDRESS
    assert resolver.address == "0x" + "11" * 20
    assert "0x1111" in repr(resolver)


def test_abstract_capabilities_raise_not_implemented():
    with pytest.raises(NotImplementedError):
        asyncio.run(Registry(ENS_ADDRESS).resolver(b"\x00" * 32))
    with pytest.raises(NotImplementedError):
        ContractFactory().resolver(ENS_ADDRESS)
