"""DNS name helpers: apex derivation, wire encoding and registry hashing.

Brief:
  Node hashes follow EIP-137 namehash; record owner names are hashed as
  keccak256 over their DNS wire encoding, which is how EIP-1185 resolvers
  key their dnsRecord() storage.
"""

from __future__ import annotations

from typing import Optional

from dnslib.label import DNSBuffer
from web3 import Web3

from .constants import ABSTRACT_REGISTRY_MARKER, ADDRESS_TEXT_LENGTH


def trim_fqdn(name: str) -> str:
    """Brief: Strip a single trailing root dot from a DNS name.

    Inputs:
      - name: DNS name, fully qualified or not.

    Outputs:
      - str: Name without the trailing dot ("." becomes "").
    """

    if name.endswith("."):
        return name[:-1]
    return name


def fqdn(name: str) -> str:
    """Brief: Return name with exactly one trailing root dot."""

    if name.endswith("."):
        return name
    return name + "."


def to_node(name: str) -> str:
    """Brief: Derive the registered node (zone apex) for a query name.

    Inputs:
      - name: Query name such as "a.b.example.eth." or "eth".

    Outputs:
      - str: The last two labels joined by "." when the trimmed name has more
        than one label; otherwise the name unchanged.

    Example:
      >>> to_node("a.b.example.eth.")
      'example.eth'
      >>> to_node("eth")
      'eth'
      >>> to_node("eth.")
      'eth.'
    """

    labels = trim_fqdn(name).split(".")
    if len(labels) > 1:
        return ".".join(labels[-2:])
    # Single label: returned as given, so "eth." keeps its trailing dot.
    return name


def encode_name(name: str) -> bytes:
    """Brief: Encode a DNS name in uncompressed wire form.

    Inputs:
      - name: DNS name; a missing trailing dot is implied.

    Outputs:
      - bytes: Length-prefixed labels terminated by the root label.

    Example:
      >>> encode_name("example.eth")
      b'\\x07example\\x03eth\\x00'
    """

    buf = DNSBuffer()
    buf.encode_name_nocompress(trim_fqdn(name) or ".")
    return bytes(buf.data)


def keccak256(data: bytes) -> bytes:
    return bytes(Web3.keccak(primitive=data))


def namehash(name: str) -> bytes:
    """Brief: Compute the EIP-137 namehash of a registry name.

    Inputs:
      - name: Registry name such as "example.eth" (trailing dot ignored).

    Outputs:
      - bytes: 32-byte node hash; the empty name hashes to 32 zero bytes.
    """

    node = b"\x00" * 32
    trimmed = trim_fqdn(name)
    if not trimmed:
        return node
    for label in reversed(trimmed.lower().split(".")):
        node = keccak256(node + keccak256(label.encode("utf-8")))
    return node


def hash_dns_name(name: str) -> bytes:
    """Brief: keccak256 of the wire-encoded DNS name (dnsRecord owner key)."""

    return keccak256(encode_name(name))


def parse_abstract_registry(ns: str) -> Optional[str]:
    """Brief: Extract a registry address from an "<address>._eth.<zone>" NS name.

    Inputs:
      - ns: NS owner/target name, optionally fully qualified.

    Outputs:
      - Optional[str]: The first label when the name has exactly three labels,
        the middle label is "_eth" and the first label is 42 characters long;
        None otherwise.

    Example:
      >>> parse_abstract_registry("0x" + "a" * 40 + "._eth.forever.")
      '0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa'
      >>> parse_abstract_registry("ns1._eth.forever") is None
      True
    """

    labels = trim_fqdn(ns).split(".")
    if len(labels) != 3:
        return None
    if labels[1] != ABSTRACT_REGISTRY_MARKER:
        return None
    addr = labels[0]
    if len(addr) != ADDRESS_TEXT_LENGTH:
        return None
    return addr
