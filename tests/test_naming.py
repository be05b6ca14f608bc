"""
Brief: Tests for ensdns.naming helpers (apex derivation, hashing, encoding).

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from ensdns.naming import (
    encode_name,
    fqdn,
    hash_dns_name,
    keccak256,
    namehash,
    parse_abstract_registry,
    to_node,
    trim_fqdn,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("a.b.example.eth.", "example.eth"),
        ("www.example.eth", "example.eth"),
        ("example.eth.", "example.eth"),
        ("eth", "eth"),
        ("eth.", "eth."),
    ],
)
def test_to_node_keeps_last_two_labels(name, expected):
    """
    Brief: to_node returns the last two labels, or the name when single-label.

    Inputs:
      - name: query name
      - expected: derived apex

    Outputs:
      - None: Asserts derived node
    """
    assert to_node(name) == expected


def test_to_node_single_label_keeps_trailing_dot():
    assert to_node("eth.") == "eth."
    assert namehash(trim_fqdn(to_node("eth."))) == namehash("eth")


def test_trim_and_fqdn_are_inverse():
    assert trim_fqdn("example.eth.") == "example.eth"
    assert trim_fqdn("example.eth") == "example.eth"
    assert trim_fqdn(".") == ""
    assert fqdn("example.eth") == "example.eth."
    assert fqdn("example.eth.") == "example.eth."


def test_namehash_known_vectors():
    """
    Brief: namehash matches the published EIP-137 vectors.

    Inputs:
      - None

    Outputs:
      - None: Asserts digests
    """
    assert namehash("") == b"\x00" * 32
    assert namehash("eth").hex() == (
        "93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
    )
    assert namehash("foo.eth").hex() == (
        "de9b09fd7c5f901e23a3f19fecc54828e9c848539801e86591bd9801b019f84f"
    )


def test_namehash_ignores_trailing_dot_and_case():
    assert namehash("Foo.ETH.") == namehash("foo.eth")


def test_encode_name_wire_format():
    assert encode_name("example.eth") == b"\x07example\x03eth\x00"
    assert encode_name("example.eth.") == b"\x07example\x03eth\x00"
    assert encode_name(".") == b"\x00"


def test_hash_dns_name_is_keccak_of_wire_name():
    wire = b"\x03www\x07example\x03eth\x00"
    assert hash_dns_name("www.example.eth.") == keccak256(wire)
    assert len(hash_dns_name("www.example.eth.")) == 32


def test_parse_abstract_registry_accepts_expected_shape():
    addr = "0x" + "ab" * 20
    assert parse_abstract_registry(f"{addr}._eth.forever.") == addr
    assert parse_abstract_registry(f"{addr}._eth.forever") == addr


@pytest.mark.parametrize(
    "ns",
    [
        "ns1._eth.forever",
        "0x" + "ab" * 20 + ".eth.forever",
        "0x" + "ab" * 20 + "._eth.forever.extra",
        "_eth.forever",
        "0x" + "ab" * 19 + "._eth.forever",
    ],
)
def test_parse_abstract_registry_rejects_other_shapes(ns):
    """
    Brief: Wrong label count, marker or address length yields None.

    Inputs:
      - ns: malformed NS name

    Outputs:
      - None: Asserts None
    """
    assert parse_abstract_registry(ns) is None
