from __future__ import annotations

import logging
from typing import List, Tuple

from dnslib import QTYPE, RCODE, RR, DNSHeader, DNSRecord
from dnslib.dns import DNSError
from dnslib.label import DNSBuffer, DNSLabel

logger = logging.getLogger(__name__)


class _UncompressedBuffer(DNSBuffer):
    # Stored RRsets are concatenated, so names must not point at offsets.
    def encode_name(self, name):
        self.encode_name_nocompress(name)


def pack_rrset(records: List[RR]) -> bytes:
    """Brief: Pack RRs back-to-back in uncompressed wire format.

    Inputs:
      - records: RRs to store (typically one RRset).

    Outputs:
      - bytes: Data suitable for an EIP-1185 setDNSRecords() call and for
        unpack_rrset().
    """

    buf = _UncompressedBuffer()
    for rr in records:
        rr.pack(buf)
    return bytes(buf.data)


def unpack_rrset(data: bytes) -> List[RR]:
    """Brief: Decode back-to-back wire-format resource records.

    Inputs:
      - data: Packed RRs as stored by an EIP-1185 resolver.

    Outputs:
      - list[RR]: Parsed records in storage order.

    Raises:
      - DNSError: data is truncated or not valid RR wire format.

    Example:
      >>> rr = RR.fromZone("example.eth. 300 IN A 192.0.2.1")[0]
      >>> buf = DNSBuffer(); rr.pack(buf)
      >>> [str(r.rdata) for r in unpack_rrset(bytes(buf.data))]
      ['192.0.2.1']
    """

    buf = DNSBuffer(data)
    records: List[RR] = []
    while buf.remaining() > 0:
        records.append(RR.parse(buf))
    return records


def split_sections(
    records: List[RR], qname: str, qtype: int
) -> Tuple[List[RR], List[RR]]:
    """Brief: Place resolved RRs into answer and authority sections.

    Inputs:
      - records: RRs returned by the resolution chain.
      - qname: Query name.
      - qtype: Numeric query type.

    Outputs:
      - (answer, authority):
        - NS records owned by another name are a referral: they and any DS
          go to authority and the answer is empty.
        - Otherwise records of qtype (or CNAME) are answers and the rest
          (DS next to an NS answer) go to authority.
    """

    owner = DNSLabel(qname)
    referral = any(
        rr.rtype == QTYPE.NS and rr.rname != owner for rr in records
    ) and qtype != QTYPE.NS

    if referral:
        return [], list(records)

    answer: List[RR] = []
    authority: List[RR] = []
    for rr in records:
        if rr.rtype in (qtype, QTYPE.CNAME):
            answer.append(rr)
        else:
            authority.append(rr)
    return answer, authority


def build_reply(request: DNSRecord, records: List[RR]) -> DNSRecord:
    """Brief: Build a response to request carrying records.

    Inputs:
      - request: Parsed DNS query.
      - records: RRs from unpack_rrset().

    Outputs:
      - DNSRecord: Authoritative answer, or a non-authoritative referral when
        records delegate the name away.
    """

    qname = str(request.q.qname)
    answer, authority = split_sections(records, qname, int(request.q.qtype))
    aa = 1 if answer or not authority else 0
    reply = DNSRecord(
        DNSHeader(id=request.header.id, qr=1, aa=aa, ra=1), q=request.q
    )
    for rr in answer:
        reply.add_answer(rr)
    for rr in authority:
        reply.add_auth(rr)
    return reply


def servfail_reply(request: DNSRecord) -> DNSRecord:
    reply = DNSRecord(DNSHeader(id=request.header.id, qr=1, ra=1), q=request.q)
    reply.header.rcode = RCODE.SERVFAIL
    return reply


__all__ = [
    "DNSError",
    "build_reply",
    "pack_rrset",
    "servfail_reply",
    "split_sections",
    "unpack_rrset",
]
