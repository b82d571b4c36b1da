"""Miscellaneous query and response tidying."""

from __future__ import annotations

import random

import dns.flags
import dns.message
import dns.opcode
import dns.rdataclass
import dns.rdatatype
import dns.rcode
import dns.rrset

from dnspipe.bufsize import set_udp_payload
from dnspipe.chain import ChainNode, QueryContext, exec_chain_node
from dnspipe.edns0_filter import PADDING, remove_edns0, remove_option

# 1280 (min ipv6 mtu) - 40 (ipv6 header) - 8 (udp header) - 8 (pppoe header) - 24 reserved
MAX_UDP_SIZE = 1200

_Z_FLAG = 0x0040


def _is_valid_query(q: dns.message.Message) -> bool:
    header_ok = not q.flags & (dns.flags.QR | dns.flags.AA | _Z_FLAG)
    return header_ok and q.opcode() == dns.opcode.QUERY and not q.answer and not q.authority


def is_unusual_query(q: dns.message.Message) -> bool:
    """Return whether ``q`` is not a plain single-question IN query."""
    return (
        not _is_valid_query(q)
        or len(q.question) != 1
        or q.question[0].rdclass != dns.rdataclass.IN
    )


def _refused(q: dns.message.Message) -> dns.message.Message:
    r = dns.message.Message(id=q.id)
    r.flags = dns.flags.QR
    opcode = q.opcode()
    if opcode == dns.opcode.QUERY:
        r.flags |= q.flags & (dns.flags.RD | dns.flags.CD)
    r.set_opcode(opcode)
    r.question.extend(q.question[:1])
    r.set_rcode(dns.rcode.REFUSED)
    return r


def _trim_and_shuffle(r: dns.message.Message, name, qtype: int) -> None:
    kept = []
    for rrset in r.answer:
        if rrset.rdtype != qtype:
            continue
        rdatas = list(rrset)
        random.shuffle(rdatas)
        kept.append(dns.rrset.from_rdata_list(name, rrset.ttl, rdatas))
    random.shuffle(kept)
    r.answer[:] = kept


class MiscOptimizer:
    """Refuses unusual queries, caps the UDP size and tidies responses.

    Responses to A/AAAA queries keep only records of the queried type, renamed
    to the query name and shuffled; padding is removed, and EDNS0 is removed
    when the query has none.
    """

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        q = qctx.q
        if is_unusual_query(q):
            qctx.set_response(_refused(q))
            return

        if q.edns >= 0 and q.payload > MAX_UDP_SIZE:
            set_udp_payload(q, MAX_UDP_SIZE)

        await exec_chain_node(qctx, next)
        r = qctx.r
        if r is None:
            return

        question = q.question[0]
        if question.rdtype in (dns.rdatatype.A, dns.rdatatype.AAAA):
            _trim_and_shuffle(r, question.name, question.rdtype)

        remove_option(r, PADDING)
        if q.edns < 0:
            remove_edns0(r)