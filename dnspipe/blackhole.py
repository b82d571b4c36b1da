"""Answer queries with fixed addresses, a fixed rcode, or drop the response."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable

import dns.flags
import dns.message
import dns.rdataclass
import dns.rdatatype
import dns.rcode
import dns.rrset

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

ANSWER_TTL = 3600


def _parse(addrs: Iterable[str], version: int) -> list[str]:
    parsed = []
    for s in addrs:
        try:
            addr = ipaddress.ip_address(s)
        except ValueError as exc:
            raise ValueError(f"invalid ipv{version} addr {s}, {exc}") from exc
        if addr.version != version:
            raise ValueError(f"invalid ipv{version} addr {s}")
        parsed.append(str(addr))
    return parsed


def _reply(q: dns.message.Message, rcode: int) -> dns.message.Message:
    r = dns.message.make_response(q)
    r.use_edns(False)
    r.set_rcode(rcode)
    return r


class BlackHole:
    """Replaces the response.

    A and AAAA queries get the configured addresses when there are any;
    otherwise the response is an empty reply with ``rcode``, or is dropped
    when ``rcode`` is negative.
    """

    def __init__(
        self, ipv4: Iterable[str] = (), ipv6: Iterable[str] = (), rcode: int = 0
    ) -> None:
        self.ipv4 = _parse(ipv4, 4)
        self.ipv6 = _parse(ipv6, 6)
        self.rcode = rcode

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        self._apply(qctx)
        await exec_chain_node(qctx, next)

    def _apply(self, qctx: QueryContext) -> None:
        q = qctx.q
        if len(q.question) != 1:
            return
        question = q.question[0]
        qtype = question.rdtype

        if qtype == dns.rdatatype.A and self.ipv4:
            qctx.set_response(self._address_reply(q, question.name, dns.rdatatype.A, self.ipv4))
        elif qtype == dns.rdatatype.AAAA and self.ipv6:
            qctx.set_response(self._address_reply(q, question.name, dns.rdatatype.AAAA, self.ipv6))
        elif self.rcode >= 0:
            qctx.set_response(_reply(q, self.rcode))
        else:
            qctx.set_response(None)

    @staticmethod
    def _address_reply(q, name, rdtype, addrs) -> dns.message.Message:
        r = _reply(q, dns.rcode.NOERROR)
        r.flags |= dns.flags.RA
        r.answer.append(
            dns.rrset.from_text_list(name, ANSWER_TTL, dns.rdataclass.IN, rdtype, addrs)
        )
        return r