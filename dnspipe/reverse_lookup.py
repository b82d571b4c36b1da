"""Remember which name resolved to which address, and answer PTR queries from it."""

from __future__ import annotations

import ipaddress
import time
from collections import OrderedDict
from http import HTTPStatus

import dns.message
import dns.rdatatype
import dns.rrset

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node
from dnspipe.ptr import parse_ptr_name
from dnspipe.strutil import IPAddress

DEFAULT_SIZE = 64 * 1024
DEFAULT_TTL = 1800
PTR_TTL = 5


def _as16(addr: IPAddress) -> ipaddress.IPv6Address:
    if isinstance(addr, ipaddress.IPv6Address):
        return addr
    return ipaddress.IPv6Address(b"\x00" * 10 + b"\xff\xff" + addr.packed)


class _ExpiringCache:
    """A size-bounded LRU map whose entries expire."""

    def __init__(self, size: int) -> None:
        self._size = size
        self._data: OrderedDict[ipaddress.IPv6Address, tuple[str, float]] = OrderedDict()

    def get(self, key: ipaddress.IPv6Address) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= time.monotonic():
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return value

    def store(self, key: ipaddress.IPv6Address, value: str, expires_at: float) -> None:
        self._data[key] = (value, expires_at)
        self._data.move_to_end(key)
        while len(self._data) > self._size:
            self._data.popitem(last=False)

    def __len__(self) -> int:
        return len(self._data)


class ReverseLookup:
    """Records the addresses in A/AAAA responses under the queried name.

    With ``handle_ptr``, PTR queries for a recorded address are answered
    directly. Response TTLs are capped at ``ttl`` seconds, which is also how
    long an address is remembered.
    """

    def __init__(self, size: int = 0, handle_ptr: bool = False, ttl: int = 0) -> None:
        self.size = size if size > 0 else DEFAULT_SIZE
        self.handle_ptr = handle_ptr
        self.ttl = ttl if ttl > 0 else DEFAULT_TTL
        self._cache = _ExpiringCache(self.size)

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        q = qctx.q
        r = self._ptr_reply(q)
        if r is not None:
            qctx.set_response(r)
            return
        await exec_chain_node(qctx, next)
        self._save_ips(q, qctx.r)

    def lookup(self, addr: IPAddress | str) -> str:
        """Return the name recorded for ``addr``, or an empty string."""
        if isinstance(addr, str):
            addr = ipaddress.ip_address(addr)
        return self._cache.get(_as16(addr)) or ""

    def http_lookup(self, ip_str: str) -> tuple[HTTPStatus, str]:
        """Answer an HTTP lookup for the ``ip`` query parameter: ``(status, body)``."""
        try:
            addr = ipaddress.ip_address(ip_str)
        except ValueError as exc:
            return HTTPStatus.BAD_REQUEST, str(exc)
        return HTTPStatus.OK, self.lookup(addr)

    def _ptr_reply(self, q: dns.message.Message) -> dns.message.Message | None:
        if not (self.handle_ptr and q.question and q.question[0].rdtype == dns.rdatatype.PTR):
            return None
        question = q.question[0]
        try:
            addr = parse_ptr_name(question.name.to_text())
        except ValueError:
            return None
        fqdn = self.lookup(addr)
        if not fqdn:
            return None
        r = dns.message.make_response(q)
        r.use_edns(False)
        r.answer.append(
            dns.rrset.from_text(question.name, PTR_TTL, question.rdclass, question.rdtype, fqdn)
        )
        return r

    def _save_ips(self, q: dns.message.Message, r: dns.message.Message | None) -> None:
        if r is None:
            return
        expires_at = time.monotonic() + self.ttl
        for rrset in r.answer:
            if rrset.rdtype not in (dns.rdatatype.A, dns.rdatatype.AAAA):
                continue
            if rrset.ttl > self.ttl:
                rrset.ttl = self.ttl
            name = q.question[0].name if len(q.question) == 1 else rrset.name
            for rdata in rrset:
                try:
                    addr = ipaddress.ip_address(rdata.address)
                except ValueError:
                    continue
                self._cache.store(_as16(addr), name.to_text(), expires_at)