"""Clamp the TTLs of responses."""

from __future__ import annotations

from collections.abc import Iterator

import dns.message
import dns.rrset

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node


def _rrsets(msg: dns.message.Message) -> Iterator[dns.rrset.RRset]:
    yield from msg.answer
    yield from msg.authority
    yield from msg.additional


def apply_maximum_ttl(msg: dns.message.Message, maximum: int) -> None:
    """Lower every record TTL above ``maximum`` to ``maximum``."""
    for rrset in _rrsets(msg):
        if rrset.ttl > maximum:
            rrset.ttl = maximum


def apply_minimal_ttl(msg: dns.message.Message, minimal: int) -> None:
    """Raise every record TTL below ``minimal`` to ``minimal``."""
    for rrset in _rrsets(msg):
        if rrset.ttl < minimal:
            rrset.ttl = minimal


class TTL:
    """Keeps response TTLs within bounds; a bound of zero is not applied."""

    def __init__(self, maximum_ttl: int = 0, minimal_ttl: int = 0) -> None:
        self.maximum_ttl = maximum_ttl
        self.minimal_ttl = minimal_ttl

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        r = qctx.r
        if r is not None:
            if self.maximum_ttl > 0:
                apply_maximum_ttl(r, self.maximum_ttl)
            if self.minimal_ttl > 0:
                apply_minimal_ttl(r, self.minimal_ttl)
        await exec_chain_node(qctx, next)