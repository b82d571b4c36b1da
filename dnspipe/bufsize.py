"""Limit the EDNS0 UDP payload size announced by queries."""

from __future__ import annotations

import dns.message

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

MIN_SIZE = 512
MAX_SIZE = 4096


def set_udp_payload(msg: dns.message.Message, payload: int) -> None:
    """Change the EDNS0 payload of ``msg``, keeping its flags and options."""
    msg.use_edns(
        edns=msg.edns,
        ednsflags=msg.ednsflags,
        payload=payload,
        options=list(msg.options),
        pad=msg.pad,
    )


class BufSize:
    """Caps the EDNS0 UDP size of queries at a size between 512 and 4096."""

    def __init__(self, size: int = 0) -> None:
        self.size = size

    @property
    def max_size(self) -> int:
        return min(max(self.size, MIN_SIZE), MAX_SIZE)

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        q = qctx.q
        if q.edns >= 0 and q.payload > self.max_size:
            set_udp_payload(q, self.max_size)
        await exec_chain_node(qctx, next)