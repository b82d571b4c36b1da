"""EDNS0 padding of queries and responses (RFC 8467 block sizes)."""

from __future__ import annotations

import dns.edns
import dns.message

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node
from dnspipe.edns0_filter import (
    PADDING,
    get_option,
    remove_edns0,
    remove_option,
    set_options,
    upgrade_edns0,
)

MINIMUM_QUERY_LEN = 128
MINIMUM_RESPONSE_LEN = 468
_OPTION_HEADER_LEN = 4


def pad_to_minimum(msg: dns.message.Message, minimum: int) -> bool:
    """Pad ``msg`` so its wire form is at least ``minimum`` octets.

    Adds an EDNS0 record if needed and replaces any existing padding option.
    Returns False if the message was already long enough.
    """
    if len(msg.to_wire()) >= minimum:
        return False
    upgrade_edns0(msg)
    options = [o for o in msg.options if o.otype != PADDING]
    set_options(msg, options, pad=0)
    length = len(msg.to_wire()) + _OPTION_HEADER_LEN
    padding = dns.edns.GenericOption(PADDING, bytes(max(0, minimum - length)))
    set_options(msg, options + [padding], pad=0)
    return True


class PadQuery:
    """Pads queries to 128 octets and keeps responses consistent with the client's query."""

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        pad_to_minimum(qctx.q, MINIMUM_QUERY_LEN)
        await exec_chain_node(qctx, next)
        r = qctx.r
        if r is None:
            return
        oq = qctx.original_query
        if oq.edns < 0:
            remove_edns0(r)
        elif get_option(oq, PADDING) is None:
            remove_option(r, PADDING)


class ResponsePadding:
    """Pads responses to 468 octets for EDNS0 clients.

    Without ``always``, only clients that padded their own query get padding.
    """

    def __init__(self, always: bool = False) -> None:
        self.always = always

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        await exec_chain_node(qctx, next)
        r = qctx.r
        oq = qctx.original_query
        if r is None or oq.edns < 0:
            return
        if self.always or get_option(oq, PADDING) is not None:
            pad_to_minimum(r, MINIMUM_RESPONSE_LEN)