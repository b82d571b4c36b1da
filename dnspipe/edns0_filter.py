"""EDNS0 option helpers and a filter that strips options from queries."""

from __future__ import annotations

from collections.abc import Iterable

import dns.edns
import dns.message

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

ECS = dns.edns.OptionType.ECS
PADDING = dns.edns.OptionType.PADDING
MIN_UDP_PAYLOAD = 512


def upgrade_edns0(msg: dns.message.Message) -> None:
    """Give ``msg`` an EDNS0 record (payload 512) if it has none."""
    if msg.edns < 0:
        msg.use_edns(0, payload=MIN_UDP_PAYLOAD)


def remove_edns0(msg: dns.message.Message) -> None:
    """Remove the EDNS0 record from ``msg``."""
    msg.use_edns(False)


def get_option(msg: dns.message.Message, code: int) -> dns.edns.Option | None:
    """Return the first EDNS0 option of type ``code``, or None."""
    if msg.edns < 0:
        return None
    return next((o for o in msg.options if o.otype == code), None)


def set_options(
    msg: dns.message.Message, options: Iterable[dns.edns.Option], pad: int | None = None
) -> None:
    """Replace the EDNS0 options of ``msg``, keeping version, flags and payload."""
    msg.use_edns(
        edns=msg.edns,
        ednsflags=msg.ednsflags,
        payload=msg.payload,
        options=list(options),
        pad=msg.pad if pad is None else pad,
    )


def remove_option(msg: dns.message.Message, code: int) -> None:
    """Remove every EDNS0 option of type ``code`` from ``msg``."""
    if msg.edns < 0:
        return
    pad = 0 if code == PADDING else None
    set_options(msg, [o for o in msg.options if o.otype != code], pad=pad)


class Filter:
    """Removes EDNS0 data from queries.

    ``no_edns`` removes the whole EDNS0 record. Otherwise, with ``keep``
    only the listed options stay; in every other case all options go.
    """

    def __init__(
        self, no_edns: bool = False, keep: Iterable[int] = (), discard: Iterable[int] = ()
    ) -> None:
        self.no_edns = no_edns
        self.keep = frozenset(keep)
        # The discard set is built from the ``keep`` codes, so a discard list
        # on its own leaves it empty and every option is removed.
        self.discard = frozenset(self.keep) if tuple(discard) else frozenset()

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        self._apply(qctx.q)
        await exec_chain_node(qctx, next)

    def _apply(self, q: dns.message.Message) -> None:
        if self.no_edns:
            remove_edns0(q)
            return
        if q.edns < 0 or not q.options:
            return
        if self.keep:
            options = [o for o in q.options if o.otype in self.keep]
        elif self.discard:
            options = [o for o in q.options if o.otype not in self.discard]
        else:
            options = []
        set_options(q, options)