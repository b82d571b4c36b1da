"""Prefer IPv4 or IPv6 answers for names that have both."""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum

import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset

from dnspipe.chain import ChainNode, QueryContext, exec_chain_node

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT_MS = 250
SUB_ROUTINE_TIMEOUT = 5.0


class Mode(IntEnum):
    PREFER_IPV4 = 0
    PREFER_IPV6 = 1


_PREFERRED = {
    Mode.PREFER_IPV4: dns.rdatatype.A,
    Mode.PREFER_IPV6: dns.rdatatype.AAAA,
}


def msg_answer_has_rr(m: dns.message.Message | None, rdtype: int) -> bool:
    """Return whether the answer section of ``m`` holds records of ``rdtype``."""
    if m is None:
        return False
    return any(rrset.rdtype == rdtype for rrset in m.answer)


def _empty_reply(q: dns.message.Message) -> dns.message.Message:
    r = dns.message.make_response(q)
    r.use_edns(False)
    r.set_rcode(dns.rcode.NOERROR)
    return r


class Selector:
    """Answers the non-preferred address type with an empty reply when the
    name also has records of the preferred type.

    For a query of the non-preferred type, the preferred type is looked up in
    parallel. If it has records, the query gets an empty reply. If the original
    query finishes first, the reference lookup is awaited for at most
    ``wait_timeout`` milliseconds (250 when not positive).
    """

    def __init__(self, mode: int = Mode.PREFER_IPV4, wait_timeout: int = 0) -> None:
        self.mode = Mode(mode)
        self.wait_timeout = wait_timeout

    @property
    def _wait_seconds(self) -> float:
        ms = self.wait_timeout if self.wait_timeout > 0 else DEFAULT_WAIT_TIMEOUT_MS
        return ms / 1000

    async def exec(self, qctx: QueryContext, next: ChainNode | None) -> None:
        q = qctx.q
        if len(q.question) != 1:
            await exec_chain_node(qctx, next)
            return

        qtype = q.question[0].rdtype
        if qtype not in (dns.rdatatype.A, dns.rdatatype.AAAA) or qtype == _PREFERRED[self.mode]:
            await exec_chain_node(qctx, next)
            return

        ref_type = dns.rdatatype.AAAA if qtype == dns.rdatatype.A else dns.rdatatype.A
        ref_ctx = qctx.copy()
        question = ref_ctx.q.question[0]
        ref_ctx.q.question[0] = dns.rrset.RRset(question.name, question.rdclass, ref_type)
        sub_ctx = qctx.copy()

        ref_task = asyncio.ensure_future(self._reference(ref_ctx, next, ref_type))
        sub_task = asyncio.ensure_future(
            asyncio.wait_for(exec_chain_node(sub_ctx, next), SUB_ROUTINE_TIMEOUT)
        )
        try:
            await asyncio.wait({ref_task, sub_task}, return_when=asyncio.FIRST_COMPLETED)
            if not sub_task.done():
                if ref_task.result():
                    qctx.set_response(_empty_reply(q))
                    return
                await asyncio.wait({sub_task})

            if not ref_task.done():
                await asyncio.wait({ref_task}, timeout=self._wait_seconds)
            if ref_task.done() and ref_task.result():
                qctx.set_response(_empty_reply(q))
                return

            vars(qctx).update(vars(sub_ctx))
            exc = sub_task.exception()
            if exc is not None:
                raise exc
        finally:
            for task in (ref_task, sub_task):
                if not task.done():
                    task.cancel()

    @staticmethod
    async def _reference(ref_ctx: QueryContext, next: ChainNode | None, ref_type: int) -> bool:
        """Return True if the name has records of the reference type."""
        try:
            await asyncio.wait_for(exec_chain_node(ref_ctx, next), SUB_ROUTINE_TIMEOUT)
        except Exception as exc:  # noqa: BLE001 - any failure lets the query pass
            logger.warning("reference query routine err: %s", exc)
            return False
        return msg_answer_has_rr(ref_ctx.r, ref_type)