import dns.edns
import dns.message
import pytest

from dnspipe.chain import ChainNode, QueryContext
from dnspipe.edns0_filter import PADDING, get_option, set_options
from dnspipe.padding import (
    MINIMUM_QUERY_LEN,
    MINIMUM_RESPONSE_LEN,
    PadQuery,
    ResponsePadding,
    pad_to_minimum,
)


class _Respond:
    def __init__(self, r):
        self.r = r

    async def exec(self, qctx, next):
        qctx.set_response(self.r)


def _padding_count(msg):
    return sum(1 for o in msg.options if o.otype == PADDING)


def test_pad_query_to_exact_length_and_round_trip():
    q = dns.message.make_query("example.", "A")
    assert pad_to_minimum(q, 128) is True
    wire = q.to_wire()
    assert len(wire) == 128
    parsed = dns.message.from_wire(wire)
    assert get_option(parsed, PADDING).otype == PADDING


def test_pad_replaces_existing_padding():
    q = dns.message.make_query("example.", "A", use_edns=0)
    set_options(q, [dns.edns.GenericOption(PADDING, bytes(3))], pad=0)
    pad_to_minimum(q, 200)
    assert len(q.to_wire()) == 200
    assert _padding_count(q) == 1


def test_pad_noop_when_long_enough():
    q = dns.message.make_query("example.", "A")
    before = q.to_wire()
    assert pad_to_minimum(q, 10) is False
    assert q.to_wire() == before
    assert q.edns == -1


@pytest.mark.asyncio
async def test_pad_query_removes_edns_from_response_when_client_had_none():
    q = dns.message.make_query("example.", "A")
    r = dns.message.make_response(q)
    r.use_edns(0, options=[dns.edns.GenericOption(PADDING, bytes(8))])
    qctx = QueryContext(q)
    await PadQuery().exec(qctx, ChainNode(_Respond(r)))
    assert len(q.to_wire()) == MINIMUM_QUERY_LEN
    assert qctx.r.edns == -1


@pytest.mark.asyncio
async def test_pad_query_removes_padding_when_client_did_not_pad():
    q = dns.message.make_query("example.", "A", use_edns=0)
    r = dns.message.make_response(q)
    set_options(r, [dns.edns.GenericOption(PADDING, bytes(8))], pad=0)
    qctx = QueryContext(q)
    await PadQuery().exec(qctx, ChainNode(_Respond(r)))
    assert qctx.r.edns == 0
    assert get_option(qctx.r, PADDING) is None


@pytest.mark.asyncio
async def test_pad_query_keeps_padding_when_client_padded():
    q = dns.message.make_query("example.", "A", use_edns=0)
    set_options(q, [dns.edns.GenericOption(PADDING, bytes(2))], pad=0)
    r = dns.message.make_response(q)
    set_options(r, [dns.edns.GenericOption(PADDING, bytes(8))], pad=0)
    qctx = QueryContext(q)
    await PadQuery().exec(qctx, ChainNode(_Respond(r)))
    assert _padding_count(qctx.r) == 1


@pytest.mark.asyncio
async def test_response_padding_always():
    q = dns.message.make_query("example.", "A", use_edns=0)
    r = dns.message.make_response(q)
    qctx = QueryContext(q)
    await ResponsePadding(always=True).exec(qctx, ChainNode(_Respond(r)))
    assert len(qctx.r.to_wire()) == MINIMUM_RESPONSE_LEN


@pytest.mark.asyncio
async def test_conditional_response_padding_skips_unpadded_client():
    q = dns.message.make_query("example.", "A", use_edns=0)
    r = dns.message.make_response(q)
    before = len(r.to_wire())
    qctx = QueryContext(q)
    await ResponsePadding().exec(qctx, ChainNode(_Respond(r)))
    assert len(qctx.r.to_wire()) == before
    assert get_option(qctx.r, PADDING) is None


@pytest.mark.asyncio
async def test_conditional_response_padding_for_padded_client():
    q = dns.message.make_query("example.", "A", use_edns=0)
    set_options(q, [dns.edns.GenericOption(PADDING, bytes(2))], pad=0)
    r = dns.message.make_response(q)
    qctx = QueryContext(q)
    await ResponsePadding().exec(qctx, ChainNode(_Respond(r)))
    assert len(qctx.r.to_wire()) >= MINIMUM_RESPONSE_LEN


@pytest.mark.asyncio
async def test_response_padding_needs_edns_client():
    q = dns.message.make_query("example.", "A")
    r = dns.message.make_response(q)
    qctx = QueryContext(q)
    await ResponsePadding(always=True).exec(qctx, ChainNode(_Respond(r)))
    assert qctx.r.edns == -1
    assert len(qctx.r.to_wire()) < MINIMUM_RESPONSE_LEN