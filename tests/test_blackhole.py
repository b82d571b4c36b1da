import ipaddress

import dns.flags
import dns.message
import pytest

from dnspipe.blackhole import BlackHole
from dnspipe.chain import QueryContext


def make_ctx(qtype):
    q = dns.message.make_query("example.com", qtype)
    qctx = QueryContext(q, None)
    qctx.set_response(dns.message.make_response(q))
    return qctx


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs, qtype, want_response, want_rcode, want_ip",
    [
        ({"rcode": -1}, "A", False, 0, ""),
        ({"rcode": 2}, "A", True, 2, ""),
        ({"ipv4": ["127.0.0.1"]}, "A", True, 0, "127.0.0.1"),
        ({"ipv4": ["127.0.0.1"], "rcode": 2}, "AAAA", True, 2, ""),
        ({"ipv6": ["::1"]}, "AAAA", True, 0, "::1"),
    ],
)
async def test_blackhole_exec(kwargs, qtype, want_response, want_rcode, want_ip):
    b = BlackHole(**kwargs)
    qctx = make_ctx(qtype)
    await b.exec(qctx, None)

    if not want_response:
        assert qctx.r is None
        return
    assert qctx.r is not None
    if want_ip:
        got = ipaddress.ip_address(qctx.r.answer[0][0].address)
        assert got == ipaddress.ip_address(want_ip)
    assert qctx.r.rcode() == want_rcode


@pytest.mark.asyncio
async def test_address_answer_ttl_and_flags():
    b = BlackHole(ipv4=["127.0.0.1", "127.0.0.2"])
    qctx = make_ctx("A")
    await b.exec(qctx, None)
    rrset = qctx.r.answer[0]
    assert rrset.ttl == 3600
    assert sorted(rd.address for rd in rrset) == ["127.0.0.1", "127.0.0.2"]
    assert qctx.r.flags & dns.flags.RA
    assert qctx.r.id == qctx.q.id


@pytest.mark.parametrize(
    "kwargs",
    [{"ipv4": ["::1"]}, {"ipv4": ["bad"]}, {"ipv6": ["127.0.0.1"]}, {"ipv6": ["nope"]}],
)
def test_invalid_addresses(kwargs):
    with pytest.raises(ValueError):
        BlackHole(**kwargs)


@pytest.mark.asyncio
async def test_multiple_questions_untouched():
    q = dns.message.make_query("example.com", "A")
    q.question.append(dns.message.make_query("example.org", "A").question[0])
    qctx = QueryContext(q, None)
    original = dns.message.make_response(dns.message.make_query("example.com", "A"))
    qctx.set_response(original)
    await BlackHole(rcode=-1).exec(qctx, None)
    assert qctx.r is original