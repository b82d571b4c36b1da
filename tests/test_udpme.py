import asyncio

import dns.message
import dns.rdataclass
import dns.rdatatype
import dns.rrset
import pytest

from dnspipe.udpme import UdpmeUpstream


class _Server(asyncio.DatagramProtocol):
    def __init__(self, reply_edns):
        self.reply_edns = reply_edns
        self.queries = []
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        q = dns.message.from_wire(data)
        self.queries.append(q)
        name = q.question[0].name

        forged = dns.message.make_response(q)
        forged.use_edns(False)
        forged.answer.append(
            dns.rrset.from_text(name, 60, dns.rdataclass.IN, dns.rdatatype.A, "6.6.6.6")
        )
        self.transport.sendto(forged.to_wire(), addr)

        if self.reply_edns:
            good = dns.message.make_response(q)
            good.use_edns(0, payload=1232)
            good.answer.append(
                dns.rrset.from_text(name, 60, dns.rdataclass.IN, dns.rdatatype.A, "1.2.3.4")
            )
            self.transport.sendto(good.to_wire(), addr)


async def _start_server(reply_edns=True):
    loop = asyncio.get_running_loop()
    transport, server = await loop.create_datagram_endpoint(
        lambda: _Server(reply_edns), local_addr=("127.0.0.1", 0)
    )
    port = transport.get_extra_info("sockname")[1]
    return transport, server, port


def test_address_gets_default_port():
    assert UdpmeUpstream("127.0.0.1").address == "127.0.0.1:53"
    assert UdpmeUpstream("::1").address == "[::1]:53"


def test_address_with_port_is_kept():
    assert UdpmeUpstream("127.0.0.1:5353").address == "127.0.0.1:5353"
    assert UdpmeUpstream("[::1]:5353", trusted=True).trusted is True


@pytest.mark.asyncio
async def test_skips_reply_without_edns_and_strips_added_edns():
    transport, server, port = await _start_server()
    try:
        u = UdpmeUpstream(f"127.0.0.1:{port}")
        q = dns.message.make_query("example.com.", "A", use_edns=False)
        r = await u.exchange(q, timeout=2)
    finally:
        transport.close()
    assert r.answer[0][0].address == "1.2.3.4"
    assert r.edns == -1
    sent = server.queries[0]
    assert sent.edns == 0
    assert sent.payload == 512
    assert q.edns == -1


@pytest.mark.asyncio
async def test_keeps_edns_when_query_has_it():
    transport, server, port = await _start_server()
    try:
        u = UdpmeUpstream(f"127.0.0.1:{port}")
        q = dns.message.make_query("example.com.", "A", use_edns=0)
        r = await u.exchange(q, timeout=2)
    finally:
        transport.close()
    assert r.edns == 0
    assert r.answer[0][0].address == "1.2.3.4"


@pytest.mark.asyncio
async def test_times_out_without_edns_reply():
    transport, server, port = await _start_server(reply_edns=False)
    try:
        u = UdpmeUpstream(f"127.0.0.1:{port}")
        q = dns.message.make_query("example.com.", "A")
        with pytest.raises(TimeoutError):
            await u.exchange(q, timeout=0.2)
    finally:
        transport.close()
    assert len(server.queries) == 1