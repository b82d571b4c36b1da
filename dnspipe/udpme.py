"""A UDP upstream that ignores replies without EDNS0.

Forged replies injected on the path usually lack EDNS0, so only replies
carrying it are accepted.
"""

from __future__ import annotations

import asyncio
import copy

import dns.message

from dnspipe.edns0_filter import remove_edns0

DEFAULT_PORT = "53"
DEFAULT_TIMEOUT = 3.0
EDNS_PAYLOAD = 512


def _split_host_port(addr: str) -> tuple[str, str]:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {addr}")
        host, rest = addr[1:end], addr[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {addr}")
        return host, rest[1:]
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr}")
    if ":" in host:
        raise ValueError(f"too many colons in address {addr}")
    return host, port


def _join_host_port(host: str, port: str) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class _Receiver(asyncio.DatagramProtocol):
    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue

    def datagram_received(self, data: bytes, addr: object) -> None:
        self._queue.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)


class UdpmeUpstream:
    """Sends queries over UDP and waits for the first reply that has EDNS0."""

    def __init__(self, addr: str, trusted: bool = False) -> None:
        try:
            self._host, self._port = _split_host_port(addr)
        except ValueError:
            self._host, self._port = addr, DEFAULT_PORT
            addr = _join_host_port(addr, DEFAULT_PORT)
        self.addr = addr
        self.trusted = trusted

    @property
    def address(self) -> str:
        return self.addr

    async def exchange(
        self, m: dns.message.Message, timeout: float | None = None
    ) -> dns.message.Message:
        """Send ``m`` and return the reply.

        A query without EDNS0 is sent with EDNS0 (payload 512) and the record
        is removed from the reply. Raises TimeoutError after ``timeout``
        seconds (3 by default).
        """
        timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        if m.edns >= 0:
            return await self._exchange_optm(m, timeout)
        mc = copy.deepcopy(m)
        mc.use_edns(0, payload=EDNS_PAYLOAD)
        r = await self._exchange_optm(mc, timeout)
        remove_edns0(r)
        return r

    async def _exchange_optm(self, m: dns.message.Message, timeout: float) -> dns.message.Message:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _Receiver(queue), remote_addr=(self._host, int(self._port))
        )
        try:
            transport.sendto(m.to_wire())
            return await asyncio.wait_for(self._read_edns_reply(queue), timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"no reply with EDNS0 from {self.addr}") from exc
        finally:
            transport.close()

    @staticmethod
    async def _read_edns_reply(queue: asyncio.Queue) -> dns.message.Message:
        while True:
            item = await queue.get()
            if isinstance(item, Exception):
                raise item
            r = dns.message.from_wire(item)
            if r.edns < 0:
                continue
            return r