"""Probes of a DNS server's TCP/TLS behaviour."""

from __future__ import annotations

import logging
import secrets
import socket
import ssl
import time

import dns.exception
import dns.message
import dns.query
import dns.rdatatype

from dnspipe.strutil import split_scheme_and_host

logger = logging.getLogger(__name__)

PROBE_NAME = "www.cloudflare.com."
_IO_ERRORS = (OSError, EOFError, dns.exception.DNSException)


class ProbeError(Exception):
    """Raised when a probe cannot talk to the server."""


def _host_port(host: str, default_port: int) -> tuple[str, int]:
    if host.startswith("["):
        end = host.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {host}")
        rest = host[end + 1 :]
        port = int(rest[1:]) if rest.startswith(":") else default_port
        return host[1:end], port
    if host.count(":") == 1:
        name, _, port = host.partition(":")
        return name, int(port)
    return host, default_port


def get_conn(addr: str) -> socket.socket:
    """Connect to ``tcp://host[:port]`` or ``tls://host[:port]``.

    Ports default to 53 and 853. TLS certificates are verified.
    """
    protocol, host = split_scheme_and_host(addr)
    if not protocol or not host:
        raise ValueError(f"invalid addr {addr}")
    if protocol == "tcp":
        return socket.create_connection(_host_port(host, 53))
    if protocol == "tls":
        server_name, port = _host_port(host, 853)
        raw = socket.create_connection((server_name, port))
        raw.settimeout(5)
        try:
            conn = ssl.create_default_context().wrap_socket(raw, server_hostname=server_name)
        except OSError as exc:
            raw.close()
            raise ProbeError(f"tls handshake failed: {exc}") from exc
        conn.settimeout(None)
        return conn
    raise ValueError(f"invalid protocol {protocol}")


def _query(name: str, msg_id: int | None = None) -> dns.message.Message:
    q = dns.message.make_query(name, dns.rdatatype.A)
    if msg_id is not None:
        q.id = msg_id
    return q


def _send(sock: socket.socket, q: dns.message.Message, expiration: float | None, what: str) -> None:
    try:
        dns.query.send_tcp(sock, q, expiration)
    except _IO_ERRORS as exc:
        raise ProbeError(f"failed to write {what}: {exc}") from exc


def _receive(sock: socket.socket, expiration: float | None, what: str) -> dns.message.Message:
    try:
        r, _ = dns.query.receive_tcp(sock, expiration)
    except _IO_ERRORS as exc:
        raise ProbeError(f"failed to read {what} response: {exc}") from exc
    return r


def probe_connection_reuse(addr: str) -> list[int]:
    """Send three queries one after another on one connection (RFC 1035 reuse).

    Returns the ids of the responses received.
    """
    ids = []
    with get_conn(addr) as sock:
        for i in range(3):
            expiration = time.time() + 3
            logger.info("sending msg #%d", i)
            _send(sock, _query(PROBE_NAME, i), expiration, f"#{i} probe msg")
            r = _receive(sock, expiration, f"#{i} probe msg")
            logger.info("received response #%d", i)
            ids.append(r.id)
    logger.info("server %s supports RFC 1035 connection reuse", addr)
    return ids


def probe_pipeline(addr: str) -> bool:
    """Send five queries at once and read the replies (RFC 7766 pipelining).

    Returns True if any reply arrived out of order.
    """
    domains = [f"www.{secrets.token_hex(8)}.com." for _ in range(4)] + [PROBE_NAME]
    with get_conn(addr) as sock:
        for i, domain in enumerate(domains):
            _send(sock, _query(domain, i), time.time() + 10, f"#{i} probe msg")

        out_of_order = False
        start = time.monotonic()
        for i in range(len(domains)):
            r = _receive(sock, time.time() + 10, f"#{i} probe msg")
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.info("#%d response received, latency: %d ms", r.id, latency_ms)
            if r.id != i:
                out_of_order = True

    if out_of_order:
        logger.info("server supports RFC7766 query pipelining")
    else:
        logger.info(
            "no out-of-order response received in this test, "
            "server MAY NOT support RFC7766 query pipelining"
        )
    return out_of_order


def probe_idle_timeout(addr: str) -> float:
    """Send one query and wait for the server to close the connection.

    Returns the seconds from the query until the close.
    """
    with get_conn(addr) as sock:
        _send(sock, _query(PROBE_NAME), None, "probe msg")
        logger.info(
            "testing server idle timeout, awaiting server closing the connection, "
            "this may take a while"
        )
        start = time.monotonic()
        _receive(sock, None, "probe msg")
        while True:
            try:
                dns.query.receive_tcp(sock, None)
            except _IO_ERRORS:
                break
        elapsed = time.monotonic() - start
    logger.info("connection closed by peer, it's idle timeout is %.2f sec", elapsed)
    return elapsed