"""Small string and address helpers."""

from __future__ import annotations

import ipaddress
import re
from typing import Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_WORD = re.compile(r"\S+")


def split_line(s: str) -> list[str]:
    """Return the runs of non-whitespace characters in ``s``."""
    return _WORD.findall(s)


def remove_comment(s: str, symbol: str) -> str:
    """Cut ``s`` at the first occurrence of ``symbol``."""
    index = s.find(symbol)
    if index >= 0:
        return s[:index]
    return s


def split_string2(s: str, symbol: str) -> tuple[str, str, bool]:
    """Split ``s`` into two parts at the first ``symbol``.

    Returns ``(head, tail, found)``. An empty symbol splits before the start.
    When the symbol is absent both parts are empty and ``found`` is False.
    """
    if not symbol:
        return "", s, True
    head, sep, tail = s.partition(symbol)
    if not sep:
        return "", "", False
    return head, tail, True


def split_scheme_and_host(addr: str) -> tuple[str, str]:
    """Split ``scheme://host`` into ``(scheme, host)``; no scheme gives ``""``."""
    scheme, host, found = split_string2(addr, "://")
    if found:
        return scheme, host
    return "", addr


def ip_from_sockaddr(addr: object) -> IPAddress | None:
    """Extract the IP address from a socket address or an ipaddress object.

    Accepts ``(host, port, ...)`` tuples as returned by the socket module,
    address strings, and ipaddress addresses, interfaces and networks.
    Returns None for anything else.
    """
    # Interfaces subclass addresses, so they are checked first.
    if isinstance(addr, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return addr.ip
    if isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return addr
    if isinstance(addr, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return addr.network_address
    if isinstance(addr, tuple) and addr and isinstance(addr[0], str):
        host = addr[0]
    elif isinstance(addr, str):
        host = addr
    else:
        return None
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        return None