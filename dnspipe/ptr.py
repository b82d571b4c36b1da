"""Parsing of reverse-lookup (PTR) names."""

from __future__ import annotations

import ipaddress
from typing import Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

IP4_ARPA = ".in-addr.arpa."
IP6_ARPA = ".ip6.arpa."


def parse_ptr_name(fqdn: str) -> IPAddress:
    """Return the address a PTR name stands for.

    Raises ValueError if the name has no reverse suffix or is malformed.
    """
    if fqdn.endswith(IP4_ARPA):
        return reverse4(fqdn[: -len(IP4_ARPA)])
    if fqdn.endswith(IP6_ARPA):
        return reverse6(fqdn[: -len(IP6_ARPA)])
    raise ValueError("domain does not has a ptr suffix")


def reverse4(s: str) -> IPAddress:
    """Parse the reversed dotted labels of an in-addr.arpa name."""
    return ipaddress.ip_address(".".join(reversed(s.split("."))))


def reverse6(s: str) -> IPAddress:
    """Parse the reversed nibble labels of an ip6.arpa name."""
    nibbles = "".join(reversed(s.replace(".", "")))
    groups = [nibbles[i : i + 4] for i in range(0, len(nibbles), 4)]
    return ipaddress.ip_address(":".join(groups))