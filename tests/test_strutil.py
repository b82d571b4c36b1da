import ipaddress

import pytest

from dnspipe.strutil import (
    ip_from_sockaddr,
    remove_comment,
    split_line,
    split_scheme_and_host,
    split_string2,
)


@pytest.mark.parametrize(
    "s, symbol, want",
    [
        ("", "", ("", "", True)),
        ("///", "", ("", "///", True)),
        ("///", "/", ("", "//", True)),
        ("--/", "/", ("--", "", True)),
        ("https://***.***.***", "://", ("https", "***.***.***", True)),
        ("://***.***.***", "://", ("", "***.***.***", True)),
        ("https://", "://", ("https", "", True)),
        ("--/", "*", ("", "", False)),
    ],
)
def test_split_string2(s, symbol, want):
    assert split_string2(s, symbol) == want


@pytest.mark.parametrize(
    "s, symbol, want",
    [
        ("", "", ""),
        ("12345", "", ""),
        ("", "#", ""),
        ("123/456", "/", "123"),
        ("123//456", "//", "123"),
        ("123/*/456", "//", "123/*/456"),
    ],
)
def test_remove_comment(s, symbol, want):
    assert remove_comment(s, symbol) == want


def test_split_line():
    assert split_line("  a\tbb  ccc\n") == ["a", "bb", "ccc"]
    assert split_line("   ") == []


def test_split_scheme_and_host():
    assert split_scheme_and_host("tls://dns.example.com:853") == ("tls", "dns.example.com:853")
    assert split_scheme_and_host("dns.example.com") == ("", "dns.example.com")


def test_ip_from_sockaddr_tuple():
    assert ip_from_sockaddr(("192.0.2.1", 53)) == ipaddress.ip_address("192.0.2.1")
    assert ip_from_sockaddr(("2001:db8::1", 53, 0, 0)) == ipaddress.ip_address("2001:db8::1")


def test_ip_from_sockaddr_ipaddress_objects():
    assert ip_from_sockaddr(ipaddress.ip_interface("192.0.2.7/24")) == ipaddress.ip_address("192.0.2.7")
    assert ip_from_sockaddr(ipaddress.ip_network("192.0.2.0/24")) == ipaddress.ip_address("192.0.2.0")
    addr = ipaddress.ip_address("::1")
    assert ip_from_sockaddr(addr) == addr


def test_ip_from_sockaddr_unknown():
    assert ip_from_sockaddr(("not-an-ip", 53)) is None
    assert ip_from_sockaddr(42) is None