import ipaddress

import pytest

from dnspipe.ptr import parse_ptr_name, reverse4, reverse6

V6_NIBBLES = "b.a.9.8.7.6.5.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.0.8.b.d.0.1.0.0.2"


def test_reverse4():
    assert reverse4("4.4.8.8") == ipaddress.ip_address("8.8.4.4")


def test_reverse4_error():
    with pytest.raises(ValueError):
        reverse4("123114123")


def test_reverse6():
    assert reverse6(V6_NIBBLES) == ipaddress.ip_address("2001:db8::567:89ab")


def test_reverse6_error():
    with pytest.raises(ValueError):
        reverse6("123114123")


def test_parse_ptr_name_v4():
    assert parse_ptr_name("4.4.8.8.in-addr.arpa.") == ipaddress.ip_address("8.8.4.4")


def test_parse_ptr_name_v6():
    assert parse_ptr_name(V6_NIBBLES + ".ip6.arpa.") == ipaddress.ip_address("2001:db8::567:89ab")


def test_parse_ptr_name_without_suffix():
    with pytest.raises(ValueError, match="ptr suffix"):
        parse_ptr_name("www.example.com.")