import pytest

from minnet.ethernet import (
    ETHERNET_BROADCAST,
    EthernetFrame,
    EthernetHeader,
    format_ethernet_address,
)
from minnet.parser import parse, serialize

LOCAL_MAC = bytes([0x02, 0, 0, 0, 0, 0x01])


def test_broadcast_formatting():
    assert format_ethernet_address(ETHERNET_BROADCAST) == "ff:ff:ff:ff:ff:ff"


def test_address_formatting_pads_octets():
    assert format_ethernet_address(LOCAL_MAC) == "02:00:00:00:00:01"


def test_header_round_trip():
    header = EthernetHeader(dst=ETHERNET_BROADCAST, src=LOCAL_MAC, ethertype=EthernetHeader.TYPE_ARP)
    wire = serialize(header)
    assert len(b"".join(wire)) == EthernetHeader.LENGTH
    restored = EthernetHeader()
    assert parse(restored, wire)
    assert restored == header


def test_header_string_for_ipv4():
    header = EthernetHeader(dst=ETHERNET_BROADCAST, src=LOCAL_MAC, ethertype=EthernetHeader.TYPE_IPV4)
    assert str(header) == "dst=ff:ff:ff:ff:ff:ff src=02:00:00:00:00:01 type=IPv4"


def test_header_string_for_arp_and_unknown():
    assert str(EthernetHeader(ethertype=EthernetHeader.TYPE_ARP)).endswith("type=ARP")
    assert str(EthernetHeader(ethertype=0x1234)).endswith("type=[unknown type 1234!]")


def test_short_header_fails_to_parse():
    wire = b"".join(serialize(EthernetHeader()))
    assert not parse(EthernetHeader(), [wire[:-1]])


def test_bad_address_length_rejected():
    with pytest.raises(ValueError):
        serialize(EthernetHeader(dst=b"\x01\x02"))


def test_frame_round_trip():
    frame = EthernetFrame(
        header=EthernetHeader(dst=LOCAL_MAC, src=ETHERNET_BROADCAST, ethertype=EthernetHeader.TYPE_IPV4),
        payload=[b"hello", b"world"],
    )
    wire = serialize(frame)
    restored = EthernetFrame()
    assert parse(restored, wire)
    assert restored.header == frame.header
    assert b"".join(restored.payload) == b"helloworld"


def test_frame_with_empty_payload():
    frame = EthernetFrame(header=EthernetHeader(ethertype=EthernetHeader.TYPE_ARP))
    restored = EthernetFrame()
    assert parse(restored, serialize(frame))
    assert restored.payload == []