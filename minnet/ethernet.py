"""Ethernet addresses, headers and frames."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from minnet.parser import Parser, Serializer

ADDRESS_LENGTH = 6
ETHERNET_BROADCAST = b"\xff" * ADDRESS_LENGTH


def format_ethernet_address(address: bytes) -> str:
    """Return the colon-separated hex form of an Ethernet address."""
    return ":".join(f"{octet:02x}" for octet in address)


def _write_address(serializer: Serializer, address: bytes) -> None:
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"Ethernet address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
    for octet in address:
        serializer.integer(octet, 1)


@dataclass
class EthernetHeader:
    """An Ethernet frame header."""

    LENGTH: ClassVar[int] = 14
    TYPE_IPV4: ClassVar[int] = 0x800
    TYPE_ARP: ClassVar[int] = 0x806

    dst: bytes = bytes(ADDRESS_LENGTH)
    src: bytes = bytes(ADDRESS_LENGTH)
    ethertype: int = 0

    def parse(self, parser: Parser) -> None:
        self.dst = parser.string(ADDRESS_LENGTH)
        self.src = parser.string(ADDRESS_LENGTH)
        self.ethertype = parser.integer(2)

    def serialize(self, serializer: Serializer) -> None:
        _write_address(serializer, self.dst)
        _write_address(serializer, self.src)
        serializer.integer(self.ethertype, 2)

    def __str__(self) -> str:
        if self.ethertype == self.TYPE_IPV4:
            kind = "IPv4"
        elif self.ethertype == self.TYPE_ARP:
            kind = "ARP"
        else:
            kind = f"[unknown type {self.ethertype:x}!]"
        return f"dst={format_ethernet_address(self.dst)} src={format_ethernet_address(self.src)} type={kind}"


@dataclass
class EthernetFrame:
    """An Ethernet header followed by its payload buffers."""

    header: EthernetHeader = field(default_factory=EthernetHeader)
    payload: list[bytes] = field(default_factory=list)

    def parse(self, parser: Parser) -> None:
        self.header.parse(parser)
        self.payload = parser.all_remaining()

    def serialize(self, serializer: Serializer) -> None:
        self.header.serialize(serializer)
        serializer.buffer(self.payload)