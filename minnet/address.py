"""Socket addresses and name resolution."""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from typing import Any

from minnet.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


def _lookup(node: str, service: str, flags: int) -> "Address":
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as exc:
        raise TaggedError(f"getaddrinfo({node}, {service})", exc.errno or 0, exc.strerror or str(exc)) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _type, _proto, _canonname, sockaddr = results[0]
    return Address(int(family), sockaddr)


@dataclass(frozen=True)
class Address:
    """A socket address: an address family and its socket-module address value."""

    family: int
    sockaddr: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", int(self.family))
        if isinstance(self.sockaddr, list):
            object.__setattr__(self, "sockaddr", tuple(self.sockaddr))

    @classmethod
    def resolve(cls, hostname: str, service: str) -> "Address":
        """Resolve a host name and a service name or number to an IPv4 address."""
        return _lookup(hostname, service, socket.AI_ALL)

    @classmethod
    def from_ip(cls, ip: str, port: int = 0) -> "Address":
        """Build from a dotted-quad string and a numeric port, with no lookup."""
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        return _lookup(ip, str(port), socket.AI_NUMERICHOST | socket.AI_NUMERICSERV)

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> "Address":
        """Build an IPv4 address (port 0) from its 32-bit numeric value."""
        return cls(socket.AF_INET, (str(ipaddress.IPv4Address(ip_address & 0xFFFFFFFF)), 0))

    def ip_port(self) -> tuple[str, int]:
        """The numeric host string and the port."""
        if self.family not in _INTERNET_FAMILIES:
            raise ValueError("ip_port() called on non-Internet address")
        try:
            host, port = socket.getnameinfo(self.sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV)
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno or 0, exc.strerror or str(exc)) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as an integer in host order."""
        if self.family != socket.AF_INET:
            raise ValueError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self.sockaddr[0]))

    def __str__(self) -> str:
        if self.family in _INTERNET_FAMILIES:
            host, port = self.ip_port()
            return f"{host}:{port}"
        return "(non-Internet address)"