"""Ethernet, ARP and IPv4 wire formats, the Internet checksum, addresses, sockets, file descriptors, TUN/TAP devices and a poll-based event loop."""

__version__ = "0.1.0"

__all__ = [
    "address",
    "arp",
    "checksum",
    "errors",
    "ethernet",
    "eventloop",
    "file_descriptor",
    "ipv4",
    "parser",
    "sockets",
    "tun",
]