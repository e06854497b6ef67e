"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import errno
import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional, TypeVar, Union

from minnet.address import Address
from minnet.errors import UnixError
from minnet.file_descriptor import READ_BUFFER_SIZE, FileDescriptor

SOL_PACKET = 263
PACKET_ADD_MEMBERSHIP = 1
PACKET_MR_PROMISC = 1
_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_SO_DOMAIN = getattr(socket, "SO_DOMAIN", 39)
_SO_PROTOCOL = getattr(socket, "SO_PROTOCOL", 38)
_PACKET_MREQ_FORMAT = "iHH8s"
_WOULD_BLOCK = frozenset({errno.EAGAIN, errno.EINPROGRESS})

_BytesLike = Union[bytes, bytearray, memoryview]
S = TypeVar("S", bound="Socket")


class Socket(FileDescriptor):
    """Base class for network sockets.

    Built either by creating a new socket of the given domain, type and
    protocol, or by taking over an existing FileDescriptor, whose domain,
    type and protocol are then checked against the ones given.
    """

    def __init__(
        self,
        domain: int,
        socket_type: int,
        protocol: int = 0,
        fd: Optional[FileDescriptor] = None,
    ) -> None:
        if fd is None:
            try:
                sock = socket.socket(domain, socket_type, protocol)
            except OSError as exc:
                raise UnixError("socket", exc.errno or 0) from exc
            super().__init__(sock.detach())
            return
        self._wrapper = fd._wrapper
        self._verify("domain", _SO_DOMAIN, domain)
        self._verify("type", socket.SO_TYPE, socket_type)
        self._verify("protocol", _SO_PROTOCOL, protocol)

    @classmethod
    def _adopt(cls: type[S], fd: FileDescriptor, *args: int) -> S:
        instance = cls.__new__(cls)
        Socket.__init__(instance, *args, fd=fd)
        return instance

    def _verify(self, what: str, option: int, expected: int) -> None:
        if self._getsockopt(socket.SOL_SOCKET, option) != expected:
            raise RuntimeError(f"socket {what} mismatch")

    @contextmanager
    def _socket(self) -> Iterator[socket.socket]:
        """A temporary socket object on this descriptor that never closes it."""
        try:
            sock = socket.socket(fileno=self.fd_num())
        except OSError as exc:
            raise UnixError("socket", exc.errno or 0) from exc
        try:
            yield sock
        finally:
            sock.detach()

    def _getsockopt(self, level: int, option: int) -> int:
        with self._socket() as sock:
            return self._check_call("getsockopt", sock.getsockopt, level, option)

    def _setsockopt(self, level: int, option: int, value: Union[int, bytes]) -> None:
        with self._socket() as sock:
            self._check_call("setsockopt", sock.setsockopt, level, option, value)

    def _get_address(self, name_of_function: str) -> Address:
        with self._socket() as sock:
            getter = sock.getsockname if name_of_function == "getsockname" else sock.getpeername
            raw = self._check_call(name_of_function, getter)
            return Address(sock.family, raw)

    def bind(self, address: Address) -> None:
        """Bind the socket to a local address."""
        with self._socket() as sock:
            self._check_call("bind", sock.bind, address.sockaddr)

    def bind_to_device(self, device_name: str) -> None:
        """Bind the socket to a network device."""
        self._setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect the socket to a peer address."""
        with self._socket() as sock:
            self._check_call("connect", sock.connect, address.sockaddr)

    def shutdown(self, how: int) -> None:
        """Shut down reading (SHUT_RD), writing (SHUT_WR) or both (SHUT_RDWR)."""
        with self._socket() as sock:
            self._check_call("shutdown", sock.shutdown, how)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise ValueError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._get_address("getsockname")

    def peer_address(self) -> Address:
        return self._get_address("getpeername")

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def throw_if_error(self) -> None:
        """Raise UnixError if the socket has a pending error."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Optional[Address], bytes]:
        """Receive one datagram and its sender's address.

        On a non-blocking socket with nothing ready, returns (None, b"").
        Raises RuntimeError if the datagram does not fit the read buffer.
        """
        buffer = bytearray(READ_BUFFER_SIZE)
        with self._socket() as sock:
            try:
                length, source = sock.recvfrom_into(buffer, 0, socket.MSG_TRUNC)
            except OSError as exc:
                if self._wrapper.non_blocking and exc.errno in _WOULD_BLOCK:
                    return None, b""
                raise UnixError("recvfrom", exc.errno or 0) from exc
            family = sock.family
        if length > len(buffer):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address(family, source), bytes(buffer[:length])

    def sendto(self, destination: Address, payload: _BytesLike) -> None:
        """Send a datagram to the given address."""
        with self._socket() as sock:
            self._check_call("sendto", sock.sendto, bytes(payload), destination.sockaddr)
        self._register_write()

    def send(self, payload: _BytesLike) -> None:
        """Send a datagram to the connected peer."""
        with self._socket() as sock:
            self._check_call("send", sock.send, bytes(payload))
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """A TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    def listen(self, backlog: int = 16) -> None:
        with self._socket() as sock:
            self._check_call("listen", sock.listen, backlog)

    def accept(self) -> "TCPSocket":
        """Accept a new incoming connection."""
        self._register_read()
        with self._socket() as sock:
            try:
                connection, _peer = sock.accept()
            except OSError as exc:
                raise UnixError("accept", exc.errno or 0) from exc
        fd = FileDescriptor(connection.detach())
        return TCPSocket._adopt(fd, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)


class PacketSocket(DatagramSocket):
    """A packet socket, sending and receiving at the link layer."""

    def __init__(self, socket_type: int, protocol: int) -> None:
        super().__init__(socket.AF_PACKET, socket_type, protocol)

    def set_promiscuous(self) -> None:
        """Put the bound interface into promiscuous mode."""
        address = self.local_address()
        if address.family != socket.AF_PACKET:
            raise ValueError("Address::as() conversion failure")
        ifindex = socket.if_nametoindex(address.sockaddr[0])
        mreq = struct.pack(_PACKET_MREQ_FORMAT, ifindex, PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(SOL_PACKET, PACKET_ADD_MEMBERSHIP, mreq)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket taken over from a file descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, 0, fd=fd)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)