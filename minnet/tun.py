"""File descriptors for Linux TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor

CLONE_DEVICE = "/dev/net/tun"
IFNAMSIZ = 16
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
TUNSETIFF = 0x400454CA

_IFREQ_FORMAT = f"{IFNAMSIZ}sh22x"


def _make_ifreq(devname: str, is_tun: bool) -> bytes:
    name = devname.encode().split(b"\0", 1)[0][: IFNAMSIZ - 1]
    flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI
    return struct.pack(_IFREQ_FORMAT, name, flags)


class TunTapFD(FileDescriptor):
    """A handle on an existing persistent TUN (IP) or TAP (Ethernet) device."""

    def __init__(self, devname: str, is_tun: bool) -> None:
        try:
            fd = os.open(CLONE_DEVICE, os.O_RDWR | os.O_CLOEXEC)
        except OSError as exc:
            raise UnixError("open", exc.errno or 0) from exc
        try:
            super().__init__(fd)
        except Exception:
            os.close(fd)
            raise
        try:
            fcntl.ioctl(fd, TUNSETIFF, _make_ifreq(devname, is_tun))
        except OSError as exc:
            self.close()
            raise UnixError("ioctl", exc.errno or 0) from exc


class TunFD(TunTapFD):
    """A handle on an existing persistent TUN device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, True)


class TapFD(TunTapFD):
    """A handle on an existing persistent TAP device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, False)