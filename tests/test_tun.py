import errno
import os
import struct
from unittest import mock

import pytest

from minnet import tun
from minnet.errors import UnixError


@pytest.fixture
def fake_device():
    read_fd, write_fd = os.pipe()
    yield read_fd
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


def _flags(request):
    return struct.unpack_from("h", request, tun.IFNAMSIZ)[0]


def test_tun_open_failure_raises_unix_error():
    with mock.patch("minnet.tun.os.open", side_effect=OSError(errno.ENOENT, "missing")):
        with pytest.raises(UnixError) as info:
            tun.TunFD("tun144")
    assert info.value.attempt == "open"
    assert info.value.error_code == errno.ENOENT


def test_tun_configures_device(fake_device):
    with mock.patch("minnet.tun.os.open", return_value=fake_device) as opener, mock.patch(
        "minnet.tun.fcntl.ioctl", return_value=b""
    ) as ioctl:
        device = tun.TunFD("tun144")
    opener.assert_called_once_with("/dev/net/tun", os.O_RDWR | os.O_CLOEXEC)
    fd, request, ifreq = ioctl.call_args.args
    assert fd == fake_device
    assert device.fd_num() == fake_device
    assert request == tun.TUNSETIFF
    assert len(ifreq) == 40
    assert ifreq[: tun.IFNAMSIZ] == b"tun144".ljust(tun.IFNAMSIZ, b"\0")
    assert _flags(ifreq) == tun.IFF_TUN | tun.IFF_NO_PI


def test_tap_sets_tap_flag(fake_device):
    with mock.patch("minnet.tun.os.open", return_value=fake_device), mock.patch(
        "minnet.tun.fcntl.ioctl", return_value=b""
    ) as ioctl:
        device = tun.TapFD("tap10")
    assert device.fd_num() == fake_device
    assert not device.closed()
    ifreq = ioctl.call_args.args[2]
    assert _flags(ifreq) == tun.IFF_TAP | tun.IFF_NO_PI
    assert ifreq.startswith(b"tap10\0")


def test_long_name_is_truncated_and_terminated(fake_device):
    name = "n" * 30
    with mock.patch("minnet.tun.os.open", return_value=fake_device), mock.patch(
        "minnet.tun.fcntl.ioctl", return_value=b""
    ) as ioctl:
        tun.TunTapFD(name, True)
    ifreq = ioctl.call_args.args[2]
    assert ifreq[: tun.IFNAMSIZ - 1] == name[: tun.IFNAMSIZ - 1].encode()
    assert ifreq[tun.IFNAMSIZ - 1] == 0


def test_ioctl_failure_raises_and_closes(fake_device):
    with mock.patch("minnet.tun.os.open", return_value=fake_device), mock.patch(
        "minnet.tun.fcntl.ioctl", side_effect=OSError(errno.EPERM, "denied")
    ):
        with pytest.raises(UnixError) as info:
            tun.TunFD("tun144")
    assert info.value.attempt == "ioctl"
    assert info.value.error_code == errno.EPERM
    with pytest.raises(OSError):
        os.fstat(fake_device)