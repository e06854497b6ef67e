import errno
import os

import pytest

from minnet.errors import TaggedError, UnixError, check_system_call, notnull


def test_tagged_error_message_joins_attempt_and_message():
    err = TaggedError("getaddrinfo(host, 80)", 7, "lookup failed")
    assert str(err) == "getaddrinfo(host, 80): lookup failed"
    assert err.error_code == 7
    assert err.attempt == "getaddrinfo(host, 80)"


def test_unix_error_uses_strerror():
    err = UnixError("open", errno.ENOENT)
    assert str(err) == f"open: {os.strerror(errno.ENOENT)}"
    assert err.error_code == errno.ENOENT


def test_unix_error_is_tagged_error():
    with pytest.raises(TaggedError) as info:
        raise UnixError("read", errno.EBADF)
    assert info.value.error_code == errno.EBADF


@pytest.mark.parametrize("value", [0, 3, 1024])
def test_check_system_call_passes_non_negative(value):
    assert check_system_call("call", value) == value


def test_check_system_call_raises_on_negative():
    with pytest.raises(UnixError) as info:
        check_system_call("write", -errno.EBADF)
    assert info.value.error_code == errno.EBADF
    assert str(info.value).startswith("write: ")


def test_notnull_returns_value():
    marker = object()
    assert notnull("ctx", marker) is marker


def test_notnull_keeps_falsy_values():
    assert notnull("ctx", 0) == 0


def test_notnull_raises_on_none():
    with pytest.raises(ValueError, match="ctx: returned null pointer"):
        notnull("ctx", None)