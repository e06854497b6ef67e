"""Reference-counted handles on kernel file descriptors."""

from __future__ import annotations

import errno
import fcntl
import os
import sys
import weakref
from collections.abc import Callable, Iterable
from typing import Any, TypeVar, Union

from minnet.errors import UnixError

READ_BUFFER_SIZE = 16384

_RETRY_ERRNOS = frozenset({errno.EAGAIN, errno.EINPROGRESS})

T = TypeVar("T")
_WriteData = Union[bytes, bytearray, memoryview, Iterable[Union[bytes, bytearray, memoryview]]]


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError as exc:
        print(f"Exception destructing FDWrapper: {UnixError('close', exc.errno or 0)}", file=sys.stderr)


class _FDWrapper:
    """The shared state of one kernel file descriptor; closes it when collected."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.non_blocking = False
        self.read_count = 0
        self.write_count = 0
        flags = self.check_call("fcntl", fcntl.fcntl, fd, fcntl.F_GETFL)
        self.non_blocking = bool(flags & os.O_NONBLOCK)
        self._finalizer = weakref.finalize(self, _close_quietly, fd)

    def check_call(self, attempt: str, func: Callable[..., T], *args: Any) -> T:
        """Run ``func``; a would-block error on a non-blocking fd yields 0."""
        try:
            return func(*args)
        except OSError as exc:
            if self.non_blocking and exc.errno in _RETRY_ERRNOS:
                return 0  # type: ignore[return-value]
            raise UnixError(attempt, exc.errno or 0) from exc

    def close(self) -> None:
        if self.closed:
            raise UnixError("close", errno.EBADF)
        self._finalizer.detach()
        self.check_call("close", os.close, self.fd)
        self.eof = self.closed = True


class FileDescriptor:
    """A handle on a file descriptor; duplicates share the same descriptor and counters."""

    def __init__(self, fd: int) -> None:
        self._wrapper = _FDWrapper(fd)

    def _check_call(self, attempt: str, func: Callable[..., T], *args: Any) -> T:
        return self._wrapper.check_call(attempt, func, *args)

    def _set_eof(self) -> None:
        self._wrapper.eof = True

    def _register_read(self) -> None:
        self._wrapper.read_count += 1

    def _register_write(self) -> None:
        self._wrapper.write_count += 1

    def read(self, size: int = READ_BUFFER_SIZE) -> bytes:
        """Read up to ``size`` bytes; b"" means EOF, or nothing ready on a non-blocking fd."""
        if not size:
            size = READ_BUFFER_SIZE
        try:
            data = os.read(self.fd_num(), size)
        except OSError as exc:
            if self._wrapper.non_blocking and exc.errno in _RETRY_ERRNOS:
                return b""
            raise UnixError("read", exc.errno or 0) from exc
        self._register_read()
        if not data:
            self._set_eof()
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def read_vectored(self, sizes: Iterable[int]) -> list[bytes]:
        """Scatter one read across buffers of the given sizes.

        The last buffer always holds up to READ_BUFFER_SIZE bytes. Returns the
        filled part of each buffer, or [] if nothing was ready on a
        non-blocking fd.
        """
        sizes = list(sizes)
        if not sizes:
            return []
        sizes[-1] = READ_BUFFER_SIZE
        buffers = [bytearray(size) for size in sizes]
        try:
            count = os.readv(self.fd_num(), buffers)
        except OSError as exc:
            if self._wrapper.non_blocking and exc.errno in _RETRY_ERRNOS:
                return []
            raise UnixError("read", exc.errno or 0) from exc
        self._register_read()
        if count > sum(sizes):
            raise RuntimeError("read() read more than requested")
        pieces = []
        remaining = count
        for buf in buffers:
            taken = min(remaining, len(buf))
            pieces.append(bytes(buf[:taken]))
            remaining -= taken
        return pieces

    def write(self, data: _WriteData) -> int:
        """Write a buffer, or a sequence of buffers, in one call; return bytes written."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            pieces = [bytes(data)]
        else:
            pieces = [bytes(piece) for piece in data]
        total = sum(len(piece) for piece in pieces)
        written = self._check_call("writev", os.writev, self.fd_num(), pieces)
        self._register_write()
        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        self._wrapper.close()

    def duplicate(self) -> "FileDescriptor":
        """Another handle on the same descriptor, sharing its state."""
        other = FileDescriptor.__new__(FileDescriptor)
        other._wrapper = self._wrapper
        return other

    def set_blocking(self, blocking: bool) -> None:
        flags = self._check_call("fcntl", fcntl.fcntl, self.fd_num(), fcntl.F_GETFL)
        if blocking:
            flags &= ~os.O_NONBLOCK
        else:
            flags |= os.O_NONBLOCK
        self._check_call("fcntl", fcntl.fcntl, self.fd_num(), fcntl.F_SETFL, flags)
        self._wrapper.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._wrapper.fd

    def eof(self) -> bool:
        return self._wrapper.eof

    def closed(self) -> bool:
        return self._wrapper.closed

    def read_count(self) -> int:
        return self._wrapper.read_count

    def write_count(self) -> int:
        return self._wrapper.write_count

    def __enter__(self) -> "FileDescriptor":
        return self

    def __exit__(self, *args: Any) -> None:
        if not self.closed():
            self.close()