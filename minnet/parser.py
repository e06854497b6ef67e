"""Big-endian field parsing and serialization over lists of byte buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any, Union

BytesLike = Union[bytes, bytearray, memoryview]
BufferInput = Union[BytesLike, Iterable[BytesLike]]


def _as_buffers(buffers: BufferInput) -> list[bytes]:
    if isinstance(buffers, (bytes, bytearray, memoryview)):
        return [bytes(buffers)]
    return [bytes(piece) for piece in buffers]


class _BufferList:
    """A queue of byte strings that can be consumed from the front."""

    def __init__(self, buffers: Iterable[bytes]) -> None:
        self._buffers: deque[bytes] = deque()
        self._skip = 0
        self._size = 0
        for piece in buffers:
            self.append(piece)

    def __len__(self) -> int:
        return self._size

    def append(self, data: bytes) -> None:
        if data:
            self._buffers.append(data)
            self._size += len(data)

    def remove_prefix(self, length: int) -> None:
        while length and self._buffers:
            front = self._buffers[0]
            taken = min(length, len(front) - self._skip)
            self._skip += taken
            self._size -= taken
            length -= taken
            if self._skip == len(front):
                self._buffers.popleft()
                self._skip = 0

    def take(self, length: int) -> bytes:
        pieces = []
        while length:
            front = self._buffers[0]
            chunk = front[self._skip : self._skip + length]
            pieces.append(chunk)
            self.remove_prefix(len(chunk))
            length -= len(chunk)
        return b"".join(pieces)

    def views(self) -> list[bytes]:
        views = []
        skip = self._skip
        for piece in self._buffers:
            views.append(piece[skip:])
            skip = 0
        return views

    def dump_all(self) -> list[bytes]:
        out = self.views()
        self._buffers.clear()
        self._skip = 0
        self._size = 0
        return out


class Parser:
    """Reads big-endian integers and byte strings from a list of buffers.

    Reading past the end sets a sticky error flag; once set, every further
    read yields zeros without consuming input.
    """

    def __init__(self, buffers: BufferInput) -> None:
        self._input = _BufferList(_as_buffers(buffers))
        self._error = False

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes from the front of the input."""
        self._input.remove_prefix(n)

    def _available(self, size: int) -> bool:
        if size > len(self._input):
            self._error = True
        return not self._error

    def integer(self, size: int) -> int:
        """Read an unsigned big-endian integer of ``size`` bytes (0 on error)."""
        if not self._available(size):
            return 0
        return int.from_bytes(self._input.take(size), "big")

    def string(self, length: int) -> bytes:
        """Read ``length`` raw bytes (zero-filled on error)."""
        if not self._available(length):
            return bytes(length)
        return self._input.take(length)

    def all_remaining(self) -> list[bytes]:
        """Consume and return everything left, as a list of buffers."""
        return self._input.dump_all()

    def all_remaining_bytes(self) -> bytes:
        """Consume and return everything left, joined into one byte string."""
        return b"".join(self._input.dump_all())

    def buffer(self) -> list[bytes]:
        """Return the unconsumed input without consuming it."""
        return self._input.views()


class Serializer:
    """Accumulates big-endian integers and byte buffers into a list of buffers."""

    def __init__(self, initial: BytesLike = b"") -> None:
        self._output: list[bytes] = []
        self._pending = bytearray(initial)

    def integer(self, value: int, size: int) -> None:
        """Append ``value`` as an unsigned big-endian integer of ``size`` bytes."""
        mask = (1 << (8 * size)) - 1
        self._pending += (value & mask).to_bytes(size, "big")

    def buffer(self, data: BufferInput) -> None:
        """Append a byte buffer, or each buffer of an iterable, as separate pieces."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            self.flush()
            if data:
                self._output.append(bytes(data))
            return
        for piece in data:
            self.buffer(piece)

    def flush(self) -> None:
        if self._pending:
            self._output.append(bytes(self._pending))
            self._pending.clear()

    def output(self) -> list[bytes]:
        self.flush()
        return list(self._output)


def serialize(obj: Any) -> list[bytes]:
    """Serialize any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.output()


def parse(obj: Any, buffers: BufferInput, *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; return True if parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()