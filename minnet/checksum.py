"""The Internet checksum (one's-complement sum of 16-bit words)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

_Data = Union[bytes, bytearray, memoryview, Iterable[Union[bytes, bytearray, memoryview]]]


class InternetChecksum:
    """Incrementally computes the Internet checksum over a byte stream."""

    def __init__(self, initial: int = 0) -> None:
        self._sum = initial & 0xFFFFFFFF
        self._odd = False

    def add(self, data: _Data) -> None:
        """Add a byte string, or each byte string of an iterable, in order."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            for piece in data:
                self.add(piece)
            return
        data = bytes(data)
        if not data:
            return
        high, low = (data[0::2], data[1::2]) if not self._odd else (data[1::2], data[0::2])
        self._sum = (self._sum + (sum(high) << 8) + sum(low)) & 0xFFFFFFFF
        if len(data) % 2:
            self._odd = not self._odd

    def value(self) -> int:
        total = self._sum
        while total > 0xFFFF:
            total = (total >> 16) + (total & 0xFFFF)
        return ~total & 0xFFFF