from __future__ import annotations

import zlib


def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


class Crc32:
    """Running CRC-32 (zlib polynomial) over a byte stream."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value = 0

    def update(self, data: bytes) -> None:
        self._value = zlib.crc32(data, self._value)

    @property
    def value(self) -> int:
        return self._value & 0xFFFFFFFF
