"""Bounded stream copy shared by every payload shape.

A *source* is anything with ``readinto(buffer) -> int`` that fills at most
``len(buffer)`` bytes and returns 0 at end of stream (a connection from
:mod:`crow.net`, or ``io.BytesIO`` in tests). A *sink* is anything with
``write(data)`` that copies what it is given, since the buffer is reused;
``None`` discards.

Reads are sized so that no byte beyond the requested count is consumed,
which keeps whatever follows the payload (e.g. a chunk trailer) aligned.
"""
from __future__ import annotations

from typing import BinaryIO, Optional, Protocol

from .checksum import Crc32
from .constants import BUFFER_SIZE
from .errors import PrematureEndError


class Source(Protocol):
    def readinto(self, buffer: memoryview) -> int: ...


def transfer(
    source: Source,
    sink: Optional[BinaryIO],
    size: int,
    checksum: Optional[Crc32] = None,
) -> None:
    buffer = memoryview(bytearray(BUFFER_SIZE))
    todo = size

    while todo > 0:
        want = BUFFER_SIZE if todo >= BUFFER_SIZE else todo
        count = source.readinto(buffer[:want])
        if not count:
            raise PrematureEndError("premature end of stream")

        data = buffer[:count]
        if sink is not None:
            sink.write(data)
        if checksum is not None:
            checksum.update(data)
        todo -= count


def read_exact(source: Source, size: int) -> bytes:
    buffer = bytearray(size)
    view = memoryview(buffer)
    done = 0

    while done < size:
        count = source.readinto(view[done:])
        if not count:
            raise PrematureEndError("premature end of stream")
        done += count

    return bytes(buffer)
