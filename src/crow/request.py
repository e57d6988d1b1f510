from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, ClassVar, Optional, Union

from .checksum import Crc32
from .constants import (
    ACK_BLOB,
    ACK_CHUNK,
    ACK_PIPE,
    ACK_RECORD,
    MAX_NAME_LEN,
    MAX_PIPE_COUNT,
    NAK,
    RECORD_SIZE,
    REQ_BLOB,
    REQ_CHUNK,
    REQ_PIPE,
    REQ_RECORD,
    TRAILER_SIZE,
)
from .errors import ChecksumError
from .transfer import Source, read_exact, transfer

PIPE_FORMAT = struct.Struct("!BB")  # opcode, count
RECORD_FORMAT = struct.Struct("!BH")  # opcode, name length; name follows
BLOB_FORMAT = struct.Struct("!Bi")  # opcode, id
CHUNK_FORMAT = struct.Struct("!BiQQ")  # opcode, id, offset, length
TRAILER_FORMAT = struct.Struct("!I")


class Opcode(enum.IntEnum):
    PIPE = REQ_PIPE
    RECORD = REQ_RECORD
    BLOB = REQ_BLOB
    CHUNK = REQ_CHUNK


class Ack(enum.IntEnum):
    NAK = NAK
    PIPE = ACK_PIPE
    RECORD = ACK_RECORD
    BLOB = ACK_BLOB
    CHUNK = ACK_CHUNK


def _pack(layout: struct.Struct, *values: int) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as e:
        raise ValueError(str(e)) from e


@dataclass(frozen=True, slots=True)
class PipeRequest:
    count: int
    message: bytes = field(init=False, repr=False)

    ack: ClassVar[Ack] = Ack.PIPE

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not 0 <= self.count <= MAX_PIPE_COUNT:
            raise ValueError("not in range 0..255")
        object.__setattr__(self, "message", _pack(PIPE_FORMAT, Opcode.PIPE, self.count))

    @property
    def size(self) -> int:
        return 0

    def receive_payload(self, source: Source, sink: Optional[BinaryIO]) -> None:
        pass


@dataclass(frozen=True, slots=True)
class RecordRequest:
    name: str
    record_size: int = RECORD_SIZE
    message: bytes = field(init=False, repr=False)

    ack: ClassVar[Ack] = Ack.RECORD

    def __post_init__(self) -> None:
        raw = self.name.encode("utf-8")
        if len(raw) > MAX_NAME_LEN:
            raise ValueError(f"name too long: {len(raw)} bytes")
        if self.record_size < 0:
            raise ValueError(f"negative record size: {self.record_size}")
        object.__setattr__(self, "message", RECORD_FORMAT.pack(Opcode.RECORD, len(raw)) + raw)

    @property
    def size(self) -> int:
        return self.record_size

    def receive_payload(self, source: Source, sink: Optional[BinaryIO]) -> None:
        transfer(source, sink, self.record_size)


@dataclass(frozen=True, slots=True)
class BlobRequest:
    id: int
    checksum: int
    size: int
    message: bytes = field(init=False, repr=False)

    ack: ClassVar[Ack] = Ack.BLOB

    def __post_init__(self) -> None:
        if not 0 <= self.checksum <= 0xFFFFFFFF:
            raise ValueError(f"checksum out of range: {self.checksum}")
        if self.size < 0:
            raise ValueError(f"negative size: {self.size}")
        object.__setattr__(self, "message", _pack(BLOB_FORMAT, Opcode.BLOB, self.id))

    def receive_payload(self, source: Source, sink: Optional[BinaryIO]) -> None:
        crc = Crc32()
        transfer(source, sink, self.size, crc)
        if crc.value != self.checksum:
            raise ChecksumError("invalid checksum")


@dataclass(frozen=True, slots=True)
class ChunkRequest:
    id: int
    offset: int
    length: int
    message: bytes = field(init=False, repr=False)

    ack: ClassVar[Ack] = Ack.CHUNK

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "message",
            _pack(CHUNK_FORMAT, Opcode.CHUNK, self.id, self.offset, self.length),
        )

    @property
    def size(self) -> int:
        return self.length + TRAILER_SIZE

    def receive_payload(self, source: Source, sink: Optional[BinaryIO]) -> None:
        crc = Crc32()
        transfer(source, sink, self.length, crc)
        (trailer,) = TRAILER_FORMAT.unpack(read_exact(source, TRAILER_SIZE))
        if crc.value != trailer:
            raise ChecksumError("invalid checksum")


Request = Union[PipeRequest, RecordRequest, BlobRequest, ChunkRequest]


def pipe(count: int) -> PipeRequest:
    return PipeRequest(count)


def record(name: str, record_size: int = RECORD_SIZE) -> RecordRequest:
    return RecordRequest(name, record_size)


def blob(id: int, checksum: int, size: int) -> BlobRequest:
    return BlobRequest(id, checksum, size)


def chunk(id: int, offset: int, length: int) -> ChunkRequest:
    return ChunkRequest(id, offset, length)


def decode(message: bytes) -> Request:
    """Parse an encoded request message back into a request value.

    Blob messages carry only the id, so the decoded checksum and size are 0.
    Raises ValueError for unknown opcodes or malformed messages.
    """
    if not message:
        raise ValueError("empty message")

    try:
        opcode = Opcode(message[0])
    except ValueError:
        raise ValueError(f"unknown opcode: 0x{message[0]:02X}") from None

    if opcode is Opcode.PIPE:
        _expect_len(message, PIPE_FORMAT.size)
        _, count = PIPE_FORMAT.unpack(message)
        return PipeRequest(count)

    if opcode is Opcode.RECORD:
        if len(message) < RECORD_FORMAT.size:
            raise ValueError("record message too short")
        _, name_len = RECORD_FORMAT.unpack_from(message)
        _expect_len(message, RECORD_FORMAT.size + name_len)
        return RecordRequest(message[RECORD_FORMAT.size :].decode("utf-8"))

    if opcode is Opcode.BLOB:
        _expect_len(message, BLOB_FORMAT.size)
        _, id_ = BLOB_FORMAT.unpack(message)
        return BlobRequest(id_, 0, 0)

    _expect_len(message, CHUNK_FORMAT.size)
    _, id_, offset, length = CHUNK_FORMAT.unpack(message)
    return ChunkRequest(id_, offset, length)


def _expect_len(message: bytes, size: int) -> None:
    if len(message) != size:
        raise ValueError(f"expected {size} byte message, got {len(message)}")
