"""Crow protocol client

Fetches pipes, records, blobs and chunks from a Crow server, one request per
connection:
- request values encode their own wire message and know their payload shape
- a single bounded copy loop streams payloads, optionally through CRC-32
- checksum, ack and framing failures surface as OSError subclasses
"""

from .client import fetch, send_to
from .errors import ChecksumError, PrematureEndError, ProtocolError
from .request import Request, blob, chunk, pipe, record

__all__ = [
    "ChecksumError",
    "PrematureEndError",
    "ProtocolError",
    "Request",
    "blob",
    "chunk",
    "fetch",
    "pipe",
    "record",
    "send_to",
]
