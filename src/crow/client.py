"""Drives one Crow exchange per connection.

Sequence: send magic + request message, half-close, check the peer's magic,
read the ack byte, then let the request consume its payload. A NAK is a
normal outcome (the call returns ``False``), everything else unexpected
raises :class:`~crow.errors.ProtocolError` or a subclass.
"""
from __future__ import annotations

import io
import logging
import struct
from typing import BinaryIO, Optional

from .constants import DEFAULT_TIMEOUT_MS, MAGIC
from .errors import ProtocolError
from .net import Address, StreamConnection
from .request import Ack, Request
from .transfer import Source, read_exact

logger = logging.getLogger(__name__)

MAGIC_FORMAT = struct.Struct("!I")
PREAMBLE = MAGIC_FORMAT.pack(MAGIC)


def receive(source: Source, request: Request, sink: Optional[BinaryIO] = None) -> bool:
    ack = read_exact(source, 1)[0]
    if ack == Ack.NAK:
        logger.info("request refused: %r", request)
        return False
    if ack != request.ack:
        raise ProtocolError(f"invalid ack: 0x{ack:02X}")

    request.receive_payload(source, sink)
    return True


def exchange(conn: StreamConnection, request: Request, sink: Optional[BinaryIO] = None) -> bool:
    conn.write(PREAMBLE + request.message)
    conn.shutdown_write()
    logger.debug("sent %r (%d bytes)", request, len(request.message))

    if read_exact(conn, MAGIC_FORMAT.size) != PREAMBLE:
        raise ProtocolError("not a crow stream")

    return receive(conn, request, sink)


def send_to(
    request: Request,
    address: Address,
    sink: Optional[BinaryIO] = None,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> bool:
    host, port = address
    with StreamConnection.connect(host, port, timeout_ms=timeout_ms) as conn:
        return exchange(conn, request, sink)


def fetch(
    request: Request,
    address: Address,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> Optional[bytes]:
    buf = io.BytesIO()
    if not send_to(request, address, buf, timeout_ms=timeout_ms):
        return None
    return buf.getvalue()
