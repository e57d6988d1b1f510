from __future__ import annotations

import logging
import socket
from typing import Tuple

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


class StreamConnection:
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def connect(cls, host: str, port: int, timeout_ms: int = 0) -> "StreamConnection":
        timeout = timeout_ms / 1000.0 if timeout_ms > 0 else None
        logger.debug("connecting to %s:%d", host, port)
        sock = socket.create_connection((host, port), timeout=timeout)
        return cls(sock)

    def readinto(self, buffer: memoryview) -> int:
        return self.sock.recv_into(buffer)

    def write(self, data: bytes) -> None:
        self.sock.sendall(data)

    def shutdown_write(self) -> None:
        self.sock.shutdown(socket.SHUT_WR)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "StreamConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
