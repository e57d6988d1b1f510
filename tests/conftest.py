from __future__ import annotations

import socket
import threading
import time
import zlib

import pytest


class FakePeer:
    """Loopback server that reads one request until half-close, then replies."""

    def __init__(self, reply: bytes, stall: float = 0.0):
        self.reply = reply
        self.stall = stall
        self.received = b""
        self.server = socket.create_server(("127.0.0.1", 0))
        self.address = self.server.getsockname()[:2]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self) -> None:
        conn, _ = self.server.accept()
        with conn:
            chunks = []
            while True:
                data = conn.recv(4096)
                if not data:
                    break
                chunks.append(data)
            self.received = b"".join(chunks)
            time.sleep(self.stall)
            try:
                conn.sendall(self.reply)
            except OSError:
                # client gave up early (bad magic, bad ack, NAK, timeout)
                pass

    def close(self) -> None:
        self.thread.join(timeout=5.0)
        self.server.close()


@pytest.fixture
def peer():
    started: list[FakePeer] = []

    def start(reply: bytes, stall: float = 0.0) -> FakePeer:
        p = FakePeer(reply, stall)
        started.append(p)
        return p

    yield start

    for p in started:
        p.close()


def forge_crc(prefix: bytes, target: int) -> bytes:
    """Append 4 bytes to ``prefix`` so that the CRC-32 of the result is ``target``."""
    base = zlib.crc32(prefix + bytes(4))
    basis: dict[int, tuple[int, int]] = {}

    for bit in range(32):
        combo = 1 << bit
        vec = zlib.crc32(prefix + combo.to_bytes(4, "little")) ^ base
        for p in range(31, -1, -1):
            if not vec >> p & 1:
                continue
            if p in basis:
                vec ^= basis[p][0]
                combo ^= basis[p][1]
            else:
                basis[p] = (vec, combo)
                break

    want = target ^ base
    patch = 0
    for p in range(31, -1, -1):
        if want >> p & 1:
            want ^= basis[p][0]
            patch ^= basis[p][1]

    data = prefix + patch.to_bytes(4, "little")
    assert zlib.crc32(data) == target
    return data


@pytest.fixture
def forge():
    return forge_crc
