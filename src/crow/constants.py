from __future__ import annotations

MAGIC = 0x43524F57  # b"CROW"

REQ_PIPE = 0x01
REQ_RECORD = 0x02
REQ_BLOB = 0x03
REQ_CHUNK = 0x04

ACK_PIPE = 0x81
ACK_RECORD = 0x82
ACK_BLOB = 0x83
ACK_CHUNK = 0x84
NAK = 0x15

BUFFER_SIZE = 8192
RECORD_SIZE = 128
TRAILER_SIZE = 4

MAX_PIPE_COUNT = 0xFF
MAX_NAME_LEN = 0xFFFF

DEFAULT_PORT = 4477
DEFAULT_TIMEOUT_MS = 0
