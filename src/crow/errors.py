from __future__ import annotations


class ProtocolError(OSError):
    """The peer violated the Crow wire protocol."""


class PrematureEndError(ProtocolError):
    pass


class ChecksumError(ProtocolError):
    pass
