from __future__ import annotations

import argparse
import json
import logging
import os
import tempfile
import time
from typing import BinaryIO, Optional

from . import request as req
from .client import send_to
from .constants import DEFAULT_PORT, DEFAULT_TIMEOUT_MS, RECORD_SIZE
from .request import Request

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_REFUSED = 3


class CountingSink:
    def __init__(self, out: Optional[BinaryIO]):
        self.out = out
        self.count = 0

    def write(self, data: bytes) -> None:
        self.count += len(data)
        if self.out is not None:
            self.out.write(data)


def build_request(args: argparse.Namespace) -> Request:
    if args.cmd == "pipe":
        return req.pipe(args.count)
    if args.cmd == "record":
        return req.record(args.name, args.record_size)
    if args.cmd == "blob":
        return req.blob(args.id, args.checksum, args.size)
    return req.chunk(args.id, args.offset, args.length)


def run(args: argparse.Namespace, request: Request) -> int:
    start = time.monotonic()
    partial = None

    try:
        if args.out:
            # payload only lands at --out once the exchange is verified
            target_dir = os.path.dirname(os.path.abspath(args.out))
            partial = tempfile.NamedTemporaryFile(dir=target_dir, prefix=".crow-", delete=False)
        sink = CountingSink(partial)
        acked = send_to(request, (args.host, args.port), sink, timeout_ms=args.timeout_ms)
        if partial is not None and acked:
            partial.close()
            os.replace(partial.name, args.out)
            partial = None
    except OSError as e:
        logger.error("%s failed: %s", args.cmd, e)
        return EXIT_FAILED
    finally:
        if partial is not None:
            partial.close()
            os.unlink(partial.name)

    payload = {
        "request": args.cmd,
        "acknowledged": acked,
        "bytes": sink.count,
        "seconds": time.monotonic() - start,
    }
    print(json.dumps(payload, indent=2) if args.json else payload)
    return EXIT_OK if acked else EXIT_REFUSED


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="crow", description="Fetch pipes, records, blobs and chunks from a Crow server.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--host", required=True)
        x.add_argument("--port", type=int, default=DEFAULT_PORT)
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
        x.add_argument("--out", help="write the payload here instead of discarding it")
        x.add_argument("--json", action="store_true")

    pipe = sub.add_parser("pipe")
    add_common(pipe)
    pipe.add_argument("count", type=int)

    record = sub.add_parser("record")
    add_common(record)
    record.add_argument("--record-size", type=int, default=RECORD_SIZE)
    record.add_argument("name")

    blob = sub.add_parser("blob")
    add_common(blob)
    blob.add_argument("id", type=int)
    blob.add_argument("checksum", type=lambda s: int(s, 0), help="expected CRC-32, decimal or 0x hex")
    blob.add_argument("size", type=int)

    chunk = sub.add_parser("chunk")
    add_common(chunk)
    chunk.add_argument("id", type=int)
    chunk.add_argument("offset", type=int)
    chunk.add_argument("length", type=int)

    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")

    try:
        request = build_request(args)
    except ValueError as e:
        p.error(str(e))

    return run(args, request)


if __name__ == "__main__":
    raise SystemExit(main())
