#!/usr/bin/env python3
"""Probe each compression mode and print when raw bytes arrive."""

from __future__ import annotations

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from streamprobe.config import settings  # noqa: E402
from streamprobe.models.stream import CompressionMode  # noqa: E402
from streamprobe.services import report_service  # noqa: E402
from streamprobe.services.probe_service import ProbeService  # noqa: E402
from streamprobe.utils.logger import setup_logging  # noqa: E402


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Streaming compression buffering probe")
    parser.add_argument("--url", default=settings.BASE_URL, help="Server base URL")
    parser.add_argument("--path", default="/", help="Stream route, / or /image")
    parser.add_argument(
        "--modes",
        nargs="+",
        default=[m.value for m in CompressionMode],
        choices=[m.value for m in CompressionMode],
    )
    parser.add_argument("--timeout", type=float, default=settings.PROBE_TIMEOUT)
    parser.add_argument(
        "--decode",
        action="store_true",
        default=settings.PROBE_DECODE,
        help="Time decompressed output instead of raw bytes",
    )
    parser.add_argument(
        "--no-flush",
        action="store_true",
        help="Ask the server not to flush its codec after each chunk",
    )
    parser.add_argument("--log-level", default="WARNING")
    return parser


def emit(lines) -> None:
    for line in lines:
        print(line, flush=True)


def main() -> int:
    args = build_arg_parser().parse_args()
    setup_logging(args.log_level)

    print("Compression streaming buffering probe")
    print(f"Target: {args.url.rstrip('/')}{args.path}")
    print("We measure when bytes arrive at the client")

    service = ProbeService(
        args.url,
        path=args.path,
        timeout=args.timeout,
        decode=args.decode,
        threshold=settings.STREAMING_THRESHOLD,
        params={"flush": "false"} if args.no_flush else None,
    )
    try:
        results = service.run_all(
            [CompressionMode(m) for m in args.modes],
            on_start=lambda mode: emit(report_service.render_banner(mode, decoded=args.decode)),
            on_event=lambda mode, event: emit([report_service.render_event(event)]),
            on_result=lambda result: emit(report_service.render_result(result)),
        )
    finally:
        service.close()

    emit(report_service.render_summary(results))
    code = report_service.exit_code(results)
    if code:
        print("\nEvery probe failed; is the server running and its resource readable?", file=sys.stderr)
    return code


if __name__ == "__main__":
    raise SystemExit(main())
