#!/usr/bin/env python3
"""Start the paced streaming server"""

import argparse
import sys
import os

# make the project root importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def main():
    from streamprobe.config import settings

    parser = argparse.ArgumentParser(description="Run the stream probe server")
    parser.add_argument("--host", default=settings.HOST, help=f"Bind host (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Bind port (default: {settings.PORT})")
    parser.add_argument("--delay-ms", type=int, default=settings.CHUNK_DELAY_MS, help="Pause before each chunk")
    parser.add_argument("--chunk-size", type=int, default=settings.CHUNK_SIZE, help="Bytes per chunk")
    parser.add_argument("--chunk-count", type=int, default=settings.CHUNK_COUNT, help="Synthetic chunks per response")
    parser.add_argument("--image", default=settings.IMAGE_PATH, help="Binary resource served by /image")
    parser.add_argument(
        "--no-flush",
        action="store_true",
        help="Do not flush the codec after each chunk (reproduces buffering)",
    )
    args = parser.parse_args()

    import uvicorn

    from streamprobe.app import create_app
    from streamprobe.config import Settings

    cfg = Settings(
        HOST=args.host,
        PORT=args.port,
        CHUNK_DELAY_MS=args.delay_ms,
        CHUNK_SIZE=args.chunk_size,
        CHUNK_COUNT=args.chunk_count,
        IMAGE_PATH=args.image,
        COMPRESSION_FLUSH=settings.COMPRESSION_FLUSH and not args.no_flush,
    )
    base = f"http://localhost:{cfg.PORT}"
    print(f"Server running at {base}")
    print("\nTest with curl (use -N to disable buffering):")
    print(f'  curl -N "{base}?format=none"')
    print(f'  curl -N "{base}?format=gzip" | gunzip')
    print(f'  curl -N "{base}?format=brotli" | brotli -d')
    print(f'  curl -N "{base}?format=zstd" | zstd -d')

    # a single worker: the app is built in-process from the settings above
    uvicorn.run(create_app(cfg), host=cfg.HOST, port=cfg.PORT, log_config=None)


if __name__ == "__main__":
    main()
