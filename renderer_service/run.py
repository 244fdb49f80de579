"""Command line entrypoint for the render service."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from .config import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the script video renderer service")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 3000)",
    )
    parser.add_argument("--reload", action="store_true", help="Enable autoreload (dev only)")
    parser.add_argument("--log-level", default="info", help="Logging level (default: info)")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.port is None:
        args.port = get_settings().port
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger(__name__).info("FFmpeg render server listening on port %s", args.port)
    uvicorn.run(
        "renderer_service.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
        factory=False,
    )


if __name__ == "__main__":
    main()
