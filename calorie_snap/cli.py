"""Command line entry point.

Commands:
    serve               run the API with uvicorn
    analyze <image>     encode a photo, post it, print the breakdown

Exit codes (analyze):
    0 success
    1 analysis error envelope
    2 image could not be read
    3 transport error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

import httpx
import uvicorn

from calorie_snap.client.capture import DEFAULT_JPEG_QUALITY, encode_image_file
from calorie_snap.client.http_client import AnalysisClient
from calorie_snap.client.render import render_envelope


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="calorie-snap", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    analyze = sub.add_parser("analyze", help="analyze a food photo")
    analyze.add_argument("image", help="path to a photo")
    analyze.add_argument("--url", default="http://127.0.0.1:8000", help="service base URL")
    analyze.add_argument("--session-id", default=None)
    analyze.add_argument("--quality", type=float, default=DEFAULT_JPEG_QUALITY)
    analyze.add_argument("--max-side", type=int, default=None, help="downscale longer side")
    analyze.add_argument("--retries", type=int, default=1, help="attempts on retryable errors")
    analyze.add_argument("--json", action="store_true", help="print the raw envelope")
    return parser


async def _analyze(args: argparse.Namespace) -> int:
    try:
        image = encode_image_file(args.image, quality=args.quality, max_side=args.max_side)
    except (OSError, ValueError) as exc:
        print(f"Cannot read image {args.image}: {exc}", file=sys.stderr)
        return 2

    try:
        async with AnalysisClient(args.url) as client:
            envelope = await client.analyze_with_retry(
                image, session_id=args.session_id, max_attempts=max(1, args.retries)
            )
    except httpx.HTTPError as exc:
        print(f"Request failed: {exc}", file=sys.stderr)
        return 3

    print(json.dumps(envelope, indent=2) if args.json else render_envelope(envelope))
    return 0 if envelope.get("success") else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "serve":
        uvicorn.run(
            "calorie_snap.app:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
        )
        return 0

    return asyncio.run(_analyze(args))


if __name__ == "__main__":
    sys.exit(main())
