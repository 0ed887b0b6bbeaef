#!/usr/bin/env python3
"""Decode a share link and print the share document it carries.

Usage:
    python scripts/decode_share_link.py "http://localhost:3001/#start=%7B..."
    python scripts/decode_share_link.py "http://localhost:3001/#share=abc123" --config config.yaml

Short links are resolved through the short-link backend configured in the
given config file.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

_SRC = Path(__file__).resolve().parent.parent / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from geocat_svc import _bootstrap as bs
from geocat_svc.errors import GeoCatError


async def decode_share_link(url: str, config_path: str | None = None, resolve: bool = True) -> dict:
    """
    Decode ``url`` into a summary dict.

    Returns the share document (``document``), or only the ``token`` when
    the link is a short link and ``resolve`` is false.
    """
    config, _ = bs.load_config(config_path)
    transport = bs.build_transport(config)
    codec = bs.build_share_codec(config, transport)
    try:
        decoded = codec.decode(url)
        summary: dict = {"userProperties": decoded.user_properties}
        if decoded.token is not None:
            summary["token"] = decoded.token
            if not resolve:
                return summary
        document = await codec.resolve(decoded)
        summary["document"] = document.to_dict()
        return summary
    finally:
        await transport.close()


def main():
    parser = argparse.ArgumentParser(
        description="Decode a GeoCat share link",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the document embedded in a full link
  python scripts/decode_share_link.py "http://localhost:3001/#start=..."

  # Only show the token of a short link
  python scripts/decode_share_link.py "http://localhost:3001/#share=abc123" --no-resolve

Config (config.yaml):
  share:
    short_link:
      backend: share-data-service
      url: http://localhost:3001/share
        """,
    )
    parser.add_argument("url", help="Share link to decode")
    parser.add_argument("--config", help="Config file (default: $GEOCAT_CONFIG or config.yaml)")
    parser.add_argument(
        "--no-resolve",
        action="store_true",
        help="Do not exchange short-link tokens for documents",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        summary = asyncio.run(decode_share_link(args.url, args.config, resolve=not args.no_resolve))
    except GeoCatError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.hint:
            print(f"Hint: {e.hint}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
