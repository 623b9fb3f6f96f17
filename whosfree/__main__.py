"""Command-line entry for whosfree.

    python -m whosfree [--config PATH] [--host H] [--port P] [--debug]
    python -m whosfree normalize calendar.ics
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whosfree",
        description="whosfree - group free/busy server backed by weekly calendar feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m whosfree                          # Start server on default port (8080)
  python -m whosfree --port 3000              # Start server on port 3000
  python -m whosfree normalize classes.ics    # Print busy blocks for a feed
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file (default: ./whosfree.yaml)")
    parser.add_argument("--host", metavar="HOST", help="Bind address (or WHOSFREE_WEB_HOST)")
    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or WHOSFREE_WEB_PORT)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    normalize = subparsers.add_parser("normalize", help="Print the busy blocks in an ICS file as JSON")
    normalize.add_argument("path", type=Path, help="ICS file to normalize")
    return parser


def _normalize_file(path: Path) -> int:
    from whosfree.calendar.normalizer import normalize_ics
    from whosfree.exceptions import ICSParseError

    try:
        blocks = normalize_ics(path.read_text(encoding="utf-8"))
    except (OSError, ICSParseError) as e:
        print(f"whosfree: {e}", file=sys.stderr)
        return 1

    print(json.dumps([block.model_dump() for block in blocks], indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command == "normalize":
        return _normalize_file(args.path)

    run_server(args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
