"""CLI entry point for release_retrieval.

Usage:
    python -m release_retrieval.cli fetch --sources sources.json
    python -m release_retrieval.cli fetch --sources sources.json --only cosmic
"""

from __future__ import annotations

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="release-retrieval",
        description="Release data retrieval tools",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to the console",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Fetch command
    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Refresh local copies of the configured sources",
    )
    fetch_parser.add_argument(
        "--sources",
        type=str,
        required=True,
        help="JSON file listing the sources to fetch",
    )
    fetch_parser.add_argument(
        "--only",
        action="append",
        metavar="NAME",
        help="Fetch only the named source (may be repeated)",
    )
    fetch_parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for per-source log files",
    )
    fetch_parser.add_argument(
        "--gunzip",
        action="store_true",
        help="Decompress fetched .gz files",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s - %(message)s",
    )

    if args.command == "fetch":
        from release_retrieval.cli.fetch import run_fetch

        return run_fetch(
            sources_path=args.sources,
            only=args.only,
            log_dir=args.log_dir,
            gunzip=args.gunzip,
        )
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
