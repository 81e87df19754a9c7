"""
esdrain CLI — Command-Line Interface
====================================

Usage:
    esdrain export corpus --output corpus.jsonl
    esdrain --hosts https://es1:9200 --user elastic export corpus \\
        --query '{"query": {"term": {"year": "2024"}}}' --batch-size 5000
    esdrain export corpus --query-file query.json --max-retries 5 --raw
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .config import ExportConfig
from .errors import ScrollError
from .session import ExportSession
from .sinks import JsonlSink


def get_hosts(args) -> List[str]:
    """Extract hosts from args."""
    if args.hosts:
        return args.hosts.split(",")
    return ["http://localhost:9200"]


def read_query(args) -> str:
    """Query body text from --query-file or --query."""
    if args.query_file:
        with open(args.query_file, "r", encoding="utf-8") as f:
            return f.read()
    return args.query


def cmd_export(args) -> int:
    """Export every document matching the query as JSON lines."""
    try:
        config = ExportConfig(
            index=args.index,
            query=read_query(args),
            hosts=get_hosts(args),
            username=args.user,
            password=args.password,
            api_key=args.api_key,
            verify_certs=not args.no_verify_certs,
            batch_size=args.batch_size,
            max_retries=args.max_retries,
            retry_delay=args.retry_delay,
            scroll_duration=args.scroll,
            timeout=args.timeout
        )
        spec = config.query_spec()
        # Parse before connecting so a bad body never reaches the cluster
        spec.parsed_body()
        if args.progress_interval < 0:
            raise ValueError(f"progress interval must be >= 0, got {args.progress_interval}")
        # Bad host URLs are rejected here, before the output file is created
        client = config.scroll_client()
    except (ValueError, OSError, ScrollError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    to_stdout = args.output == "-"
    try:
        stream = sys.stdout if to_stdout else open(args.output, "w", encoding="utf-8")
    except OSError as e:
        client.close()
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        with client:
            sink = JsonlSink(
                stream,
                raw=args.raw,
                progress_interval=args.progress_interval,
                quiet=to_stdout
            )
            session = ExportSession(
                client,
                spec,
                max_retries=config.max_retries,
                retry_delay=config.retry_delay
            )
            result = session.run(sink)
    except ScrollError as e:
        print(f"Export failed ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    finally:
        if not to_stdout:
            stream.close()

    if result.release_error:
        print(f"Warning: {result.release_error}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="esdrain",
        description="esdrain — Resilient Elasticsearch scroll export"
    )

    # Global options
    parser.add_argument(
        "--hosts",
        help="Elasticsearch hosts (comma-separated)",
        default=None
    )
    parser.add_argument(
        "--api-key",
        dest="api_key",
        help="Elasticsearch API key",
        default=None
    )
    parser.add_argument("--user", help="Basic auth username", default=None)
    parser.add_argument(
        "--password",
        help="Basic auth password (default: $ES_PASSWORD)",
        default=os.environ.get("ES_PASSWORD")
    )
    parser.add_argument(
        "--no-verify-certs",
        action="store_true",
        help="Skip SSL certificate verification"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # export command
    export_parser = subparsers.add_parser("export", help="Export an index to JSONL")
    export_parser.add_argument("index", help="Index name")
    export_parser.add_argument(
        "--query",
        default='{"query": {"match_all": {}}}',
        help="Search body as JSON text"
    )
    export_parser.add_argument("--query-file", help="Read the search body from a file")
    export_parser.add_argument("-o", "--output", default="-", help="Output file ('-' for stdout)")
    export_parser.add_argument("--batch-size", type=int, default=1000, help="Hits per scroll batch")
    export_parser.add_argument("--max-retries", type=int, default=3, help="Retries per scroll request")
    export_parser.add_argument(
        "--retry-delay",
        type=float,
        default=0.0,
        help="Seconds between retries (default: retry immediately)"
    )
    export_parser.add_argument("--scroll", default="10m", help="Scroll cursor lifetime")
    export_parser.add_argument("--timeout", default="10s", help="Per-request timeout")
    export_parser.add_argument("--raw", action="store_true", help="Write whole hits, not just _source")
    export_parser.add_argument(
        "--progress-interval",
        type=int,
        default=100_000,
        help="Documents between progress reports"
    )

    # Parse and dispatch
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.command == "export":
        return cmd_export(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
