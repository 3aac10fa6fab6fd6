#!/usr/bin/env python3
"""
CLI runner for S3 content search.

Provides command-line interface for:
- Searching object contents of a bucket
- Listing buckets visible to the current credentials

Usage:
    python cli.py search --bucket logs --pattern ERROR500 --result-count 10 --region eu-west-1
    python cli.py search --bucket logs --pattern ERROR500 --result-count 1 --region eu-west-1 --start 1700000000 --end 1710000000
    python cli.py buckets --region eu-west-1
"""

import argparse
import json
import logging
import sys
import threading

import structlog

from config import settings

# Configure logging before imports
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL.upper())
    ),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr)
)

logger = structlog.get_logger()

from errors import SearchError
from services.search_coordinator import SearchCoordinator
from services.search_session import SearchOutcome, SearchRequest
from storage.s3_client import create_s3_client, list_buckets


def run_search(coordinator: SearchCoordinator, request: SearchRequest) -> SearchOutcome:
    """
    Run a search in a background thread so Ctrl+C cancels it.

    On interrupt the cancellation token is set and the partial
    outcome is returned once in-flight fetches unwind.
    """
    cancel_event = threading.Event()
    holder = {}

    def target():
        try:
            holder["outcome"] = coordinator.search(request, cancel_event=cancel_event)
        except Exception as e:
            holder["error"] = e

    worker = threading.Thread(target=target, name="search-main", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        logger.warning("Interrupted, cancelling search")
        cancel_event.set()
        worker.join()

    if "error" in holder:
        raise holder["error"]
    return holder["outcome"]


def cmd_search(args) -> int:
    """Search a bucket and print matches as JSON."""
    request = SearchRequest(
        bucket=args.bucket or "",
        pattern=args.pattern or "",
        result_count=args.result_count,
        region=args.region or settings.AWS_REGION,
        start_time=args.start,
        end_time=args.end,
    )
    coordinator = SearchCoordinator(max_workers=args.workers)

    try:
        outcome = run_search(coordinator, request)
    except SearchError as e:
        logger.error("Search failed", error=e.message, error_code=e.error_code)
        print(json.dumps({"error": e.message, "error_code": e.error_code}, indent=2))
        return 1

    print(json.dumps(outcome.to_dict(), indent=2))
    return 130 if outcome.cancelled else 0


def cmd_buckets(args) -> int:
    """Print bucket names for a region."""
    region = args.region or settings.AWS_REGION
    try:
        names = list_buckets(create_s3_client(region))
    except SearchError as e:
        logger.error("Bucket listing failed", error=e.message, error_code=e.error_code)
        return 1

    print(json.dumps({"region": region, "buckets": names}, indent=2))
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="S3 Content Search CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  search    Search object contents of a bucket
  buckets   List buckets

Examples:
  python cli.py search --bucket logs --pattern ERROR500 --result-count 10 --region eu-west-1
  python cli.py buckets --region eu-west-1
        """
    )

    parser.add_argument(
        "command",
        choices=["search", "buckets"],
        help="Command to execute"
    )
    parser.add_argument("--bucket", help="Bucket to search")
    parser.add_argument("--pattern", help="Text to look for in object contents")
    parser.add_argument(
        "--result-count",
        type=int,
        default=None,
        help="Required for search: stop after the page on which this many matches are found"
    )
    parser.add_argument("--region", help="Bucket region (defaults to AWS_REGION)")
    parser.add_argument("--start", type=int, default=0, help="Earliest last-modified time (epoch seconds)")
    parser.add_argument("--end", type=int, default=0, help="Latest last-modified time (epoch seconds)")
    parser.add_argument("--workers", type=int, help="Concurrent downloads (defaults to MAX_WORKERS)")

    args = parser.parse_args()

    issues = settings.validate()
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    if args.command == "search":
        sys.exit(cmd_search(args))
    elif args.command == "buckets":
        sys.exit(cmd_buckets(args))


if __name__ == "__main__":
    main()
