#!/usr/bin/env python3
"""
GA4 Reports command line.

Usage:
    python -m ga4report.cli <command> [options]

Examples:
    # Query GA4 for every configured URL and consolidate the result
    python -m ga4report.cli report

    # Rebuild the consolidated store from every CSV in the data dir
    python -m ga4report.cli consolidate

    # Merge a single report file
    python -m ga4report.cli consolidate-file data/report_2025-06-01_06-00.csv

    # Manage the URL list
    python -m ga4report.cli urls add /radar/foo
    python -m ga4report.cli urls remove 2

    # Print a summary of the consolidated store
    python -m ga4report.cli view --urls

    # Start the API and scheduler
    python -m ga4report.cli serve --port 3000
"""
import argparse
import json
import sys
from typing import List, Optional

from ga4report.analyzer import url_stats
from ga4report.config import ConfigurationError, settings
from ga4report.core.logging import get_logger
from ga4report.repositories.consolidated_store import (
    StoreNotFoundError,
    get_store_repository,
)
from ga4report.repositories.url_config import UrlConfigError, get_url_repository
from ga4report.scheduler.jobs import run_logged_report

logger = get_logger("cli")

RULE = "═" * 50


# ── Commands ──


def cmd_report(args) -> int:
    outcome = run_logged_report()
    print(json.dumps(outcome, indent=2, ensure_ascii=False, default=str))
    return 0 if outcome["success"] else 1


def cmd_consolidate(args) -> int:
    store = get_store_repository().consolidate_all()
    print(f"✅ {store.metadata.total_executions} executions, "
          f"{len(store.metadata.distinct_urls)} distinct URLs")
    return 0


def cmd_consolidate_file(args) -> int:
    store = get_store_repository().consolidate_incremental(args.csv)
    print(f"✅ Store now holds {store.metadata.total_executions} executions")
    return 0


def cmd_urls(args) -> int:
    repo = get_url_repository()
    if args.action == "list":
        config = repo.list_urls()
        print(f"📋 {len(config.urls)} configured URLs (updated {config.last_updated})")
        for i, url in enumerate(config.urls, start=1):
            print(f"  {i}. {url}")
        return 0

    if args.action == "add":
        result = repo.add_url(args.value)
    elif args.action == "remove":
        result = repo.remove_url(args.value)
    else:
        result = repo.clear_urls()
    print(f"✅ {result['message']}" + (f": {result['url']}" if "url" in result else ""))
    return 0


def cmd_view(args) -> int:
    store = get_store_repository().load()
    stats = url_stats.global_stats(store)

    print("\n📊 GENERAL STATS")
    print(RULE)
    print(f"📁 Executions: {stats.total_executions}")
    print(f"🔗 Distinct URLs: {stats.distinct_url_count}")
    print(f"🕒 Last updated: {stats.last_updated}")
    if stats.period:
        print(f"📅 Period: {stats.period.from_} to {stats.period.to}")

    print("\n📋 EXECUTIONS")
    print(RULE)
    for i, item in enumerate(url_stats.list_executions(store), start=1):
        status = "✅" if item.successful_urls == item.total_urls else "⚠️"
        print(f"{status} {i}. {item.date} {item.time}  "
              f"{item.urls_with_data}/{item.total_urls} URLs with data")

    if args.urls:
        print("\n🔗 URLS")
        print(RULE)
        for i, agg in enumerate(url_stats.compute_url_stats(store), start=1):
            status = "✅" if agg.success_count == agg.appearances else "⚠️"
            print(f"\n{status} {i}. {agg.url}")
            print(f"     📊 {agg.total_views} views | {agg.total_sessions} sessions | {agg.total_users} users")
            print(f"     📈 {agg.avg_engagement_rate}% engagement | {agg.avg_bounce_rate}% bounce")
            print(f"     🔄 {agg.success_count}/{agg.appearances} successful executions")

    if args.execution:
        execution = store.data.get(args.execution)
        if execution is None:
            print(f"❌ Execution not found: {args.execution}")
            print(f"💡 Available: {', '.join(store.data)}")
            return 1
        print(json.dumps(execution.model_dump(by_alias=True), indent=2, ensure_ascii=False))
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run(
        "ga4report.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_level=settings.log_level.lower(),
    )
    return 0


# ── Parser ──


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ga4report",
        description="Scheduled GA4 page reports and consolidation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("report", help="Fetch GA4 data now and consolidate it")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("consolidate", help="Rebuild the store from all report CSVs")
    p.set_defaults(func=cmd_consolidate)

    p = sub.add_parser("consolidate-file", help="Merge one report CSV into the store")
    p.add_argument("csv", help="Path to a report_YYYY-MM-DD_HH-MM.csv file")
    p.set_defaults(func=cmd_consolidate_file)

    p = sub.add_parser("urls", help="Manage the configured URL list")
    p.add_argument("action", choices=["list", "add", "remove", "clear"])
    p.add_argument("value", nargs="?", help="URL to add, or URL/1-based index to remove")
    p.set_defaults(func=cmd_urls)

    p = sub.add_parser("view", help="Print a summary of the consolidated store")
    p.add_argument("--urls", action="store_true", help="Include per-URL aggregates")
    p.add_argument("--execution", help="Dump one execution by id")
    p.set_defaults(func=cmd_view)

    p = sub.add_parser("serve", help="Start the HTTP API and scheduler")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "urls" and args.action in ("add", "remove") and not args.value:
        parser.error(f"urls {args.action} requires a value")

    try:
        return args.func(args)
    except StoreNotFoundError as e:
        print(f"❌ {e}. Run 'consolidate' first.", file=sys.stderr)
    except (UrlConfigError, ConfigurationError, FileNotFoundError) as e:
        print(f"❌ {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
