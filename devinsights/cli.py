"""
CLI entry point for DevInsights.

Usage:
    devinsights api [--host 0.0.0.0] [--port 8000] [--reload]
    devinsights cache-get <subject>
    devinsights cache-save <subject> <json-file>
    devinsights cache-clear <subject>
    devinsights cache-stats
"""

import argparse
import asyncio
import json
import logging
import sys

from devinsights.cache.factory import build_cache
from devinsights.config import get_settings


def _print(payload):
    print(json.dumps(payload, indent=2, default=str))


async def _with_cache(action):
    cache = build_cache(get_settings())
    try:
        return await action(cache)
    finally:
        await cache.close()


def cmd_api(args):
    """Start the FastAPI server under uvicorn."""
    import uvicorn

    print(f"Starting DevInsights API on {args.host}:{args.port}")
    uvicorn.run("devinsights.main:app", host=args.host, port=args.port, reload=args.reload)


def cmd_cache_get(args):
    """Look up a subject, hot tier first."""
    entry = asyncio.run(_with_cache(lambda cache: cache.get_analytics(args.subject)))
    if entry is None:
        print(f"{args.subject}: not cached")
        sys.exit(1)
    _print(entry.to_response())


def cmd_cache_save(args):
    """Seed both tiers from a JSON file."""
    with open(args.file) as f:
        data = json.load(f)
    result = asyncio.run(_with_cache(lambda cache: cache.save_analytics(args.subject, data)))
    _print(result.model_dump())
    if not result.durable:
        sys.exit(1)


def cmd_cache_clear(args):
    """Drop a subject from both tiers."""
    result = asyncio.run(_with_cache(lambda cache: cache.clear_analytics(args.subject)))
    _print(result.model_dump())
    if not result.success:
        sys.exit(1)


def cmd_cache_stats(args):
    report = asyncio.run(_with_cache(lambda cache: cache.get_stats()))
    _print(report.model_dump(mode="json"))


def build_parser():
    parser = argparse.ArgumentParser(description="DevInsights analytics backend")
    subparsers = parser.add_subparsers(dest="command")

    # api
    p_api = subparsers.add_parser("api", help="Start REST API server")
    p_api.add_argument("--host", default="0.0.0.0")
    p_api.add_argument("--port", type=int, default=8000)
    p_api.add_argument("--reload", action="store_true", help="Reload on code changes")

    # cache
    p_get = subparsers.add_parser("cache-get", help="Show cached analytics for a subject")
    p_get.add_argument("subject")

    p_save = subparsers.add_parser("cache-save", help="Save analytics for a subject to both tiers")
    p_save.add_argument("subject")
    p_save.add_argument("file", help="JSON file holding the payload")

    p_clear = subparsers.add_parser("cache-clear", help="Clear a subject from both tiers")
    p_clear.add_argument("subject")

    subparsers.add_parser("cache-stats", help="Show hot and cold tier statistics")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=get_settings().log_level.upper())

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "api": cmd_api,
        "cache-get": cmd_cache_get,
        "cache-save": cmd_cache_save,
        "cache-clear": cmd_cache_clear,
        "cache-stats": cmd_cache_stats,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
