#!/usr/bin/env python3
"""Run one feed sync."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from feedsync.config.settings import settings
from feedsync.logging_config import configure_logging
from feedsync.pipeline.sync import run_sync


def main():
    parser = argparse.ArgumentParser(description="Sync feed sources into the article store")
    parser.add_argument("--sources", type=Path, help="JSON source catalog (default: sources table)")
    parser.add_argument("--concurrency", type=int, help="Sources processed at once")
    parser.add_argument("--json", action="store_true", help="Print the full run summary as JSON")
    parser.add_argument("--log-level", default=settings.log_level)
    args = parser.parse_args()

    configure_logging(args.log_level, json=args.json)

    config = settings
    if args.concurrency:
        config = settings.model_copy(update={"max_concurrent_sources": args.concurrency})

    response = asyncio.run(run_sync(config, sources_path=args.sources))

    if args.json and response.summary:
        print(json.dumps(response.summary.to_dict(), indent=2))
    else:
        print(response.body)
        if response.summary:
            summary = response.summary
            print(f"  Duplicates skipped: {summary.skipped_duplicate}, invalid: {summary.skipped_invalid}")
            print(f"  Sources: {summary.sources_succeeded}/{summary.sources_total} ok")
            for failure in summary.source_failures:
                print(f"  FAILED {failure.source} ({failure.stage}): {failure.error}")
            for warning in summary.source_warnings:
                print(f"  WARNING {warning.source} ({warning.stage}): {warning.error}")
            if summary.entry_failures:
                print(f"  Entry failures: {len(summary.entry_failures)}")
            if summary.embedding_failures:
                print(f"  Articles without embedding: {len(summary.embedding_failures)}")
            print(f"  Time: {summary.elapsed_seconds:.1f}s")

    sys.exit(0 if response.status == 200 else 1)


if __name__ == "__main__":
    main()
