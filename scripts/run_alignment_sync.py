#!/usr/bin/env python3
"""
Run a full vote alignment pass for one year.

Drives the batch controller window by window until the year is done,
printing progress after each batch.
"""

import argparse
import asyncio
import sys
from datetime import datetime

import httpx

from vote_alignment.config import SyncConfig
from vote_alignment.lib.database import get_supabase
from vote_alignment.lib.logging_config import configure_logging_from_env
from vote_alignment.lib.sync_result import BatchResult
from vote_alignment.services.alignment_sync import AlignmentSyncService, run_full_pass


def print_batch(result: BatchResult) -> None:
    end = result.batch_start + result.processed
    print(
        f"  [{result.batch_start:>5}-{end:>5}) of {result.total}: "
        f"{result.events_fetched} fetched, {result.events_skipped} skipped, "
        f"{result.alignments_written} legislators written"
    )


async def main():
    """Run a full alignment pass"""

    parser = argparse.ArgumentParser(description='Run a full vote alignment sync')
    parser.add_argument('--year', type=int, default=datetime.now().year, help='Legislative year')
    parser.add_argument('--batch-size', type=int, help='Vote events per batch')
    parser.add_argument('--delay', type=float, help='Delay after each roster fetch (seconds)')
    args = parser.parse_args()

    configure_logging_from_env()
    config = SyncConfig.from_env()
    if args.delay is not None:
        config.request_delay = args.delay
    batch_size = config.default_batch_size if args.batch_size is None else args.batch_size

    supabase = get_supabase()
    if not supabase:
        print("Supabase credentials missing: set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        return 1

    print("=" * 60)
    print("Vote Alignment Sync")
    print("=" * 60)
    print(f"  Year: {args.year}")
    print(f"  Batch size: {batch_size}")
    print(f"  Delay between requests: {config.request_delay}s")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=config.http_timeout) as http_client:
        service = AlignmentSyncService(supabase, http_client, config)
        results = await run_full_pass(service, args.year, batch_size, on_batch=print_batch)

    print("=" * 60)
    print(f"Batches: {len(results)}")
    print(f"Vote events processed: {sum(r.processed for r in results)}")
    print(f"Vote events skipped: {sum(r.events_skipped for r in results)}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\nSync cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n\nError: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
