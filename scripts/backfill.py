#!/usr/bin/env python3
"""
Sheet Backfill Script

Rewrites the daily rows of one tracking tab for a date range, one date at a
time with a pause between dates (GA4 rate limits). Rows that already exist
for a date are overwritten in place.

Usage:
    python scripts/backfill.py --job tripcart_events [--start 2025-08-01] [--end 2025-09-30]

Examples:
    # Everything since the tab's first tracked date
    python scripts/backfill.py --job tripcart_users

    # One week of the AB test tab, slower pacing
    python scripts/backfill.py --job ab_test_daily --start 2025-09-26 --end 2025-10-02 --delay 1.0

    # Recompute the AB summary grid
    python scripts/backfill.py --job ab_summary
"""
import sys
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from funnel_sync.config import get_settings
from funnel_sync.exceptions import FunnelSyncError
from funnel_sync.jobs import JOB_NAMES, build_jobs
from funnel_sync.services.summary_service import AbSummaryJob
from funnel_sync.utils.credentials import bootstrap_credentials


def backfill(job_name: str, start: str = None, end: str = None, delay: float = None) -> bool:
    """
    Backfill one job.

    Args:
        job_name: Job key (see JOB_NAMES)
        start: First date YYYY-MM-DD (default: the job's first tracked date)
        end: Last date YYYY-MM-DD (default: yesterday UTC)
        delay: Seconds between dates (default: BACKFILL_DELAY_SECONDS)

    Returns:
        True when every date succeeded
    """
    settings = get_settings()
    bootstrap_credentials(settings)
    job = build_jobs(settings)[job_name]

    print(f"\n{'='*60}")
    print(f"Sheet Backfill: {job_name}")
    print(f"{'='*60}")

    if isinstance(job, AbSummaryJob):
        print(f"Period: {job.start_date} to yesterday (single pass)")
        print(f"{'='*60}\n")
        result = job.update()
        for i, row in enumerate(result['grid']):
            print(f"  Row {i + 2}: {row}")
        print(f"\nSummary updated through {result['through']}\n")
        return True

    if delay is not None:
        job.delay_seconds = delay

    print(f"Sheet: {job.schema.name}")
    print(f"Date range: {start or job.default_start} to {end or 'yesterday'}")
    print(f"Delay between dates: {job.delay_seconds}s")
    print(f"{'='*60}\n")

    result = job.backfill(start, end)

    print(f"\n{'='*60}")
    print(f"Backfill Complete!")
    print(f"{'='*60}")
    print(f"Dates processed: {result['dates_processed']}")
    print(f"Rows written: {len(result['rows_written'])}")
    print(f"Duration: {result['duration_seconds']:.1f}s")

    errors = result['failed']
    if errors:
        print(f"\nErrors encountered ({len(errors)}):")
        for error in errors[:10]:
            print(f"  - {error['date']}: {error['error']}")
        if len(errors) > 10:
            print(f"  ... and {len(errors) - 10} more errors")

    print(f"{'='*60}\n")
    return result['success']


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Backfill a funnel tracking tab",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Jobs available:
  tripcart_events - TripCart-Events (event counts)
  tripcart_users  - TripCart-Users (distinct users)
  ab_test_daily   - AB-Test-SI-RQ-Daily (distinct users per AB bucket)
  ab_summary      - AB-Test-SI-RQ-Summary (cumulative grid, ignores --start/--end)
"""
    )
    parser.add_argument(
        "--job", type=str, required=True, choices=list(JOB_NAMES),
        help="Which tab to backfill"
    )
    parser.add_argument(
        "--start", type=str, default=None,
        help="First date YYYY-MM-DD (default: job's first tracked date)"
    )
    parser.add_argument(
        "--end", type=str, default=None,
        help="Last date YYYY-MM-DD (default: yesterday UTC)"
    )
    parser.add_argument(
        "--delay", type=float, default=None,
        help="Seconds between dates (default: BACKFILL_DELAY_SECONDS)"
    )

    args = parser.parse_args(argv)

    try:
        ok = backfill(args.job, start=args.start, end=args.end, delay=args.delay)
    except FunnelSyncError as e:
        print(f"ERROR: {e}")
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
