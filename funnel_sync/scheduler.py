"""
Scheduler for the daily sheet updates

Uses APScheduler to run each job once a day. All cron expressions are UTC,
matching the UTC calendar dates the jobs write.
"""
from datetime import datetime, timezone
from typing import Dict, Optional
import time

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from funnel_sync.config import get_settings
from funnel_sync.jobs import JOB_NAMES, Job, build_jobs, run_daily
from funnel_sync.utils.credentials import bootstrap_credentials
from funnel_sync.utils.logger import log

settings = get_settings()
scheduler = BlockingScheduler(timezone=timezone.utc)

JOB_TITLES = {
    "tripcart_events": "TripCart Events Daily Update",
    "tripcart_users": "TripCart Users Daily Update",
    "ab_test_daily": "AB Test SI/RQ Daily Update",
    "ab_summary": "AB Test SI/RQ Summary Update",
}

_jobs: Optional[Dict[str, Job]] = None


def _get_jobs() -> Dict[str, Job]:
    global _jobs
    if _jobs is None:
        bootstrap_credentials(settings)
        _jobs = build_jobs(settings)
    return _jobs


def run_scheduled_job(job_name: str) -> dict:
    """Run one job's daily update; failures are logged, never raised"""
    start = time.time()
    try:
        log.info(f"Starting {job_name}...")
        result = run_daily(_get_jobs()[job_name])
        log.info(f"{job_name} completed in {time.time() - start:.1f}s")
        return result
    except Exception as e:
        log.error(f"{job_name} failed: {e}")
        return {"job": job_name, "success": False, "error": str(e)}


def _schedules() -> Dict[str, str]:
    return {
        "tripcart_events": settings.tripcart_events_schedule,
        "tripcart_users": settings.tripcart_users_schedule,
        "ab_test_daily": settings.ab_test_daily_schedule,
        "ab_summary": settings.ab_summary_schedule,
    }


def setup_scheduler():
    """
    Register the daily jobs.

    Default times (UTC), after GA4 has settled the previous day:
    - TripCart Events:  06:15 (recomputes the last rolling_recalc_days dates)
    - TripCart Users:   06:30
    - AB Test daily:    06:45
    - AB Test summary:  07:00
    """
    for job_name, cron in _schedules().items():
        scheduler.add_job(
            run_scheduled_job,
            trigger=CronTrigger.from_crontab(cron, timezone=timezone.utc),
            args=[job_name],
            id=f"{job_name}_daily",
            name=JOB_TITLES[job_name],
            replace_existing=True,
            max_instances=1
        )
    log.info(f"Scheduled {len(JOB_NAMES)} jobs")


def start_scheduler():
    """Start the scheduler (blocks until shutdown)"""
    setup_scheduler()
    log.info("Scheduler started")
    scheduler.start()


def stop_scheduler():
    """Stop the scheduler"""
    scheduler.shutdown(wait=False)
    log.info("Scheduler stopped")


def run_job_now(job_name: str) -> dict:
    """
    Manually trigger a job's daily update

    Args:
        job_name: One of tripcart_events, tripcart_users, ab_test_daily, ab_summary

    Returns:
        Dict with job results
    """
    if job_name not in JOB_NAMES:
        return {
            'success': False,
            'error': f'Unknown job: {job_name}. Valid options: {", ".join(JOB_NAMES)}'
        }

    log.info(f"Manually triggering {job_name}...")
    return run_scheduled_job(job_name)


def get_scheduled_jobs() -> list:
    """
    Get list of all scheduled jobs

    Returns:
        List of job info dicts
    """
    jobs = []
    now = datetime.now(timezone.utc)

    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        if next_run is None:
            next_run = job.trigger.get_next_fire_time(None, now)

        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': next_run.isoformat() if next_run else None,
            'trigger': str(job.trigger)
        })

    return jobs


# CLI for manual runs

if __name__ == "__main__":
    import sys

    if len(sys.argv) < 2:
        print("Usage: python -m funnel_sync.scheduler <command> [job_name]")
        print("\nCommands:")
        print("  start          Start the scheduler")
        print("  run <job>      Run a job's daily update now")
        print("  list           List all scheduled jobs")
        print("\nJobs:")
        print(f"  {', '.join(JOB_NAMES)}")
        sys.exit(1)

    command = sys.argv[1]

    if command == "start":
        print("Starting scheduler...")
        try:
            start_scheduler()
        except (KeyboardInterrupt, SystemExit):
            print("\nShutting down scheduler...")

    elif command == "run":
        if len(sys.argv) < 3:
            print("Error: Please specify a job name")
            print("Usage: python -m funnel_sync.scheduler run <job_name>")
            sys.exit(1)

        result = run_job_now(sys.argv[2])

        if result.get('success'):
            print(f"✓ {sys.argv[2]} completed")
        else:
            print(f"✗ Error: {result.get('error') or result.get('failed')}")
            sys.exit(1)

    elif command == "list":
        setup_scheduler()
        print("\nScheduled Jobs:")
        print("-" * 80)

        jobs = get_scheduled_jobs()

        if not jobs:
            print("No jobs scheduled")
        else:
            for job in jobs:
                print(f"\nID:       {job['id']}")
                print(f"Name:     {job['name']}")
                print(f"Next Run: {job['next_run']}")
                print(f"Trigger:  {job['trigger']}")

    else:
        print(f"Unknown command: {command}")
        sys.exit(1)
