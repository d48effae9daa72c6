"""
APScheduler configuration for background housekeeping.

Jobs:
- reap_discount_instruments: deletes inactive and expired coupons and promo
  codes on a fixed interval (DISCOUNT_REAPER_INTERVAL_SECONDS)

Each job body runs inside the Flask application context so it can use the
shared SQLAlchemy session. max_instances=1 keeps scheduler ticks from
overlapping; the reaper's own lock covers a concurrent CLI run.
"""

import logging

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.blocking import BlockingScheduler

from ..extensions import scheduler

logger = logging.getLogger(__name__)

REAPER_JOB_ID = "reap_discount_instruments"

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,  # Allow 60 seconds grace time for misfires
}


def _scheduler_options(app) -> dict:
    return {
        "jobstores": {"default": MemoryJobStore()},
        "executors": {"default": ThreadPoolExecutor(max_workers=2)},
        "job_defaults": job_defaults,
        "timezone": app.config.get("SCHEDULER_TIMEZONE", "UTC"),
    }


def run_discount_reaper(app):
    """Scheduler entry point; one reaper pass inside an app context."""
    from ..services.maintenance_service import reap_discount_instruments

    with app.app_context():
        try:
            counts = reap_discount_instruments()
            if counts is None:
                logger.info("Job '%s' skipped: previous run still active", REAPER_JOB_ID)
            else:
                logger.info("Job '%s' completed: %s", REAPER_JOB_ID, counts)
        except Exception:
            logger.exception("Job '%s' failed", REAPER_JOB_ID)


def _add_jobs(target, app) -> None:
    target.add_job(
        run_discount_reaper,
        'interval',
        seconds=app.config.get("DISCOUNT_REAPER_INTERVAL_SECONDS", 86400),
        args=[app],
        id=REAPER_JOB_ID,
        name='Reap expired and inactive discount instruments',
        replace_existing=True,
    )


def init_scheduler(app):
    """Configure and start the shared background scheduler for this app."""
    if scheduler.running:
        return scheduler

    scheduler.configure(**_scheduler_options(app))
    _add_jobs(scheduler, app)
    scheduler.start()
    logger.info("Background job scheduler started")

    for job in scheduler.get_jobs():
        logger.info("Scheduled job: %s - Next run: %s", job.name, job.next_run_time)
    return scheduler


def run_scheduler_forever(app):
    """Foreground variant for `flask jobs run`; blocks until interrupted."""
    blocking = BlockingScheduler(**_scheduler_options(app))
    _add_jobs(blocking, app)
    logger.info("Running background jobs in the foreground")
    try:
        blocking.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Foreground job scheduler stopped")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
