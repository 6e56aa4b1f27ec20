"""Background rank-check scheduling built on APScheduler."""

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)


class RankCheckScheduler:
    """Wrapper around APScheduler for one-off and recurring rank checks.

    A single worker thread executes jobs, so two batch runs never overlap:
    a trigger received while a run is in progress waits its turn.

    Usage::

        sched = RankCheckScheduler()
        sched.start()
        ack = sched.trigger_now(run_rank_check)
        sched.add_cron_job("daily_rank_check", run_rank_check, cron="0 6 * * *")
        sched.stop()
    """

    def __init__(
        self,
        job_store_url: Optional[str] = None,
        timezone: str = "UTC",
    ):
        if job_store_url:
            if job_store_url.startswith("sqlite:///"):
                db_path = job_store_url.replace("sqlite:///", "")
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            jobstores = {"default": SQLAlchemyJobStore(url=job_store_url)}
        else:
            jobstores = {"default": MemoryJobStore()}
        # One-off runs always live in memory.
        jobstores["adhoc"] = MemoryJobStore()

        executors = {
            "default": ThreadPoolExecutor(max_workers=1),
        }
        job_defaults = {
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 3600,
        }

        self._scheduler = BackgroundScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=timezone,
        )
        self._scheduler.add_listener(
            self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )
        self._timezone = timezone
        self._running = False
        logger.info(
            "RankCheckScheduler initialized (store=%s, tz=%s)",
            job_store_url or "memory", timezone,
        )

    @property
    def is_running(self) -> bool:
        """Whether the scheduler is currently active."""
        return self._running

    def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            logger.warning("Scheduler is already running.")
            return
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started.")

    def stop(self, wait: bool = True) -> None:
        """Shut down the scheduler, letting an in-flight run finish if ``wait``."""
        if not self._running:
            return
        self._scheduler.shutdown(wait=wait)
        self._running = False
        logger.info("Scheduler stopped.")

    @staticmethod
    def _on_job_event(event: JobExecutionEvent) -> None:
        if event.code == EVENT_JOB_MISSED:
            logger.warning("Rank check job %s missed its run time.", event.job_id)
        elif event.exception is not None:
            logger.error(
                "Rank check job %s failed in background: %s",
                event.job_id, event.exception,
            )
        else:
            summary = event.retval
            message = getattr(summary, "message", summary)
            logger.info("Rank check job %s completed in background. %s", event.job_id, message)

    def trigger_now(
        self,
        func: Callable,
        args: Optional[tuple] = None,
        kwargs: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Queue ``func`` to run once, right away, and return without waiting.

        Returns:
            Acknowledgement dict with ``status`` ``"accepted"`` and the job id.
        """
        if not self._running:
            self.start()
        job_id = "rank_check_" + uuid.uuid4().hex[:12]
        self._scheduler.add_job(
            func,
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            jobstore="adhoc",
        )
        logger.info("Rank check job queued: %s", job_id)
        return {
            "status": "accepted",
            "message": "Rank checking job started.",
            "job_id": job_id,
        }

    def add_cron_job(
        self,
        job_id: str,
        func: Callable,
        cron: str,
        args: Optional[tuple] = None,
        kwargs: Optional[dict[str, Any]] = None,
        replace_existing: bool = True,
    ) -> None:
        """Add or replace a cron-triggered job.

        Args:
            job_id: Unique identifier for the job.
            func: Callable to execute.  Must be importable by reference when
                a persistent job store is configured.
            cron: Cron expression string (5 fields: min hour day month weekday).
            args: Positional arguments for func.
            kwargs: Keyword arguments for func.
            replace_existing: Overwrite if job_id already exists.
        """
        parts = cron.strip().split()
        if len(parts) != 5:
            raise ValueError(f"Cron expression must have 5 fields, got {len(parts)}: {cron!r}")

        trigger = CronTrigger(
            minute=parts[0],
            hour=parts[1],
            day=parts[2],
            month=parts[3],
            day_of_week=parts[4],
            timezone=self._timezone,
        )
        self._scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            args=args or (),
            kwargs=kwargs or {},
            replace_existing=replace_existing,
        )
        logger.info("Job added: %s [%s]", job_id, cron)

    def remove_job(self, job_id: str) -> bool:
        """Remove a scheduled job by ID.

        Returns:
            True if the job was found and removed, False otherwise.
        """
        try:
            self._scheduler.remove_job(job_id)
            logger.info("Job removed: %s", job_id)
            return True
        except JobLookupError:
            logger.warning("Job not found: %s", job_id)
            return False

    def get_job(self, job_id: str) -> Optional[dict[str, Any]]:
        """Get details for a specific job, including the arguments it runs with."""
        job = self._scheduler.get_job(job_id)
        if job is None:
            return None
        next_run = getattr(job, "next_run_time", None)
        return {
            "id": job.id,
            "func_ref": job.func_ref,
            "kwargs": dict(job.kwargs),
            "trigger": str(job.trigger),
            "next_run_time": next_run.isoformat() if next_run else None,
        }

    def list_jobs(self) -> list[dict[str, Any]]:
        """List all scheduled jobs with their details."""
        result = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            result.append({
                "id": job.id,
                "name": job.name,
                "trigger": str(job.trigger),
                "next_run_time": next_run.isoformat() if next_run else None,
            })
        return result
