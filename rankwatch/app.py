"""Main application orchestrator for rankwatch."""

import asyncio
import logging
from typing import Any, Optional

from rankwatch.config import Settings, load_settings
from rankwatch.rank_tracker.records import BatchResult

logger = logging.getLogger(__name__)

CRON_JOB_ID = "scheduled_rank_check"


class RankWatchApp:
    """Central application object wiring settings, store, checker, and scheduler.

    Usage::

        app = RankWatchApp()
        app.initialize()
        ack = app.trigger_rank_check()      # returns immediately
        rows = app.get_rankings()
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
        settings: Optional[Settings] = None,
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.settings = settings
        self._initialized = False
        self._store = None
        self._scheduler = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load settings, initialise the database, and prepare the scheduler."""
        if self._initialized:
            return

        if self.settings is None:
            self.settings = load_settings(self._config_path, self._env_path)

        from rankwatch.database import init_db
        init_db(database_url=self.settings.database_url, echo=self.settings.database_echo)

        from rankwatch.rank_tracker.store import RankStore
        self._store = RankStore()

        from rankwatch.scheduler import RankCheckScheduler
        self._scheduler = RankCheckScheduler(
            job_store_url=self.settings.job_store_url,
            timezone=self.settings.scheduler_timezone,
        )

        self._initialized = True
        logger.info("RankWatchApp initialised.")

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler is not None:
            self._scheduler.stop(wait=wait)

    @property
    def store(self):
        self._ensure_initialized()
        return self._store

    @property
    def scheduler(self):
        self._ensure_initialized()
        return self._scheduler

    # ------------------------------------------------------------------
    # Rank checks
    # ------------------------------------------------------------------

    def _build_checker(self):
        from rankwatch.rank_tracker.checker import BatchRankChecker
        return BatchRankChecker(self.settings, store=self._store)

    def run_rank_check(self) -> BatchResult:
        """Run a full batch check in the calling thread and return its summary."""
        self._ensure_initialized()
        return asyncio.run(self._build_checker().run_batch())

    def trigger_rank_check(self) -> dict[str, Any]:
        """Hand a batch run to the background scheduler and return at once."""
        self._ensure_initialized()
        return self._scheduler.trigger_now(self.run_rank_check)

    def schedule_recurring(self, cron: Optional[str] = None) -> None:
        """Register the recurring rank check (default: ``scheduler.cron``)."""
        self._ensure_initialized()
        func: Any = self.run_rank_check
        kwargs: dict[str, Any] = {}
        if self.settings.job_store_url:
            # Persisted jobs are rebuilt in a fresh process from these paths.
            func = "rankwatch.app:run_rank_check_job"
            kwargs = {"config_path": self._config_path, "env_path": self._env_path}
        self._scheduler.add_cron_job(
            job_id=CRON_JOB_ID,
            func=func,
            cron=cron or self.settings.scheduler_cron,
            kwargs=kwargs,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_rankings(
        self,
        keyword_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self._ensure_initialized()
        from rankwatch.rank_tracker.report import build_rankings
        return build_rankings(
            self._store,
            keyword_id=keyword_id,
            limit=limit or self.settings.history_window,
        )

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Return health status of the database, provider, and scheduler."""
        self._ensure_initialized()
        status: dict[str, dict[str, Any]] = {}

        try:
            keywords = self._store.list_keywords()
            config = self._store.get_tracking_config()
            status["database"] = {
                "status": "ok",
                "details": f"{len(keywords)} keywords, target={config.target_url or 'unset'}",
            }
        except Exception as exc:
            status["database"] = {"status": "error", "details": str(exc)}

        status["provider"] = {
            "status": "ok" if self.settings.has_credential else "warning",
            "details": (
                f"locale={self.settings.locale}, key configured"
                if self.settings.has_credential
                else "SCRAPINGDOG_API_KEY not set"
            ),
        }

        jobs = self._scheduler.list_jobs()
        status["scheduler"] = {
            "status": "ok",
            "details": f"{'running' if self._scheduler.is_running else 'stopped'}, {len(jobs)} jobs",
        }
        return status

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")


def run_rank_check_job(
    config_path: str = "config/settings.yaml",
    env_path: str = ".env",
) -> BatchResult:
    """Entry point for cron jobs kept in a persistent job store."""
    app = RankWatchApp(config_path=config_path, env_path=env_path)
    app.initialize()
    return app.run_rank_check()
