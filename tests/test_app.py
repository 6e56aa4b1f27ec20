"""Tests for the RankWatchApp orchestrator."""

import pytest

from rankwatch.app import CRON_JOB_ID, RankWatchApp
from rankwatch.config import Settings
from rankwatch.errors import ConfigError


@pytest.fixture()
def rank_app():
    app = RankWatchApp(settings=Settings(api_key="", database_url="sqlite:///:memory:"))
    app.initialize()
    yield app
    app.shutdown(wait=True)


class TestRankWatchApp:

    def test_requires_initialize(self):
        app = RankWatchApp(settings=Settings())
        with pytest.raises(RuntimeError):
            app.get_rankings()

    def test_initialize_is_idempotent(self, rank_app):
        store = rank_app.store
        rank_app.initialize()
        assert rank_app.store is store

    def test_run_without_credential_fails_fast(self, rank_app):
        rank_app.store.save_tracking_config("example.com")
        rank_app.store.add_keyword("running shoes")
        with pytest.raises(ConfigError, match="credential"):
            rank_app.run_rank_check()

    def test_trigger_returns_acknowledgement(self, rank_app):
        ack = rank_app.trigger_rank_check()
        assert ack["status"] == "accepted"
        assert ack["message"] == "Rank checking job started."

    def test_rankings_through_app(self, rank_app):
        rank_app.store.save_tracking_config("example.com", ["rival.com"])
        rank_app.store.add_keyword("running shoes")
        [entry] = rank_app.get_rankings()
        assert entry["keyword"] == "running shoes"
        assert [row["url"] for row in entry["urls"]] == ["example.com", "rival.com"]

    def test_schedule_recurring_registers_cron_job(self, rank_app):
        rank_app.schedule_recurring("15 5 * * *")
        assert [job["id"] for job in rank_app.scheduler.list_jobs()] == [CRON_JOB_ID]

    def test_status_reports_missing_key(self, rank_app):
        status = rank_app.get_status()
        assert status["database"]["status"] == "ok"
        assert status["provider"]["status"] == "warning"
        assert "stopped" in status["scheduler"]["details"]


class TestSettingsFlowThrough:

    def test_history_window_is_default_limit(self):
        from datetime import datetime, timedelta, timezone
        from rankwatch.rank_tracker.records import ObservationRecord

        app = RankWatchApp(settings=Settings(database_url="sqlite:///:memory:", history_window=3))
        app.initialize()
        app.store.save_tracking_config("example.com")
        kw = app.store.add_keyword("running shoes")
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        app.store.insert_observations([
            ObservationRecord(kw.id, "example.com", pos, start + timedelta(days=day))
            for day, pos in enumerate([9, 7, 4, 2])
        ])

        [entry] = app.get_rankings()

        assert entry["urls"][0]["history"] == [2, 4, 7]

    def test_persistent_cron_job_keeps_config_path(self, tmp_path):
        config_path = str(tmp_path / "other.yaml")
        env_path = str(tmp_path / ".env")
        app = RankWatchApp(
            config_path=config_path,
            env_path=env_path,
            settings=Settings(
                database_url="sqlite:///:memory:",
                job_store_url=f"sqlite:///{tmp_path / 'jobs.db'}",
            ),
        )
        app.initialize()

        app.schedule_recurring("0 6 * * *")

        job = app.scheduler.get_job(CRON_JOB_ID)
        assert job["func_ref"] == "rankwatch.app:run_rank_check_job"
        assert job["kwargs"] == {"config_path": config_path, "env_path": env_path}

    def test_in_memory_cron_job_has_no_kwargs(self, rank_app):
        rank_app.schedule_recurring()
        assert rank_app.scheduler.get_job(CRON_JOB_ID)["kwargs"] == {}

    def test_job_entry_point_uses_given_paths(self, monkeypatch):
        from rankwatch import app as app_module

        seen = {}

        def fake_initialize(self):
            seen["paths"] = (self._config_path, self._env_path)

        monkeypatch.setattr(app_module.RankWatchApp, "initialize", fake_initialize)
        monkeypatch.setattr(app_module.RankWatchApp, "run_rank_check", lambda self: "done")

        assert app_module.run_rank_check_job(config_path="other.yaml", env_path="other.env") == "done"
        assert seen["paths"] == ("other.yaml", "other.env")
