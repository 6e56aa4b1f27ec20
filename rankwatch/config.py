"""Settings loaded from ``config/settings.yaml`` and the ``.env`` file."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "SCRAPINGDOG_API_KEY"
PLACEHOLDER_API_KEYS = frozenset({"", "your_key_here", "changeme"})

MIN_PACING_DELAY = 1.0


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for one process."""

    api_key: str = ""
    database_url: Optional[str] = None
    database_echo: bool = False
    provider_url: str = "https://api.scrapingdog.com/serp"
    locale: str = "gb"
    request_timeout: float = 30.0
    pacing_delay: float = MIN_PACING_DELAY
    history_window: int = 2
    strict_host_match: bool = False
    scheduler_timezone: str = "UTC"
    scheduler_cron: str = "0 6 * * *"
    job_store_url: Optional[str] = None

    @property
    def has_credential(self) -> bool:
        """Whether a real (non-placeholder) provider key is configured."""
        return self.api_key.strip().lower() not in PLACEHOLDER_API_KEYS


def _load_yaml(config_path: str) -> dict[str, Any]:
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning("Config file not found: %s; using defaults.", config_path)
        return {}
    with open(config_file, "r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    logger.info("Configuration loaded from %s", config_path)
    return config


def load_settings(
    config_path: str = "config/settings.yaml",
    env_path: str = ".env",
) -> Settings:
    """Build :class:`Settings` from YAML, environment, and defaults.

    Environment variables win over YAML: ``SCRAPINGDOG_API_KEY`` supplies
    the provider credential and ``DATABASE_URL`` overrides ``database.url``.
    The pacing delay is never allowed below one second.
    """
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)
        logger.info("Loaded environment from %s", env_path)

    config = _load_yaml(config_path)
    db_cfg = config.get("database", {}) or {}
    provider_cfg = config.get("provider", {}) or {}
    tracker_cfg = config.get("tracker", {}) or {}
    sched_cfg = config.get("scheduler", {}) or {}

    defaults = Settings()
    pacing = float(tracker_cfg.get("pacing_delay", defaults.pacing_delay))
    if pacing < MIN_PACING_DELAY:
        logger.warning(
            "tracker.pacing_delay=%.2f is below the %.1fs minimum; clamping.",
            pacing, MIN_PACING_DELAY,
        )
        pacing = MIN_PACING_DELAY

    return Settings(
        api_key=os.getenv(API_KEY_ENV_VAR, "") or "",
        database_url=os.getenv("DATABASE_URL") or db_cfg.get("url"),
        database_echo=bool(db_cfg.get("echo", defaults.database_echo)),
        provider_url=provider_cfg.get("url", defaults.provider_url),
        locale=provider_cfg.get("locale", defaults.locale),
        request_timeout=float(provider_cfg.get("timeout", defaults.request_timeout)),
        pacing_delay=pacing,
        history_window=int(tracker_cfg.get("history_window", defaults.history_window)),
        strict_host_match=bool(tracker_cfg.get("strict_host_match", defaults.strict_host_match)),
        scheduler_timezone=sched_cfg.get("timezone", defaults.scheduler_timezone),
        scheduler_cron=sched_cfg.get("cron", defaults.scheduler_cron),
        job_store_url=sched_cfg.get("job_store"),
    )
