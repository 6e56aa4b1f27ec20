"""Tests for settings loading."""

import textwrap
from pathlib import Path

import pytest
import yaml

from rankwatch.config import API_KEY_ENV_VAR, Settings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


def _write(tmp_path, text):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return str(path)


class TestLoadSettings:

    def test_defaults_when_file_missing(self, tmp_path):
        settings = load_settings(str(tmp_path / "nope.yaml"), str(tmp_path / ".env"))
        assert settings == Settings()
        assert settings.locale == "gb"
        assert settings.pacing_delay == 1.0
        assert not settings.has_credential

    def test_yaml_values(self, tmp_path):
        path = _write(tmp_path, """
            database:
              url: "sqlite:///tmp/test.db"
            provider:
              locale: us
              timeout: 10
            tracker:
              pacing_delay: 2.5
              history_window: 5
              strict_host_match: true
            scheduler:
              cron: "30 7 * * 1"
        """)
        settings = load_settings(path, str(tmp_path / ".env"))
        assert settings.database_url == "sqlite:///tmp/test.db"
        assert settings.locale == "us"
        assert settings.request_timeout == 10.0
        assert settings.pacing_delay == 2.5
        assert settings.history_window == 5
        assert settings.strict_host_match is True
        assert settings.scheduler_cron == "30 7 * * 1"

    def test_pacing_delay_clamped(self, tmp_path):
        path = _write(tmp_path, """
            tracker:
              pacing_delay: 0.2
        """)
        assert load_settings(path, str(tmp_path / ".env")).pacing_delay == 1.0

    def test_environment_wins(self, tmp_path, monkeypatch):
        path = _write(tmp_path, """
            database:
              url: "sqlite:///from-yaml.db"
        """)
        monkeypatch.setenv(API_KEY_ENV_VAR, "real-key")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///from-env.db")
        settings = load_settings(path, str(tmp_path / ".env"))
        assert settings.api_key == "real-key"
        assert settings.database_url == "sqlite:///from-env.db"
        assert settings.has_credential

    def test_dotenv_file_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(f"{API_KEY_ENV_VAR}=from-dotenv\n", encoding="utf-8")
        settings = load_settings(str(tmp_path / "nope.yaml"), str(env_file))
        assert settings.api_key == "from-dotenv"


class TestCredential:

    @pytest.mark.parametrize("key", ["", "   ", "your_key_here", "YOUR_KEY_HERE"])
    def test_placeholders_are_not_credentials(self, key):
        assert not Settings(api_key=key).has_credential

    def test_real_key(self):
        assert Settings(api_key="abc123").has_credential


class TestShippedConfig:

    def test_settings_yaml_parses(self):
        path = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["provider"]["locale"] == "gb"
        assert data["tracker"]["pacing_delay"] >= 1.0
