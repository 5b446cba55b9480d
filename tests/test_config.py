"""
Tests for settings loading.
"""

import os
import pytest
from pathlib import Path

from jinder.config import Settings
from jinder.env import load_env


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env(environ={})
        assert settings.database_url == "sqlite:///data/jinder.db"
        assert settings.multi_tenant is False
        assert settings.owner_header == "X-User-Id"
        assert settings.default_page_size == 10
        assert settings.max_page_size == 100
        assert settings.port == 3001
        assert settings.log_dir == Path("logs")

    def test_reads_prefixed_variables(self):
        settings = Settings.from_env(
            environ={
                "JINDER_DATABASE_URL": "sqlite://",
                "JINDER_MULTI_TENANT": "yes",
                "JINDER_EXPOSE_ERRORS": "TRUE",
                "JINDER_REJECT_DUPLICATES": "0",
                "JINDER_MAX_PAGE_SIZE": "50",
                "JINDER_PORT": " 8080 ",
                "JINDER_LOG_DIR": "/var/log/jinder",
                "DATABASE_URL": "postgresql://ignored",
            }
        )
        assert settings.database_url == "sqlite://"
        assert settings.multi_tenant is True
        assert settings.expose_errors is True
        assert settings.reject_duplicates is False
        assert settings.max_page_size == 50
        assert settings.port == 8080
        assert settings.log_dir == Path("/var/log/jinder")

    def test_bad_bool(self):
        with pytest.raises(ValueError, match="JINDER_MULTI_TENANT"):
            Settings.from_env(environ={"JINDER_MULTI_TENANT": "maybe"})

    def test_bad_int(self):
        with pytest.raises(ValueError, match="JINDER_PORT"):
            Settings.from_env(environ={"JINDER_PORT": "http"})

    def test_page_size_bounds(self):
        with pytest.raises(ValueError):
            Settings(max_page_size=0)
        with pytest.raises(ValueError):
            Settings(default_page_size=500, max_page_size=100)


class TestLoadEnv:
    def test_missing_file(self, tmp_path):
        assert load_env(tmp_path / ".env") is False

    def test_file_loaded_without_overriding(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("JINDER_TEST_FROM_FILE=file\nJINDER_TEST_PRESET=file\n")
        monkeypatch.setenv("JINDER_TEST_PRESET", "process")
        monkeypatch.delenv("JINDER_TEST_FROM_FILE", raising=False)

        assert load_env(env_file) is True

        assert os.environ["JINDER_TEST_FROM_FILE"] == "file"
        assert os.environ["JINDER_TEST_PRESET"] == "process"
        monkeypatch.delenv("JINDER_TEST_FROM_FILE")
