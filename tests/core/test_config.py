"""Tests for settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from audience_studio.core.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STUDIO_DUCKDB_PATH", "STUDIO_RETAIN_GENERATIONS", "STUDIO_LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.duckdb_path == ":memory:"
        assert settings.staging_table == "studio_current"
        assert settings.projected_view == "filters_attributes"
        assert settings.retain_generations == 2
        assert settings.catalog_version == "v1"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("STUDIO_RETAIN_GENERATIONS", "5")
        monkeypatch.setenv("STUDIO_LOG_FORMAT", "json")
        settings = Settings(_env_file=None)
        assert settings.retain_generations == 5
        assert settings.log_format == "json"

    def test_retain_generations_at_least_one(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, retain_generations=0)

    def test_log_format_restricted(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_format="xml")
