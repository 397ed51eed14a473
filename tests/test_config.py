"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from config import SPEC_DIR_CANDIDATES, Settings


class TestSettings:
    """Test defaults and GAPFORGE_ environment overrides."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GAPFORGE_CONFIDENCE_THRESHOLD", raising=False)
        settings = Settings(_env_file=None)
        assert settings.confidence_threshold == 50
        assert settings.team_sizes == [1, 2, 3]
        assert settings.hours_per_week == 35.0
        assert settings.suggestion_provider == "heuristic"
        assert settings.export_formats == ["markdown", "json", "csv", "github-issues"]

    def test_priority_weights(self):
        weights = Settings(_env_file=None).priority_weights()
        assert weights == {"impact": 0.4, "roi": 0.3, "strategic": 0.2, "risk": 0.1}

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("GAPFORGE_CONFIDENCE_THRESHOLD", "70")
        monkeypatch.setenv("GAPFORGE_TEAM_SIZES", "[1, 4]")
        monkeypatch.setenv("GAPFORGE_INCLUDE_STUBS", "false")
        settings = Settings(_env_file=None)
        assert settings.confidence_threshold == 70
        assert settings.team_sizes == [1, 4]
        assert settings.include_stubs is False

    def test_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("GAPFORGE_CONFIDENCE_THRESHOLD", "150")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_output_path(self, tmp_path):
        configured = Settings(_env_file=None, output_dir=str(tmp_path))
        assert configured.get_output_path() == tmp_path.resolve()
        assert configured.get_output_path(str(tmp_path / "other")) == (tmp_path / "other").resolve()

    def test_relative_output_path_is_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert Settings(_env_file=None, output_dir="out").get_output_path() == tmp_path.resolve() / "out"

    def test_spec_dir_candidates(self):
        assert SPEC_DIR_CANDIDATES[0] == "specs"
