"""Tests for the configuration module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from crashscope.config import (
    AnalysisConfig,
    AnalysisLimits,
    Config,
    LoggingConfig,
    get_config,
    set_config,
)


class TestAnalysisConfig:
    """Test cases for AnalysisConfig."""

    def test_defaults_match_limits(self) -> None:
        """Test that config defaults equal the built-in caps."""
        assert AnalysisConfig().limits() == AnalysisLimits()

    def test_limits(self) -> None:
        """Test conversion to AnalysisLimits."""
        limits = AnalysisConfig(max_causes=3, max_suspects=5, max_cause_evidence=2).limits()

        assert limits.max_causes == 3
        assert limits.max_suspects == 5
        assert limits.max_cause_evidence == 2
        assert limits.max_failed_mods == 10

    @pytest.mark.parametrize(
        "field,value",
        [("max_causes", 0), ("max_suspects", -1), ("max_cause_evidence", 5)],
    )
    def test_validation(self, field: str, value: int) -> None:
        """Test bounds validation."""
        with pytest.raises(ValidationError):
            AnalysisConfig(**{field: value})


class TestConfig:
    """Test cases for the main Config class."""

    def test_defaults(self) -> None:
        """Test default sections."""
        config = Config()

        assert config.analysis.max_causes == 6
        assert config.analysis.extra_rules_file is None
        assert config.logging == LoggingConfig()

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test nested environment variable overrides."""
        monkeypatch.setenv("CRASHSCOPE_ANALYSIS__MAX_CAUSES", "3")
        monkeypatch.setenv("CRASHSCOPE_LOGGING__LEVEL", "DEBUG")

        config = Config()

        assert config.analysis.max_causes == 3
        assert config.logging.level == "DEBUG"

    def test_from_yaml(self, tmp_path: Path) -> None:
        """Test loading from YAML."""
        path = tmp_path / "crashscope.yaml"
        path.write_text("analysis:\n  max_suspects: 4\nlogging:\n  format: plain\n")

        config = Config.from_yaml(path)

        assert config.analysis.max_suspects == 4
        assert config.logging.format == "plain"

    def test_from_yaml_missing(self, tmp_path: Path) -> None:
        """Test that a missing file yields defaults."""
        assert Config.from_yaml(tmp_path / "nope.yaml") == Config()

    def test_to_yaml_round_trip(self, tmp_path: Path) -> None:
        """Test saving and reloading."""
        config = Config(analysis=AnalysisConfig(max_key_errors=7))
        path = tmp_path / "nested" / "crashscope.yaml"

        config.to_yaml(path)

        assert Config.from_yaml(path).analysis.max_key_errors == 7

    def test_load_from_env_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test CRASHSCOPE_CONFIG pointing at a file."""
        path = tmp_path / "custom.yaml"
        path.write_text("analysis:\n  max_causes: 2\n")
        monkeypatch.setenv("CRASHSCOPE_CONFIG", str(path))

        assert Config.load().analysis.max_causes == 2

    def test_file_values_win_over_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that file values beat env vars and env fills the keys the file omits."""
        path = tmp_path / "crashscope.yaml"
        path.write_text("analysis:\n  max_causes: 2\n")
        monkeypatch.setenv("CRASHSCOPE_ANALYSIS__MAX_CAUSES", "5")
        monkeypatch.setenv("CRASHSCOPE_ANALYSIS__MAX_SUSPECTS", "4")

        config = Config.load(str(path))

        assert config.analysis.max_causes == 2
        assert config.analysis.max_suspects == 4

    def test_load_search_paths(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test discovery of crashscope.yaml in the working directory."""
        (tmp_path / "crashscope.yaml").write_text("analysis:\n  max_failed_mods: 5\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("CRASHSCOPE_CONFIG", raising=False)

        assert Config.load().analysis.max_failed_mods == 5

    def test_load_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults when nothing is found."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("CRASHSCOPE_CONFIG", raising=False)

        assert Config.load() == Config()


class TestGlobalConfig:
    """Test cases for the global config accessors."""

    def test_set_and_get(self) -> None:
        """Test replacing the global config."""
        config = Config(analysis=AnalysisConfig(max_causes=1))
        set_config(config)
        assert get_config() is config
