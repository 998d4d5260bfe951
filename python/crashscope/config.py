"""
Configuration management for crashscope.

Supports YAML config files with environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class AnalysisLimits:
    """Output caps threaded through one analysis run."""

    max_causes: int = 6
    max_suspects: int = 12
    max_failed_mods: int = 10
    max_key_errors: int = 10
    max_cause_evidence: int = 3


class AnalysisConfig(BaseModel):
    """Configuration for the log analysis pipeline."""

    max_causes: int = Field(default=6, ge=1, description="Maximum likely causes reported")
    max_suspects: int = Field(default=12, ge=1, description="Maximum crash suspects reported")
    max_failed_mods: int = Field(default=10, ge=1, description="Maximum failed mods reported")
    max_key_errors: int = Field(default=10, ge=1, description="Maximum key error lines reported")
    max_cause_evidence: int = Field(
        default=3, ge=1, le=4, description="Evidence lines kept per reported cause"
    )
    extra_rules_file: str | None = Field(
        default=None, description="YAML file with additional cause rules"
    )

    def limits(self) -> AnalysisLimits:
        return AnalysisLimits(
            max_causes=self.max_causes,
            max_suspects=self.max_suspects,
            max_failed_mods=self.max_failed_mods,
            max_key_errors=self.max_key_errors,
            max_cause_evidence=self.max_cause_evidence,
        )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json, plain)")
    file: str | None = Field(default=None, description="Log file path (None for stdout)")


class Config(BaseSettings):
    """Main configuration for crashscope."""

    model_config = SettingsConfigDict(
        env_prefix="CRASHSCOPE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with path.open() as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls, config_path: str | None = None) -> Config:
        """
        Load configuration with precedence:
        1. Config file (highest; passed as init values)
        2. Environment variables, for keys the file leaves unset
        3. Defaults (lowest)
        """
        if config_path is None:
            config_path = os.getenv("CRASHSCOPE_CONFIG")

        if config_path is None:
            for candidate in [
                "crashscope.yaml",
                "crashscope.yml",
                "config/crashscope.yaml",
                ".crashscope.yaml",
            ]:
                if Path(candidate).exists():
                    config_path = candidate
                    break

        if config_path and Path(config_path).exists():
            return cls.from_yaml(config_path)

        return cls()

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
