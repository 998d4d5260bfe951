"""Result models for config file formatting, linting and fixing."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    """Severity of a config issue or formatter diagnostic."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ConfigPreset(str, Enum):
    """High-level quality/performance profiles."""

    PERFORMANCE = "performance"
    BALANCED = "balanced"
    QUALITY = "quality"


class ConfigIssue(BaseModel):
    """A problem found in a config file."""

    path: str = Field(..., description="Dotted key path, 'root' for whole-file problems")
    message: str = Field(..., description="Human-readable description")
    severity: IssueSeverity = Field(..., description="error, warning or info")
    line: int | None = Field(default=None, description="1-based line for line-oriented formats")


class ConfigDoc(BaseModel):
    """Inline documentation for a config key."""

    title: str
    type: str
    description: str
    recommendations: list[str] = Field(default_factory=list)


class SafeFixResult(BaseModel):
    """Outcome of a safe-fix or preset operation."""

    changed: bool = False
    output: str = ""
    notes: list[str] = Field(default_factory=list)
    issues: list[ConfigIssue] = Field(default_factory=list)
    blocking_error: str | None = Field(default=None, description="Why nothing could be applied")


class ConfigFormatDiagnostic(BaseModel):
    level: IssueSeverity
    message: str


class ConfigFormatResult(BaseModel):
    """Outcome of formatting a config file."""

    changed: bool = False
    output: str = ""
    diagnostics: list[ConfigFormatDiagnostic] = Field(default_factory=list)
    blocking_error: str | None = None


class ConfigFormatSupport(BaseModel):
    """Whether the formatter can handle a file, and what it would do."""

    supported: bool
    reason: str | None = None
    can_format: bool = False
    diagnostics: list[ConfigFormatDiagnostic] = Field(default_factory=list)
