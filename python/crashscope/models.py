"""
Core data models for log analysis.

Public result models serialize with camelCase aliases so a report can be
relayed to the launcher UI unchanged (``model_dump(by_alias=True)``).
Parsed lines are plain frozen dataclasses; they never leave the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    """Log severity levels understood by the analyzer."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeInputLine(_CamelModel):
    """One raw line handed to the analyzer, with optional reader metadata."""

    message: str = Field(..., description="Raw line text")
    severity: Severity | None = Field(default=None, description="Severity if already known")
    source: str | None = Field(default=None, description="Log source (live, latest_launch, ...)")
    line_no: float | None = Field(default=None, description="1-based line number in the source file")
    timestamp: str | None = Field(default=None, description="Timestamp if already extracted")


@dataclass(frozen=True)
class LogLine:
    """A normalized log line. ``index`` is the position after empty lines are dropped."""

    index: int
    message: str
    lower_message: str
    severity: Severity
    source: str = "live"
    line_no: int | None = None
    timestamp: str | None = None
    thread: str | None = None
    logger: str | None = None
    in_stack_trace: bool = False


class CrashSuspect(_CamelModel):
    """A mod or file identifier implicated in a failure."""

    id: str = Field(..., description="Canonical token")
    label: str = Field(..., description="Title-cased display label")
    matches: int = Field(..., ge=0, description="Number of token occurrences")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Squashed score")
    signals: list[str] = Field(default_factory=list, description="Up to 3 evidence lines")


class LikelyCause(_CamelModel):
    """A ranked failure signature with suggested fixes."""

    id: str = Field(..., description="Cause rule id")
    title: str = Field(..., description="Human-readable cause title")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Squashed score")
    reason: str = Field(..., description="Most significant matching line")
    fixes: list[str] = Field(default_factory=list, description="Suggested fixes")


class FailedMod(_CamelModel):
    """A mod that most likely failed to load."""

    id: str = Field(..., description="Canonical token")
    label: str = Field(..., description="Title-cased display label")
    reason: str = Field(..., description="Highest-scoring failure line")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Squashed score")


class LogAnalyzeResult(_CamelModel):
    """Aggregate analysis report for one log."""

    analysis_version: str = Field(default="2", description="Report format version")
    total_lines: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    warn_count: int = Field(default=0, ge=0)
    info_count: int = Field(default=0, ge=0)
    debug_count: int = Field(default=0, ge=0)
    trace_count: int = Field(default=0, ge=0)
    suspects: list[CrashSuspect] = Field(default_factory=list)
    key_errors: list[str] = Field(default_factory=list)
    likely_causes: list[LikelyCause] = Field(default_factory=list)
    failed_mods: list[FailedMod] = Field(default_factory=list)
    evidence_by_cause: dict[str, list[str]] = Field(default_factory=dict)
    confidence_notes: list[str] = Field(default_factory=list)


class ReadLogsLine(BaseModel):
    """A line as returned by the instance log reader."""

    raw: str = Field(..., description="Raw line text")
    line_no: int | None = Field(default=None, description="1-based line number")
    timestamp: str | None = Field(default=None, description="Reader-extracted timestamp")
    severity: str | None = Field(default=None, description="Reader severity, free-form")
    source: str = Field(default="live", description="live, latest_launch or latest_crash")


class ReadLogsResult(BaseModel):
    """Result of reading an instance log (launch log, crash report or live tail)."""

    source: str = Field(default="live", description="Requested log source")
    path: str = Field(default="", description="File the lines came from")
    available: bool = Field(default=True, description="Whether the log exists")
    total_lines: int = Field(default=0, ge=0, description="Lines in the whole file")
    returned_lines: int = Field(default=0, ge=0, description="Lines included below")
    truncated: bool = Field(default=False, description="Whether lines were cut off")
    start_line_no: int | None = Field(default=None)
    end_line_no: int | None = Field(default=None)
    next_before_line: int | None = Field(default=None)
    lines: list[ReadLogsLine] = Field(default_factory=list)
    updated_at: int = Field(default=0, description="Unix millis of last modification")
    message: str | None = Field(default=None, description="Reader status message")
