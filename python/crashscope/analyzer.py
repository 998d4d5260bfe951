"""
Log analysis entry points.

Parses the input once, builds the proximity model once, then runs the
cause engine, suspect extractor and failed-mod extractor over the same
line set and merges everything into a ``LogAnalyzeResult``.

All functions here are pure: no I/O, no shared mutable state. Output
ordering depends only on the input and the rule tables.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from crashscope.causes import collect_likely_causes, severity_weight
from crashscope.config import AnalysisLimits, Config, get_config
from crashscope.logging import get_logger
from crashscope.models import (
    AnalyzeInputLine,
    CrashSuspect,
    FailedMod,
    LikelyCause,
    LogAnalyzeResult,
    LogLine,
    ReadLogsResult,
    Severity,
)
from crashscope.normalization import DedupeNormalizer, get_normalizer
from crashscope.parser import DEFAULT_SOURCE, parse_lines, split_log_text
from crashscope.proximity import ProximityModel
from crashscope.rules import DEFAULT_TABLES, RuleTables, tables_from_config
from crashscope.suspects import collect_failed_mods, detect_crash_suspects

logger = get_logger(__name__)

ANALYSIS_VERSION = "2"

_KEY_ERROR_RE = re.compile(
    r"\b(exception|fatal|failed|crash|caused by|could not|missing|invalid)\b", re.IGNORECASE
)

# Reader severities that are not one of the five analyzer levels.
_READER_SEVERITY_ALIASES: dict[str, Severity] = {
    "fatal": Severity.ERROR,
    "severe": Severity.ERROR,
    "critical": Severity.ERROR,
    "err": Severity.ERROR,
    "warning": Severity.WARN,
    "fine": Severity.DEBUG,
    "finer": Severity.DEBUG,
    "finest": Severity.TRACE,
}

LineInput = AnalyzeInputLine | Mapping[str, Any] | str


def summarize_counts(lines: Sequence[LogLine]) -> dict[str, int]:
    counts = Counter(line.severity for line in lines)
    return {
        "error_count": counts[Severity.ERROR],
        "warn_count": counts[Severity.WARN],
        "info_count": counts[Severity.INFO],
        "debug_count": counts[Severity.DEBUG],
        "trace_count": counts[Severity.TRACE],
    }


def collect_key_errors(
    lines: Sequence[LogLine],
    *,
    proximity: ProximityModel | None = None,
    limit: int = 10,
    normalizer: DedupeNormalizer | None = None,
) -> list[str]:
    """Error and failure lines, strongest first, deduplicated by normalized text."""
    proximity = proximity or ProximityModel.from_lines(lines)
    normalizer = normalizer or get_normalizer()

    candidates = [
        line
        for line in lines
        if line.severity == Severity.ERROR or _KEY_ERROR_RE.search(line.message)
    ]
    candidates.sort(
        key=lambda line: (-severity_weight(line.severity) * proximity.causal_boost(line.index), line.index)
    )

    unique: list[str] = []
    seen: set[str] = set()
    for line in candidates:
        text = line.message.strip()
        if not text:
            continue
        key = normalizer.normalize(text)
        if key in seen:
            continue
        seen.add(key)
        unique.append(text)
        if len(unique) >= limit:
            break
    return unique


def build_confidence_notes(
    likely_causes: Sequence[LikelyCause],
    suspects: Sequence[CrashSuspect],
    failed_mods: Sequence[FailedMod],
) -> list[str]:
    notes: list[str] = []
    if likely_causes:
        top = likely_causes[0]
        notes.append(f"Top cause: {top.title} ({math.floor(top.confidence * 100 + 0.5)}%)")
    if suspects:
        top_suspect = suspects[0]
        notes.append(f"Top suspect: {top_suspect.label} ({top_suspect.matches} signals)")
    if failed_mods:
        plural = "" if len(failed_mods) == 1 else "s"
        notes.append(f"Detected {len(failed_mods)} failed mod candidate{plural}.")
    return notes


def analyze_parsed_lines(
    parsed: Sequence[LogLine],
    *,
    tables: RuleTables = DEFAULT_TABLES,
    limits: AnalysisLimits | None = None,
    normalizer: DedupeNormalizer | None = None,
) -> LogAnalyzeResult:
    """Run every analysis stage over an already parsed line set."""
    limits = limits or AnalysisLimits()
    proximity = ProximityModel.from_lines(parsed)
    normalizer = normalizer or get_normalizer()

    likely_causes, evidence_by_cause = collect_likely_causes(
        parsed, proximity=proximity, tables=tables, limits=limits, normalizer=normalizer
    )
    suspects = detect_crash_suspects(parsed, proximity=proximity, tables=tables, limit=limits.max_suspects)
    failed_mods = collect_failed_mods(parsed, proximity=proximity, tables=tables, limit=limits.max_failed_mods)
    key_errors = collect_key_errors(
        parsed, proximity=proximity, limit=limits.max_key_errors, normalizer=normalizer
    )

    result = LogAnalyzeResult(
        analysis_version=ANALYSIS_VERSION,
        total_lines=len(parsed),
        **summarize_counts(parsed),
        suspects=suspects,
        key_errors=key_errors,
        likely_causes=likely_causes,
        failed_mods=failed_mods,
        evidence_by_cause=evidence_by_cause,
        confidence_notes=build_confidence_notes(likely_causes, suspects, failed_mods),
    )

    logger.debug(
        "log_analysis_completed",
        total_lines=result.total_lines,
        error_count=result.error_count,
        causes=len(likely_causes),
        suspects=len(suspects),
        failed_mods=len(failed_mods),
    )
    return result


def analyze_log_lines(
    lines: Iterable[LineInput],
    *,
    tables: RuleTables = DEFAULT_TABLES,
    limits: AnalysisLimits | None = None,
    normalizer: DedupeNormalizer | None = None,
) -> LogAnalyzeResult:
    """
    Analyze a list of log lines.

    Args:
        lines: ``AnalyzeInputLine`` models, mappings with the same keys
            (``message``, ``severity``, ``source``, ``lineNo``, ``timestamp``)
            or bare strings.
        tables: Rule tables to score against.
        limits: Output caps.
        normalizer: Dedupe normalizer for repetition counting.

    Raises:
        AnalysisInputError: If ``lines`` is not a list of lines.
    """
    return analyze_parsed_lines(parse_lines(lines), tables=tables, limits=limits, normalizer=normalizer)


def analyze_log_text(
    text: str | bytes | None,
    *,
    source: str = DEFAULT_SOURCE,
    tables: RuleTables = DEFAULT_TABLES,
    limits: AnalysisLimits | None = None,
    normalizer: DedupeNormalizer | None = None,
) -> LogAnalyzeResult:
    """Analyze raw log text (CRLF or LF separated)."""
    return analyze_parsed_lines(
        parse_lines(split_log_text(text), default_source=source),
        tables=tables,
        limits=limits,
        normalizer=normalizer,
    )


def _reader_severity(value: str | None) -> Severity | None:
    if not value:
        return None
    lowered = value.strip().lower()
    try:
        return Severity(lowered)
    except ValueError:
        return _READER_SEVERITY_ALIASES.get(lowered)


def analyze_log_source(
    result: ReadLogsResult,
    *,
    tables: RuleTables = DEFAULT_TABLES,
    limits: AnalysisLimits | None = None,
    normalizer: DedupeNormalizer | None = None,
) -> LogAnalyzeResult:
    """Analyze the lines returned by the instance log reader."""
    inputs = [
        AnalyzeInputLine(
            message=line.raw,
            severity=_reader_severity(line.severity),
            source=line.source or result.source,
            line_no=line.line_no,
            timestamp=line.timestamp,
        )
        for line in result.lines
    ]
    analysis = analyze_log_lines(inputs, tables=tables, limits=limits, normalizer=normalizer)
    if result.truncated:
        analysis.confidence_notes.append(
            f"Log was truncated: analyzed {len(result.lines)} of {result.total_lines} lines."
        )
    return analysis


class LogAnalyzer:
    """
    Analyzer bound to one set of rule tables and limits.

    Example:
        analyzer = LogAnalyzer()
        report = analyzer.analyze_text(Path("crash-2024-01-15.txt").read_text())
        print(report.likely_causes[0].title)
    """

    def __init__(
        self,
        config: Config | None = None,
        tables: RuleTables | None = None,
        limits: AnalysisLimits | None = None,
        normalizer: DedupeNormalizer | None = None,
    ) -> None:
        config = config or get_config()
        self.tables = tables or tables_from_config(config)
        self.limits = limits or config.analysis.limits()
        self.normalizer = normalizer or get_normalizer()

    def analyze_lines(self, lines: Iterable[LineInput]) -> LogAnalyzeResult:
        return analyze_log_lines(lines, tables=self.tables, limits=self.limits, normalizer=self.normalizer)

    def analyze_text(self, text: str | bytes | None, source: str = DEFAULT_SOURCE) -> LogAnalyzeResult:
        return analyze_log_text(
            text, source=source, tables=self.tables, limits=self.limits, normalizer=self.normalizer
        )

    def analyze_source(self, result: ReadLogsResult) -> LogAnalyzeResult:
        return analyze_log_source(result, tables=self.tables, limits=self.limits, normalizer=self.normalizer)
