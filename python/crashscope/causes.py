"""
Cause rule engine.

Every parsed line is tested against every cause rule. A matching line
adds ``weight x severity x proximity x dedupe x boilerplate`` to the
rule's score; the best-scoring rules become the report's likely causes.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from crashscope.config import AnalysisLimits
from crashscope.models import LikelyCause, LogLine, Severity
from crashscope.normalization import DedupeNormalizer, get_normalizer
from crashscope.proximity import ProximityModel
from crashscope.rules import DEFAULT_TABLES, RuleTables

MAX_EVIDENCE = 4

_SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.ERROR: 2.35,
    Severity.WARN: 1.2,
    Severity.DEBUG: 0.74,
    Severity.TRACE: 0.6,
    Severity.INFO: 0.94,
}

_PROGRESS_WORDS_RE = re.compile(
    r"\b(starting|loading|loaded|found|using|detected|launching|progress|handshake|auth)\b"
)
_FAILURE_WORDS_RE = re.compile(r"\b(error|warn|failed|exception|fatal|caused by|missing)\b")
_SUPPRESSED_RE = re.compile(r"\b(stacktrace omitted|suppressed|continuing)\b")
_REASON_WORDS_RE = re.compile(r"\b(caused by|exception|fatal|failed|missing|could not)\b", re.IGNORECASE)


def severity_weight(severity: Severity) -> float:
    return _SEVERITY_WEIGHTS.get(severity, 0.94)


def boilerplate_penalty(lower_message: str) -> float:
    """Dampen routine status lines that match a rule only incidentally."""
    if _PROGRESS_WORDS_RE.search(lower_message) and not _FAILURE_WORDS_RE.search(lower_message):
        return 0.65
    if _SUPPRESSED_RE.search(lower_message):
        return 0.7
    return 1.0


def clamp01(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def to_confidence(score: float) -> float:
    """Squash an unbounded score into [0, 1], rounded half-up to 2 decimals."""
    normalized = 0.14 + math.log10(1 + max(0.0, score)) * 0.34
    return math.floor(clamp01(normalized) * 100 + 0.5) / 100


@dataclass
class ScoredCause:
    """Per-rule accumulator for one analysis pass."""

    id: str
    title: str
    reason: str
    fixes: list[str]
    score: float = 0.0
    evidence: list[str] = field(default_factory=list)

    def add_evidence(self, text: str) -> None:
        if len(self.evidence) < MAX_EVIDENCE and text not in self.evidence:
            self.evidence.append(text)


def collect_cause_scores(
    lines: Sequence[LogLine],
    *,
    proximity: ProximityModel | None = None,
    tables: RuleTables = DEFAULT_TABLES,
    normalizer: DedupeNormalizer | None = None,
) -> dict[str, ScoredCause]:
    """Score every cause rule over the whole line set in one pass."""
    proximity = proximity or ProximityModel.from_lines(lines)
    normalizer = normalizer or get_normalizer()

    keys = [normalizer.normalize(line.message) for line in lines]
    repeat_counts: dict[str, int] = {}
    for key in keys:
        repeat_counts[key] = repeat_counts.get(key, 0) + 1

    scores: dict[str, ScoredCause] = {}
    for line, key in zip(lines, keys):
        dedupe = 1 / math.sqrt(max(1, repeat_counts[key]))
        base = (
            severity_weight(line.severity)
            * proximity.causal_boost(line.index)
            * dedupe
            * boilerplate_penalty(line.lower_message)
        )
        text = line.message.strip()
        significant = line.severity == Severity.ERROR or bool(_REASON_WORDS_RE.search(line.message))

        for rule in tables.cause_rules:
            if not rule.matches(line.message):
                continue
            entry = scores.get(rule.id)
            if entry is None:
                entry = ScoredCause(id=rule.id, title=rule.title, reason=text, fixes=list(rule.fixes))
                scores[rule.id] = entry
            entry.score += rule.weight * base
            entry.add_evidence(text)
            if significant:
                entry.reason = text

    return scores


def rank_causes(scores: dict[str, ScoredCause], limit: int) -> list[ScoredCause]:
    """Sort by score descending, then title; keep the top ``limit``."""
    return sorted(scores.values(), key=lambda c: (-c.score, c.title))[:limit]


def collect_likely_causes(
    lines: Sequence[LogLine],
    *,
    proximity: ProximityModel | None = None,
    tables: RuleTables = DEFAULT_TABLES,
    limits: AnalysisLimits | None = None,
    normalizer: DedupeNormalizer | None = None,
) -> tuple[list[LikelyCause], dict[str, list[str]]]:
    """Return the ranked likely causes and their evidence lines keyed by cause id."""
    limits = limits or AnalysisLimits()
    ranked = rank_causes(
        collect_cause_scores(lines, proximity=proximity, tables=tables, normalizer=normalizer),
        limits.max_causes,
    )

    likely = [
        LikelyCause(
            id=item.id,
            title=item.title,
            confidence=to_confidence(item.score),
            reason=item.reason,
            fixes=list(item.fixes),
        )
        for item in ranked
    ]
    evidence = {item.id: item.evidence[: limits.max_cause_evidence] for item in ranked}
    return likely, evidence
