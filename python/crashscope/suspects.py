"""
Crash suspect and failed mod extraction.

Pulls mod/file identifiers out of log lines with a fixed set of token
patterns, folds them to canonical ids (version suffixes stripped,
aliases merged, generic words dropped) and ranks them by how strongly
and how close to the crash they were mentioned.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from crashscope.causes import severity_weight, to_confidence
from crashscope.models import AnalyzeInputLine, CrashSuspect, FailedMod, LogLine
from crashscope.parser import parse_lines
from crashscope.proximity import ProximityModel
from crashscope.rules import DEFAULT_TABLES, RuleTables

MAX_SIGNALS = 3

FAIL_BOOST = 1.36
QUIET_BOOST = 0.78
FAILED_MOD_BOOST = 2.15

_JAR_SUFFIX_RE = re.compile(r"\.jar$", re.IGNORECASE)
_MC_VERSION_RE = re.compile(r"[-_]?mc\d[\w.-]*", re.IGNORECASE)
_TRAILING_VERSION_RE = re.compile(r"[-_]\d+(?:\.\d+){1,4}.*", re.IGNORECASE)
_TOKEN_CHARS_RE = re.compile(r"[^a-z0-9._-]")

_TOKEN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b([a-z0-9._-]{2,})\.jar\b", re.IGNORECASE),
    re.compile(r"\bmod(?:id)?\s*[:=]\s*([a-z0-9._-]{2,})\b", re.IGNORECASE),
    re.compile(r"\bfrom mod\s+([a-z0-9._-]{2,})\b", re.IGNORECASE),
    re.compile(r"\bloading\s+([a-z0-9._-]{2,})\s+failed\b", re.IGNORECASE),
    re.compile(r"\bmod\s+([a-z0-9._-]{2,})\s+has\s+failed\b", re.IGNORECASE),
    re.compile(r"\b([a-z0-9_.-]{3,})\.mixins?\.json\b", re.IGNORECASE),
    re.compile(r"\bat\s+([a-z0-9_.-]{3,})\.[a-z0-9_$]+\(", re.IGNORECASE),
)

_FAILED_MOD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bmod file\s+([a-z0-9._-]{2,}\.jar)\s+failed\b", re.IGNORECASE),
    re.compile(r"\bloading\s+([a-z0-9._-]{2,})\s+failed\b", re.IGNORECASE),
    re.compile(r"\bfrom mod\s+([a-z0-9._-]{2,})\b", re.IGNORECASE),
    re.compile(r"\bmod(?:id)?\s*[:=]\s*([a-z0-9._-]{2,})\b", re.IGNORECASE),
    re.compile(r"\bmod\s+([a-z0-9._-]{2,})\s+has\s+failed\b", re.IGNORECASE),
)

_SUSPECT_FAILURE_RE = re.compile(r"\b(failed|crash|fatal|exception|caused by|could not|missing|invalid)\b")
_FAILED_MOD_LINE_RE = re.compile(r"\b(fail(?:ed|ure)?|error|exception|crash(?:ed)?|missing|could not|invalid)\b")

_LABEL_SEPARATORS_RE = re.compile(r"[-_.]+")
_WHITESPACE_RE = re.compile(r"\s+")
_WORD_START_RE = re.compile(r"\b\w")


def normalize_mod_token(raw: str | None, tables: RuleTables = DEFAULT_TABLES) -> str:
    """
    Canonicalize a raw token to a mod id.

    Returns an empty string when the token is too short or is a generic
    word (``minecraft``, ``forge``, ...).
    """
    token = (raw or "").lower().strip()
    token = _JAR_SUFFIX_RE.sub("", token)
    token = _MC_VERSION_RE.sub("", token, count=1)
    token = _TRAILING_VERSION_RE.sub("", token, count=1)
    token = _TOKEN_CHARS_RE.sub("", token)
    if len(token) < 2 or token in tables.blocked_tokens:
        return ""
    return tables.canonical_alias(token)


def mod_label(mod_id: str) -> str:
    """``cloth_config`` -> ``Cloth Config``."""
    label = _LABEL_SEPARATORS_RE.sub(" ", mod_id)
    label = _WHITESPACE_RE.sub(" ", label).strip()
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), label)


@dataclass
class _SuspectTally:
    matches: int = 0
    score: float = 0.0
    signals: list[str] = field(default_factory=list)


def detect_crash_suspects(
    lines: Sequence[LogLine],
    *,
    proximity: ProximityModel | None = None,
    tables: RuleTables = DEFAULT_TABLES,
    limit: int = 12,
) -> list[CrashSuspect]:
    """Rank mod identifiers mentioned anywhere in the parsed lines."""
    proximity = proximity or ProximityModel.from_lines(lines)
    tallies: dict[str, _SuspectTally] = {}

    for line in lines:
        fail_boost = FAIL_BOOST if _SUSPECT_FAILURE_RE.search(line.lower_message) else QUIET_BOOST
        weight = severity_weight(line.severity) * fail_boost * proximity.causal_boost(line.index)
        text = line.message.strip()

        for pattern in _TOKEN_PATTERNS:
            for match in pattern.finditer(line.lower_message):
                token = normalize_mod_token(match.group(1), tables)
                if not token:
                    continue
                tally = tallies.setdefault(token, _SuspectTally())
                tally.matches += 1
                tally.score += weight
                if len(tally.signals) < MAX_SIGNALS and text not in tally.signals:
                    tally.signals.append(text)

    suspects = [
        CrashSuspect(
            id=token,
            label=mod_label(token),
            matches=tally.matches,
            confidence=to_confidence(tally.score),
            signals=tally.signals,
        )
        for token, tally in tallies.items()
    ]
    suspects.sort(key=lambda s: (-s.confidence, -s.matches, s.label))
    return suspects[:limit]


def detect_crash_suspects_from_messages(
    lines: Iterable[AnalyzeInputLine | Mapping[str, Any] | str],
    *,
    tables: RuleTables = DEFAULT_TABLES,
    limit: int = 12,
) -> list[CrashSuspect]:
    """Parse raw input lines and rank crash suspects in one call."""
    return detect_crash_suspects(parse_lines(lines), tables=tables, limit=limit)


def collect_failed_mods(
    lines: Sequence[LogLine],
    *,
    proximity: ProximityModel | None = None,
    tables: RuleTables = DEFAULT_TABLES,
    limit: int = 10,
) -> list[FailedMod]:
    """
    Find mods that explicitly failed.

    Only failure lines are considered. Each mod keeps the single
    highest-scoring line as its reason; a later line replaces it only
    when its score is strictly higher.
    """
    proximity = proximity or ProximityModel.from_lines(lines)
    best: dict[str, tuple[str, float]] = {}

    for line in lines:
        if not _FAILED_MOD_LINE_RE.search(line.lower_message):
            continue
        score = severity_weight(line.severity) * FAILED_MOD_BOOST * proximity.causal_boost(line.index)
        for pattern in _FAILED_MOD_PATTERNS:
            match = pattern.search(line.lower_message)
            if not match:
                continue
            mod_id = normalize_mod_token(match.group(1), tables)
            if not mod_id:
                continue
            previous = best.get(mod_id)
            if previous is None or previous[1] < score:
                best[mod_id] = (line.message.strip(), score)

    failed = [
        FailedMod(id=mod_id, label=mod_label(mod_id), reason=reason, confidence=to_confidence(score))
        for mod_id, (reason, score) in best.items()
    ]
    failed.sort(key=lambda m: (-m.confidence, m.label))
    return failed[:limit]
