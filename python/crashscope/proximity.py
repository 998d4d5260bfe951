"""
Exception-boundary proximity model.

Lines inside or just after an exception context ("anchors") and lines
close to the first fatal-looking line weigh more than the same text
far away from the crash.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from crashscope.models import LogLine

ANCHOR_OPEN_SPAN = 12
STACK_OPEN_SPAN = 8

ANCHOR_BOOST = 1.45
NEAR_FATAL_BOOST = 1.25
NEAR_FATAL_DISTANCE = 16
MID_FATAL_BOOST = 1.1
MID_FATAL_DISTANCE = 50

_EXCEPTION_IN_THREAD_RE = re.compile(r"exception in thread", re.IGNORECASE)
_CAUSED_BY_START_RE = re.compile(r"^caused by:", re.IGNORECASE)
_CAUSED_BY_RE = re.compile(r"^\s*caused by:", re.IGNORECASE)
_FATAL_WORD_RE = re.compile(r"\bfatal\b")
_MOD_LOADING_FAILED_RE = re.compile(r"\bmod loading has failed\b")
_FIRST_FATAL_RE = re.compile(
    r"\b(caused by|exception|fatal|mod loading has failed|crash report)\b", re.IGNORECASE
)


def _opens_context(line: LogLine) -> bool:
    return bool(
        _EXCEPTION_IN_THREAD_RE.search(line.message)
        or _CAUSED_BY_START_RE.match(line.message)
        or _FATAL_WORD_RE.search(line.lower_message)
        or _MOD_LOADING_FAILED_RE.search(line.lower_message)
    )


def build_exception_anchors(lines: Sequence[LogLine]) -> frozenset[int]:
    """Return the indices of lines that start or sit inside an exception window."""
    anchors: set[int] = set()
    open_until = -1
    for line in lines:
        i = line.index
        if _opens_context(line):
            anchors.add(i)
            open_until = max(open_until, i + ANCHOR_OPEN_SPAN)
        if line.in_stack_trace or _CAUSED_BY_RE.match(line.message):
            anchors.add(i)
            open_until = max(open_until, i + STACK_OPEN_SPAN)
        if i <= open_until:
            anchors.add(i)
    return frozenset(anchors)


def first_fatal_index(lines: Sequence[LogLine]) -> int | None:
    for line in lines:
        if _FIRST_FATAL_RE.search(line.message):
            return line.index
    return None


@dataclass(frozen=True)
class ProximityModel:
    """Anchor set and first fatal index for one parsed log."""

    anchors: frozenset[int]
    first_fatal: int | None

    @classmethod
    def from_lines(cls, lines: Sequence[LogLine]) -> ProximityModel:
        return cls(anchors=build_exception_anchors(lines), first_fatal=first_fatal_index(lines))

    def causal_boost(self, index: int) -> float:
        """Score multiplier for the line at ``index``."""
        boost = ANCHOR_BOOST if index in self.anchors else 1.0
        if self.first_fatal is not None:
            delta = abs(index - self.first_fatal)
            if delta <= NEAR_FATAL_DISTANCE:
                boost *= NEAR_FATAL_BOOST
            elif delta <= MID_FATAL_DISTANCE:
                boost *= MID_FATAL_BOOST
        return boost
