"""
Line parsing for game and launcher logs.

Turns raw lines (or raw text) into immutable ``LogLine`` records:
- severity (supplied, or inferred from keywords)
- timestamp (supplied, or taken from a leading bracket / ISO prefix)
- logger and thread from common header shapes
- whether the line is part of a Java stack trace
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass
from typing import Any

from crashscope.exceptions import AnalysisInputError
from crashscope.models import AnalyzeInputLine, LogLine, Severity

DEFAULT_SOURCE = "live"

_FATAL_WORD_RE = re.compile(r"\b(?:fatal|error|exception|crash(?:ed)?)\b")
_WARN_WORD_RE = re.compile(r"\bwarn(?:ing)?\b")
_DEBUG_WORD_RE = re.compile(r"\bdebug\b")
_TRACE_WORD_RE = re.compile(r"\btrace\b")

_BRACKET_TS_RE = re.compile(r"^\[([^\]]{4,48})\]")
_ISO_TS_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2})")

_STACK_FRAME_RE = re.compile(r"^\s*at\s+[\w$.]+\([^)]*\)")
_STACK_MORE_RE = re.compile(r"^\s*\.\.\.\s*\d+\s*more")

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def infer_log_severity(message: str | None) -> Severity:
    """Guess a severity from keywords in the message."""
    lower = (message or "").lower()
    if _FATAL_WORD_RE.search(lower):
        return Severity.ERROR
    if _WARN_WORD_RE.search(lower):
        return Severity.WARN
    if _DEBUG_WORD_RE.search(lower):
        return Severity.DEBUG
    if _TRACE_WORD_RE.search(lower):
        return Severity.TRACE
    return Severity.INFO


def extract_log_timestamp(message: str | None) -> str | None:
    """Return a leading ``[...]`` group (4-48 chars) or ISO-like prefix, if any."""
    line = (message or "").strip()
    if not line:
        return None
    if match := _BRACKET_TS_RE.match(line):
        return match.group(1).strip()
    if match := _ISO_TS_RE.match(line):
        return match.group(1)
    return None


def is_stack_trace_line(message: str) -> bool:
    return bool(_STACK_FRAME_RE.match(message) or _STACK_MORE_RE.match(message))


@dataclass(frozen=True)
class LineHeader:
    """Logger and thread names pulled from a line prefix."""

    logger: str | None = None
    thread: str | None = None


class HeaderParser(ABC):
    """Abstract base class for line header parsers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the parser name."""

    @abstractmethod
    def parse(self, line: str) -> LineHeader | None:
        """Parse the header of a trimmed line. Returns None if the shape does not match."""


class BracketHeaderParser(HeaderParser):
    """Parser for ``[logger] [thread/LEVEL]`` prefixes (log4j layout used by the game)."""

    _pattern = re.compile(r"^\[([^\]]+)\]\s*\[([^\]/]+)/([^\]]+)\]")

    @property
    def name(self) -> str:
        return "bracket"

    def parse(self, line: str) -> LineHeader | None:
        match = self._pattern.match(line)
        if not match:
            return None
        return LineHeader(
            logger=match.group(1).strip() or None,
            thread=match.group(2).strip() or None,
        )


class LoggerPrefixParser(HeaderParser):
    """Parser for ``some.logger: message`` prefixes."""

    _pattern = re.compile(r"^([a-z0-9._$-]+):\s", re.IGNORECASE)

    @property
    def name(self) -> str:
        return "logger_prefix"

    def parse(self, line: str) -> LineHeader | None:
        match = self._pattern.match(line)
        if not match:
            return None
        return LineHeader(logger=match.group(1))


class HeaderParserRegistry:
    """Routes a line to the first header parser that recognizes it."""

    def __init__(self) -> None:
        self._parsers: list[HeaderParser] = [
            BracketHeaderParser(),
            LoggerPrefixParser(),
        ]

    def register(self, parser: HeaderParser, priority: int = 0) -> None:
        """Register a parser. Lower priority number = tried earlier."""
        self._parsers.insert(priority, parser)

    def parse(self, message: str) -> LineHeader:
        line = message.strip()
        for parser in self._parsers:
            header = parser.parse(line)
            if header is not None:
                return header
        return LineHeader()

    @property
    def parsers(self) -> list[HeaderParser]:
        return list(self._parsers)


_DEFAULT_HEADERS = HeaderParserRegistry()


def parse_thread_and_logger(message: str) -> LineHeader:
    """Parse the logger/thread header using the default registry."""
    return _DEFAULT_HEADERS.parse(message)


def _coerce_severity(value: Any) -> Severity | None:
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        try:
            return Severity(value.strip().lower())
        except ValueError:
            return None
    return None


def _coerce_line_no(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return math.floor(number)


def _fields_of(item: Any, position: int) -> dict[str, Any]:
    if isinstance(item, AnalyzeInputLine):
        return {
            "message": item.message,
            "severity": item.severity,
            "source": item.source,
            "line_no": item.line_no,
            "timestamp": item.timestamp,
        }
    if isinstance(item, Mapping):
        line_no = item.get("lineNo")
        if line_no is None:
            line_no = item.get("line_no")
        return {
            "message": item.get("message"),
            "severity": item.get("severity"),
            "source": item.get("source"),
            "line_no": line_no,
            "timestamp": item.get("timestamp"),
        }
    if isinstance(item, str):
        return {"message": item}
    raise AnalysisInputError.invalid_line(position, item)


def parse_lines(
    lines: Iterable[AnalyzeInputLine | Mapping[str, Any] | str],
    *,
    default_source: str = DEFAULT_SOURCE,
    headers: HeaderParserRegistry | None = None,
) -> list[LogLine]:
    """
    Normalize input lines into ``LogLine`` records.

    NUL characters and trailing whitespace are stripped and lines left
    empty are dropped; ``index`` counts the surviving lines only.

    Raises:
        AnalysisInputError: If ``lines`` is not an ordered iterable of lines
            (strings, mappings and sets are refused), or
            an item is neither a line model, a mapping nor a string.
    """
    # input order defines index; keyed and unordered containers have none
    if isinstance(lines, (str, bytes, Mapping, Set)) or not isinstance(lines, Iterable):
        raise AnalysisInputError.not_a_sequence(lines)

    headers = headers or _DEFAULT_HEADERS
    parsed: list[LogLine] = []

    for position, item in enumerate(lines):
        fields = _fields_of(item, position)
        raw = fields.get("message")
        message = ("" if raw is None else str(raw)).replace("\x00", "").rstrip()
        if not message:
            continue

        header = headers.parse(message)
        supplied_ts = fields.get("timestamp")
        parsed.append(
            LogLine(
                index=len(parsed),
                message=message,
                lower_message=message.lower(),
                severity=_coerce_severity(fields.get("severity")) or infer_log_severity(message),
                source=str(fields.get("source") or default_source),
                line_no=_coerce_line_no(fields.get("line_no")),
                timestamp=str(supplied_ts) if supplied_ts is not None else extract_log_timestamp(message),
                thread=header.thread,
                logger=header.logger,
                in_stack_trace=is_stack_trace_line(message),
            )
        )

    return parsed


def split_log_text(text: str | bytes | None) -> list[str]:
    """Split raw log text on CRLF/LF, trimming lines and dropping empty ones."""
    if text is None:
        return []
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not isinstance(text, str):
        raise AnalysisInputError.not_text(text)
    return [line.strip() for line in _LINE_SPLIT_RE.split(text) if line.strip()]
