"""Tests for the line parser module."""

import math

import pytest

from crashscope.exceptions import AnalysisInputError, ErrorCode
from crashscope.models import AnalyzeInputLine, Severity
from crashscope.parser import (
    HeaderParser,
    HeaderParserRegistry,
    LineHeader,
    extract_log_timestamp,
    infer_log_severity,
    is_stack_trace_line,
    parse_lines,
    parse_thread_and_logger,
    split_log_text,
)


class TestInferLogSeverity:
    """Test cases for keyword severity inference."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("FATAL: game stopped", Severity.ERROR),
            ("[Render thread/ERROR]: bad", Severity.ERROR),
            ("Exception in thread main", Severity.ERROR),
            ("The game crashed whilst rendering", Severity.ERROR),
            ("[main/WARN]: Reference map not found", Severity.WARN),
            ("Warning: low memory", Severity.WARN),
            ("DEBUG resolving classpath", Severity.DEBUG),
            ("trace id 42", Severity.TRACE),
            ("Loading 214 mods", Severity.INFO),
        ],
    )
    def test_keywords(self, message: str, expected: Severity) -> None:
        """Test severity keywords in priority order."""
        assert infer_log_severity(message) == expected

    def test_error_takes_priority(self) -> None:
        """Test that an error word wins over warn and debug words."""
        assert infer_log_severity("debug warning error") == Severity.ERROR

    def test_whole_words_only(self) -> None:
        """Test that keywords inside longer words do not count."""
        assert infer_log_severity("NoClassDefFoundError") == Severity.INFO
        assert infer_log_severity("Errors were reported") == Severity.INFO

    def test_empty(self) -> None:
        """Test that empty or None messages are info."""
        assert infer_log_severity("") == Severity.INFO
        assert infer_log_severity(None) == Severity.INFO


class TestExtractLogTimestamp:
    """Test cases for timestamp extraction."""

    def test_bracket_prefix(self) -> None:
        """Test leading bracket group."""
        assert extract_log_timestamp("[12:00:00] [main/INFO]: hello") == "12:00:00"

    def test_bracket_prefix_trimmed(self) -> None:
        """Test that bracket contents are trimmed."""
        assert extract_log_timestamp("[ 15Jan2024 10:30:00.123 ] hello") == "15Jan2024 10:30:00.123"

    def test_iso_prefix(self) -> None:
        """Test ISO-like prefix with space or T separator."""
        assert extract_log_timestamp("2024-01-15 10:30:00 INFO ok") == "2024-01-15 10:30:00"
        assert extract_log_timestamp("2024-01-15T10:30:00Z ok") == "2024-01-15T10:30:00"

    def test_bracket_too_short(self) -> None:
        """Test that short bracket groups are not timestamps."""
        assert extract_log_timestamp("[ok] done") is None

    def test_bracket_too_long(self) -> None:
        """Test that bracket groups longer than 48 chars are ignored."""
        assert extract_log_timestamp("[" + "x" * 49 + "] done") is None

    def test_no_timestamp(self) -> None:
        """Test lines without a timestamp."""
        assert extract_log_timestamp("plain text") is None
        assert extract_log_timestamp("") is None
        assert extract_log_timestamp(None) is None


class TestHeaderParsing:
    """Test cases for logger/thread header parsing."""

    def test_bracket_header(self) -> None:
        """Test the bracketed log4j layout."""
        header = parse_thread_and_logger("[12:00:00] [Render thread/WARN]: something")
        assert header.logger == "12:00:00"
        assert header.thread == "Render thread"

    def test_logger_prefix(self) -> None:
        """Test dotted logger prefixes."""
        header = parse_thread_and_logger("net.minecraft.client.Main: Setting user")
        assert header.logger == "net.minecraft.client.Main"
        assert header.thread is None

    def test_no_header(self) -> None:
        """Test lines without a recognizable header."""
        assert parse_thread_and_logger("plain text") == LineHeader()

    def test_register_custom_parser(self) -> None:
        """Test that registered parsers are tried first."""

        class PipeParser(HeaderParser):
            @property
            def name(self) -> str:
                return "pipe"

            def parse(self, line: str) -> LineHeader | None:
                if "|" not in line:
                    return None
                thread, _, _ = line.partition("|")
                return LineHeader(thread=thread.strip())

        registry = HeaderParserRegistry()
        registry.register(PipeParser())

        assert registry.parsers[0].name == "pipe"
        assert registry.parse("worker-3 | started").thread == "worker-3"
        assert registry.parse("net.foo: bar").logger == "net.foo"


class TestStackTraceDetection:
    """Test cases for stack trace line detection."""

    def test_frame(self) -> None:
        """Test Java stack frames."""
        assert is_stack_trace_line("\tat net.foo.Bar.baz(Bar.java:10)")

    def test_more_marker(self) -> None:
        """Test the '... N more' marker."""
        assert is_stack_trace_line("\t... 12 more")

    def test_plain_lines(self) -> None:
        """Test that prose mentioning 'at' is not a frame."""
        assert not is_stack_trace_line("Stopping at spawn")
        assert not is_stack_trace_line("at something")


class TestParseLines:
    """Test cases for parse_lines."""

    def test_strings(self) -> None:
        """Test bare string input."""
        parsed = parse_lines(["[12:00:00] [main/ERROR]: boom", "all good"])

        assert len(parsed) == 2
        assert parsed[0].index == 0
        assert parsed[0].severity == Severity.ERROR
        assert parsed[0].timestamp == "12:00:00"
        assert parsed[0].thread == "main"
        assert parsed[0].source == "live"
        assert parsed[0].lower_message == "[12:00:00] [main/error]: boom"
        assert parsed[1].severity == Severity.INFO

    def test_drops_empty_lines_and_reindexes(self) -> None:
        """Test that empty lines are dropped and indices stay dense."""
        parsed = parse_lines(["first", "", "   ", "\x00\x00", "second"])

        assert [line.message for line in parsed] == ["first", "second"]
        assert [line.index for line in parsed] == [0, 1]

    def test_strips_nul_and_trailing_whitespace(self) -> None:
        """Test message cleanup."""
        parsed = parse_lines(["  in\x00dented  \t"])
        assert parsed[0].message == "  indented"

    def test_supplied_severity_wins(self) -> None:
        """Test that a supplied severity is not re-inferred."""
        parsed = parse_lines([{"message": "Exception thrown", "severity": "warn"}])
        assert parsed[0].severity == Severity.WARN

    def test_unknown_severity_is_inferred(self) -> None:
        """Test that an unrecognized severity falls back to inference."""
        parsed = parse_lines([{"message": "Exception thrown", "severity": "catastrophic"}])
        assert parsed[0].severity == Severity.ERROR

    def test_model_input(self) -> None:
        """Test AnalyzeInputLine input."""
        line = AnalyzeInputLine(message="hello", source="latest.log", line_no=7, timestamp="t0")
        parsed = parse_lines([line])

        assert parsed[0].source == "latest.log"
        assert parsed[0].line_no == 7
        assert parsed[0].timestamp == "t0"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (12, 12),
            (3.7, 3),
            ("12", 12),
            (0, None),
            (-4, None),
            (math.nan, None),
            (math.inf, None),
            (True, None),
            ("abc", None),
        ],
    )
    def test_line_number_coercion(self, raw: object, expected: int | None) -> None:
        """Test that only finite positive line numbers survive."""
        parsed = parse_lines([{"message": "x", "lineNo": raw}])
        assert parsed[0].line_no == expected

    def test_snake_case_line_number(self) -> None:
        """Test the line_no mapping key."""
        parsed = parse_lines([{"message": "x", "line_no": 5}])
        assert parsed[0].line_no == 5

    def test_default_source(self) -> None:
        """Test the default source override."""
        parsed = parse_lines(["x"], default_source="crash-report")
        assert parsed[0].source == "crash-report"

    def test_stack_trace_flag(self) -> None:
        """Test that stack frames are flagged."""
        parsed = parse_lines(["boom", "\tat a.b.C.d(C.java:1)"])
        assert [line.in_stack_trace for line in parsed] == [False, True]

    def test_generator_input(self) -> None:
        """Test that any iterable of lines is accepted."""
        parsed = parse_lines(f"line {i}" for i in range(3))
        assert len(parsed) == 3

    def test_rejects_string(self) -> None:
        """Test that a bare string is not treated as a list of characters."""
        with pytest.raises(AnalysisInputError) as exc_info:
            parse_lines("not a list")
        assert exc_info.value.error_code == ErrorCode.INPUT_NOT_SEQUENCE

    def test_rejects_non_iterable(self) -> None:
        """Test non-iterable input."""
        with pytest.raises(AnalysisInputError):
            parse_lines(42)

    def test_rejects_invalid_item(self) -> None:
        """Test that unsupported line items raise with their position."""
        with pytest.raises(AnalysisInputError) as exc_info:
            parse_lines(["ok", 3.14])
        assert exc_info.value.context["position"] == 1


class TestSplitLogText:
    """Test cases for split_log_text."""

    def test_crlf_and_lf(self) -> None:
        """Test mixed line endings."""
        assert split_log_text("a\r\nb\nc") == ["a", "b", "c"]

    def test_trims_and_drops_empty(self) -> None:
        """Test that lines are trimmed and blank ones dropped."""
        assert split_log_text("  a  \r\n\r\n\n   \n b") == ["a", "b"]

    def test_none_and_empty(self) -> None:
        """Test empty input."""
        assert split_log_text(None) == []
        assert split_log_text("") == []

    def test_bytes(self) -> None:
        """Test byte input is decoded."""
        assert split_log_text(b"one\ntwo") == ["one", "two"]

    def test_rejects_other_types(self) -> None:
        """Test non-text input."""
        with pytest.raises(AnalysisInputError) as exc_info:
            split_log_text(["a"])
        assert exc_info.value.error_code == ErrorCode.INPUT_NOT_SEQUENCE
