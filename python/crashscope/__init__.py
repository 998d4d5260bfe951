"""
Crashscope - crash and log analysis for modded game instances

This package turns raw launcher/game logs into a diagnosis:
- Severity counts and key error lines
- Ranked likely causes from a weighted rule catalogue, with fixes
- Ranked crash suspects and failed mods from canonicalized mod ids
- Config file linting, safe fixes and presets
"""

from crashscope.analyzer import (
    LogAnalyzer,
    analyze_log_lines,
    analyze_log_source,
    analyze_log_text,
)
from crashscope.parser import extract_log_timestamp, infer_log_severity
from crashscope.suspects import detect_crash_suspects_from_messages

__version__ = "0.2.0"
__all__ = [
    "LogAnalyzer",
    "analyze_log_lines",
    "analyze_log_source",
    "analyze_log_text",
    "detect_crash_suspects_from_messages",
    "extract_log_timestamp",
    "infer_log_severity",
]
