"""
Whitespace-level formatting for config files.

Only touches spacing around delimiters (and JSON indentation); keys,
values, comments and ordering are kept.
"""

from __future__ import annotations

import json
import re
from enum import Enum

from crashscope.configfile.models import (
    ConfigFormatDiagnostic,
    ConfigFormatResult,
    ConfigFormatSupport,
    IssueSeverity,
)

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_TOML_SECTION_RE = re.compile(r"^\[[^\]]+\]$")
_TOML_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class FormatKind(str, Enum):
    JSON = "json"
    PROPERTIES = "properties"
    TOML = "toml"
    KV_COLON = "kv-colon"
    NONE = "none"


def _looks_like_colon_kv(content: str) -> bool:
    for line in _LINE_SPLIT_RE.split(content):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#") or trimmed.startswith("//"):
            continue
        if trimmed.find(":") > 0:
            return True
    return False


def detect_format_kind(file_path: str, content: str) -> FormatKind:
    lower = (file_path or "").lower()
    if lower.endswith(".json"):
        return FormatKind.JSON
    if lower.endswith(".properties"):
        return FormatKind.PROPERTIES
    if lower.endswith(".toml"):
        return FormatKind.TOML
    if lower.endswith("options.txt"):
        return FormatKind.KV_COLON
    if lower.endswith(".txt") and _looks_like_colon_kv(content or ""):
        return FormatKind.KV_COLON
    return FormatKind.NONE


def dump_json(value: object) -> str:
    """Serialize with 2-space indentation, keeping non-ASCII text as-is."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def split_comment(line: str) -> tuple[str, str]:
    """Split a TOML line at the first ``#`` that is outside quotes."""
    in_single = False
    in_double = False
    for i, ch in enumerate(line):
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        if ch == "#" and not in_single and not in_double:
            return line[:i], line[i:]
    return line, ""


def _info(message: str) -> list[ConfigFormatDiagnostic]:
    return [ConfigFormatDiagnostic(level=IssueSeverity.INFO, message=message)]


def _normalize_json(content: str) -> ConfigFormatResult:
    try:
        parsed = json.loads(content)
    except ValueError as exc:
        return ConfigFormatResult(
            changed=False,
            output=content,
            diagnostics=[
                ConfigFormatDiagnostic(
                    level=IssueSeverity.ERROR, message="Invalid JSON. Fix syntax before formatting."
                )
            ],
            blocking_error=str(exc),
        )
    output = dump_json(parsed)
    changed = output != content
    return ConfigFormatResult(
        changed=changed,
        output=output,
        diagnostics=_info("JSON formatting normalized.") if changed else [],
    )


def _normalize_properties(content: str) -> ConfigFormatResult:
    changed = False
    output: list[str] = []
    for line in _LINE_SPLIT_RE.split(content):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#") or trimmed.startswith("!"):
            output.append(line)
            continue
        positions = [p for p in (line.find("="), line.find(":")) if p >= 0]
        idx = min(positions) if positions else -1
        if idx <= 0:
            output.append(line)
            continue
        normalized = f"{line[:idx].strip()}={line[idx + 1:].strip()}"
        if normalized != line:
            changed = True
        output.append(normalized)
    return ConfigFormatResult(
        changed=changed,
        output="\n".join(output),
        diagnostics=_info("Normalized key/value spacing for .properties.") if changed else [],
    )


def _normalize_toml(content: str) -> ConfigFormatResult:
    changed = False
    output: list[str] = []
    for line in _LINE_SPLIT_RE.split(content):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#") or _TOML_SECTION_RE.match(trimmed):
            output.append(line)
            continue
        body, comment = split_comment(line)
        idx = body.find("=")
        key = body[:idx].strip() if idx > 0 else ""
        value = body[idx + 1:].strip() if idx > 0 else ""
        if idx <= 0 or not _TOML_BARE_KEY_RE.match(key) or not value:
            output.append(line)
            continue
        rebuilt = f"{key} = {value}" + (f" {comment.lstrip()}" if comment else "")
        if rebuilt != line:
            changed = True
        output.append(rebuilt)
    return ConfigFormatResult(
        changed=changed,
        output="\n".join(output),
        diagnostics=_info("Normalized simple key/value spacing for TOML.") if changed else [],
    )


def _normalize_colon_kv(content: str) -> ConfigFormatResult:
    changed = False
    output: list[str] = []
    for line in _LINE_SPLIT_RE.split(content):
        trimmed = line.strip()
        idx = line.find(":")
        if not trimmed or trimmed.startswith("#") or trimmed.startswith("//") or idx <= 0:
            output.append(line)
            continue
        normalized = f"{line[:idx].strip()}:{line[idx + 1:].strip()}"
        if normalized != line:
            changed = True
        output.append(normalized)
    return ConfigFormatResult(
        changed=changed,
        output="\n".join(output),
        diagnostics=_info("Normalized key:value spacing for text config.") if changed else [],
    )


def format_config_content(file_path: str, content: str) -> ConfigFormatResult:
    """Normalize spacing for a supported config file."""
    content = content or ""
    kind = detect_format_kind(file_path, content)
    if kind == FormatKind.JSON:
        return _normalize_json(content)
    if kind == FormatKind.PROPERTIES:
        return _normalize_properties(content)
    if kind == FormatKind.TOML:
        return _normalize_toml(content)
    if kind == FormatKind.KV_COLON:
        return _normalize_colon_kv(content)
    return ConfigFormatResult(
        changed=False,
        output=content,
        blocking_error="Formatting not available for this file type.",
    )


def get_formatter_support(file_path: str, content: str) -> ConfigFormatSupport:
    if detect_format_kind(file_path, content or "") == FormatKind.NONE:
        return ConfigFormatSupport(
            supported=False,
            reason="Unsupported file type for safe formatting.",
            can_format=False,
        )
    result = format_config_content(file_path, content)
    return ConfigFormatSupport(
        supported=True,
        reason=result.blocking_error,
        can_format=result.blocking_error is None and (result.changed or bool(result.diagnostics)),
        diagnostics=result.diagnostics,
    )
