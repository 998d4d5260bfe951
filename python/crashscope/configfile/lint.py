"""
Config issue detection, safe fixes and preset application.

JSON files are walked as a tree; ``.properties``, ``.toml`` and
``options.txt``-style files are read as ``key<delimiter>value`` lines.
Both paths evaluate the same ``VALUE_RULES`` table. Unparseable input is
reported through ``blocking_error`` rather than raised.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from crashscope.configfile.formatting import dump_json, format_config_content, split_comment
from crashscope.configfile.models import (
    ConfigDoc,
    ConfigIssue,
    ConfigPreset,
    IssueSeverity,
    SafeFixResult,
)
from crashscope.configfile.rules import (
    JSON_FIELD_DOC,
    KEY_DOCS,
    PRESET_VALUES,
    TEXT_FIELD_DOC,
    VALUE_RULES,
    ValueRule,
    ValueType,
)
from crashscope.exceptions import ConfigurationError
from crashscope.logging import get_logger

logger = get_logger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_TOML_SECTION_RE = re.compile(r"^\[[^\]]+\]$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_ROOT_PREFIX_RE = re.compile(r"^root\.?")

_TRUE_WORDS = frozenset({"true", "on", "yes", "1"})
_FALSE_WORDS = frozenset({"false", "off", "no", "0"})


class FileKind(str, Enum):
    JSON = "json"
    PROPERTIES = "properties"
    TOML = "toml"
    OPTIONS = "options"
    TXT = "txt"
    OTHER = "other"


LINE_KINDS = frozenset({FileKind.PROPERTIES, FileKind.TOML, FileKind.OPTIONS, FileKind.TXT})


@dataclass(frozen=True)
class TextEntry:
    """One ``key<delimiter>value`` line of a line-oriented config file."""

    line_index: int
    key: str
    value: str
    delimiter: str
    path: str
    raw_line: str


def detect_file_kind(file_path: str) -> FileKind:
    lower = (file_path or "").lower()
    if lower.endswith(".json"):
        return FileKind.JSON
    if lower.endswith(".properties"):
        return FileKind.PROPERTIES
    if lower.endswith(".toml"):
        return FileKind.TOML
    if lower.endswith("options.txt"):
        return FileKind.OPTIONS
    if lower.endswith(".txt"):
        return FileKind.TXT
    return FileKind.OTHER


def normalize_path(path: str | None) -> str:
    raw = (path or "").strip()
    if not raw:
        return "root"
    return _ROOT_PREFIX_RE.sub("", raw, count=1).lstrip(".") or "root"


def describe_path(parts: list[str | int]) -> str:
    """``["video", "render distance", 0]`` -> ``video["render distance"][0]``."""
    if not parts:
        return "root"
    out: list[str] = []
    for i, part in enumerate(parts):
        if isinstance(part, int):
            out.append(f"[{part}]")
        elif i == 0:
            out.append(part)
        elif _IDENTIFIER_RE.match(part):
            out.append(f".{part}")
        else:
            out.append(f'["{part}"]')
    return "".join(out)


def find_value_rule(path: str) -> ValueRule | None:
    normalized = normalize_path(path)
    for rule in VALUE_RULES:
        if rule.key_pattern.search(normalized):
            return rule
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_maybe_number(text: str) -> float | None:
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_maybe_boolean(text: str) -> bool | None:
    value = text.strip().lower()
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    return None


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _clamp(value: float, low: float | None, high: float | None) -> float:
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def parse_text_entries(file_path: str, content: str) -> list[TextEntry]:
    """Read ``key<delimiter>value`` entries; TOML section headers prefix the path."""
    lower = (file_path or "").lower()
    is_toml = lower.endswith(".toml")
    delimiter = "=" if lower.endswith(".properties") or is_toml else ":"
    section = ""
    entries: list[TextEntry] = []

    for line_index, line in enumerate(_LINE_SPLIT_RE.split(content or "")):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(("#", "//", "!")):
            continue
        if is_toml and _TOML_SECTION_RE.match(trimmed):
            section = trimmed[1:-1].strip()
            continue
        body = split_comment(line)[0] if is_toml else line
        idx = body.find(delimiter)
        if idx <= 0:
            continue
        key = body[:idx].strip()
        if not key:
            continue
        entries.append(
            TextEntry(
                line_index=line_index,
                key=key,
                value=body[idx + 1:].strip(),
                delimiter=delimiter,
                path=f"{section}.{key}" if section else key,
                raw_line=line,
            )
        )
    return entries


def _json_issues(node: Any, parts: list[str | int], out: list[ConfigIssue]) -> None:
    path = describe_path(parts)
    if isinstance(node, str) and node.strip() == "":
        out.append(ConfigIssue(path=path, severity=IssueSeverity.WARNING, message="Value is an empty string."))
    if isinstance(node, float) and not math.isfinite(node):
        out.append(ConfigIssue(path=path, severity=IssueSeverity.ERROR, message="Number is not finite."))

    rule = find_value_rule(path)
    if rule is not None and node is not None and not isinstance(node, (dict, list)):
        if rule.type == ValueType.NUMBER:
            if not _is_number(node):
                out.append(ConfigIssue(path=path, severity=IssueSeverity.WARNING, message="Expected a numeric value."))
            else:
                if rule.min is not None and node < rule.min:
                    out.append(
                        ConfigIssue(
                            path=path,
                            severity=IssueSeverity.WARNING,
                            message=f"Value is below recommended minimum ({_format_number(rule.min)}).",
                        )
                    )
                if rule.max is not None and node > rule.max:
                    out.append(
                        ConfigIssue(
                            path=path,
                            severity=IssueSeverity.WARNING,
                            message=f"Value is above recommended maximum ({_format_number(rule.max)}).",
                        )
                    )
        elif rule.type == ValueType.BOOLEAN and not isinstance(node, bool):
            out.append(ConfigIssue(path=path, severity=IssueSeverity.WARNING, message="Expected a boolean value."))
        elif rule.type == ValueType.ENUM and isinstance(node, str):
            if rule.allowed and node.lower() not in rule.allowed:
                out.append(
                    ConfigIssue(
                        path=path,
                        severity=IssueSeverity.WARNING,
                        message=f"Unexpected value. Recommended: {', '.join(rule.allowed)}.",
                    )
                )

    if isinstance(node, list):
        for index, entry in enumerate(node):
            _json_issues(entry, [*parts, index], out)
    elif isinstance(node, dict):
        for key, value in node.items():
            _json_issues(value, [*parts, key], out)


def _text_issues(file_path: str, content: str) -> list[ConfigIssue]:
    issues: list[ConfigIssue] = []
    first_seen: dict[str, int] = {}

    for entry in parse_text_entries(file_path, content):
        messages: list[str] = []

        key = entry.path.lower()
        if key in first_seen:
            messages.append(f"Duplicate key. First defined on line {first_seen[key] + 1}.")
        else:
            first_seen[key] = entry.line_index

        rule = find_value_rule(entry.path)
        if rule is not None and rule.type == ValueType.NUMBER:
            number = parse_maybe_number(entry.value)
            if number is None:
                messages.append("Expected numeric value.")
            else:
                if rule.min is not None and number < rule.min:
                    messages.append(f"Value below recommended minimum ({_format_number(rule.min)}).")
                if rule.max is not None and number > rule.max:
                    messages.append(f"Value above recommended maximum ({_format_number(rule.max)}).")
        elif rule is not None and rule.type == ValueType.BOOLEAN:
            if parse_maybe_boolean(entry.value) is None:
                messages.append("Expected boolean value (true/false).")
        elif rule is not None and rule.type == ValueType.ENUM:
            if rule.allowed and entry.value.lower() not in rule.allowed:
                messages.append(f"Unexpected value. Recommended: {', '.join(rule.allowed)}.")

        issues.extend(
            ConfigIssue(path=entry.path, line=entry.line_index + 1, severity=IssueSeverity.WARNING, message=m)
            for m in messages
        )

    return issues


def _invalid_json(exc: Exception) -> str:
    return f"Invalid JSON: {exc}"


def collect_config_issues(file_path: str, content: str) -> list[ConfigIssue]:
    """Lint a config file. Unsupported file types yield no issues."""
    kind = detect_file_kind(file_path)
    if kind == FileKind.JSON:
        try:
            parsed = json.loads(content)
        except ValueError as exc:
            return [ConfigIssue(path="root", severity=IssueSeverity.ERROR, message=_invalid_json(exc))]
        issues: list[ConfigIssue] = []
        _json_issues(parsed, [], issues)
        return issues
    if kind in LINE_KINDS:
        return _text_issues(file_path, content)
    return []


def _apply_rule_to_json(path: str, value: Any, notes: list[str]) -> Any:
    rule = find_value_rule(path)
    if rule is None:
        return value
    label = normalize_path(path)

    if rule.type == ValueType.NUMBER:
        if _is_number(value) and math.isfinite(value):
            clamped = _clamp(value, rule.min, rule.max)
            if clamped != value:
                notes.append(f"{label} clamped to safe range.")
            return clamped
        if _is_number(rule.default):
            notes.append(f"{label} reset to default numeric value.")
            return rule.default

    elif rule.type == ValueType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            parsed = parse_maybe_boolean(value)
            if parsed is not None:
                notes.append(f"{label} normalized to boolean.")
                return parsed
        if isinstance(rule.default, bool):
            notes.append(f"{label} reset to default boolean.")
            return rule.default

    elif rule.type == ValueType.ENUM:
        if isinstance(value, str):
            lowered = value.lower()
            if not rule.allowed or lowered in rule.allowed:
                return lowered
        if isinstance(rule.default, str):
            notes.append(f"{label} reset to recommended value.")
            return rule.default

    return value


def _fix_json_value(node: Any, parts: list[str | int], notes: list[str]) -> Any:
    if isinstance(node, list):
        return [_fix_json_value(entry, [*parts, i], notes) for i, entry in enumerate(node)]
    if isinstance(node, dict):
        return {key: _fix_json_value(value, [*parts, key], notes) for key, value in node.items()}
    return _apply_rule_to_json(describe_path(parts), node, notes)


def _fixed_text_value(entry: TextEntry, rule: ValueRule, notes: list[str]) -> str:
    if rule.type == ValueType.NUMBER:
        parsed = parse_maybe_number(entry.value)
        fallback = float(rule.default) if _is_number(rule.default) else 0.0
        number = _clamp(parsed if parsed is not None else fallback, rule.min, rule.max)
        if parsed is None:
            notes.append(f"{entry.path} reset to numeric default.")
        elif number != parsed:
            notes.append(f"{entry.path} clamped to safe range.")
        return _format_number(float(number))

    if rule.type == ValueType.BOOLEAN:
        parsed_bool = parse_maybe_boolean(entry.value)
        if parsed_bool is None:
            notes.append(f"{entry.path} normalized to boolean default.")
            parsed_bool = rule.default if isinstance(rule.default, bool) else True
        return "true" if parsed_bool else "false"

    lowered = entry.value.lower()
    if rule.allowed and lowered not in rule.allowed:
        notes.append(f"{entry.path} reset to recommended value.")
        return str(rule.default if rule.default is not None else rule.allowed[0])
    return lowered


def _fix_text_content(file_path: str, content: str, notes: list[str]) -> tuple[bool, str]:
    lines = _LINE_SPLIT_RE.split(content or "")
    changed = False

    for entry in parse_text_entries(file_path, content):
        rule = find_value_rule(entry.path)
        if rule is None:
            continue
        rewritten = f"{entry.key}{entry.delimiter}{_fixed_text_value(entry, rule, notes)}"
        if rewritten != entry.raw_line:
            lines[entry.line_index] = rewritten
            changed = True

    formatted = format_config_content(file_path, "\n".join(lines))
    return changed or formatted.changed, formatted.output


def apply_safe_fixes(file_path: str, content: str) -> SafeFixResult:
    """
    Clamp, normalize or reset values that break the value rules.

    Every change is described in ``notes``; ``issues`` is the lint of
    the fixed output.
    """
    kind = detect_file_kind(file_path)
    notes: list[str] = []

    if kind == FileKind.JSON:
        try:
            parsed = json.loads(content)
        except ValueError as exc:
            return SafeFixResult(
                changed=False,
                output=content,
                issues=collect_config_issues(file_path, content),
                blocking_error=_invalid_json(exc),
            )
        fixed = _fix_json_value(parsed, [], notes)
        if dump_json(parsed) != content:
            notes.append("Normalized formatting.")
        output = dump_json(fixed)
        logger.debug("config_safe_fixes_applied", file=file_path, notes=len(notes))
        return SafeFixResult(
            changed=output != content,
            output=output,
            notes=notes,
            issues=collect_config_issues(file_path, output),
        )

    if kind in LINE_KINDS:
        changed, output = _fix_text_content(file_path, content, notes)
        logger.debug("config_safe_fixes_applied", file=file_path, notes=len(notes))
        return SafeFixResult(
            changed=changed,
            output=output,
            notes=notes,
            issues=collect_config_issues(file_path, output),
        )

    return SafeFixResult(
        changed=False,
        output=content,
        issues=collect_config_issues(file_path, content),
        blocking_error="Safe fixes are not available for this file type.",
    )


def _set_path_value(root: dict[str, Any], path: str, value: Any) -> None:
    parts = [part for part in path.split(".") if part]
    if not parts:
        return
    cursor = root
    for key in parts[:-1]:
        if not isinstance(cursor.get(key), dict):
            cursor[key] = {}
        cursor = cursor[key]
    cursor[parts[-1]] = value


def _preset_text(value: int | bool | str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _resolve_preset(preset: ConfigPreset | str) -> ConfigPreset:
    try:
        return ConfigPreset(preset)
    except ValueError as exc:
        raise ConfigurationError.validation_failed(
            "preset", preset, f"expected one of {', '.join(p.value for p in ConfigPreset)}"
        ) from exc


def apply_config_preset(file_path: str, content: str, preset: ConfigPreset | str) -> SafeFixResult:
    """
    Write a preset's values into a config file.

    JSON files get every preset path set (intermediate objects are
    created). Line-oriented files only have existing keys rewritten,
    matched by the last path segment.

    Raises:
        ConfigurationError: If ``preset`` is not a known preset name.
    """
    preset = _resolve_preset(preset)
    values = PRESET_VALUES[preset]
    kind = detect_file_kind(file_path)

    if kind == FileKind.JSON:
        try:
            parsed = json.loads(content)
        except ValueError as exc:
            return SafeFixResult(
                changed=False,
                output=content,
                issues=collect_config_issues(file_path, content),
                blocking_error=_invalid_json(exc),
            )
        if not isinstance(parsed, dict):
            return SafeFixResult(
                changed=False,
                output=content,
                issues=collect_config_issues(file_path, content),
                blocking_error="Presets need a JSON object at the top level.",
            )
        for path, value in values.items():
            _set_path_value(parsed, path, value)
        output = dump_json(parsed)
        changed = output != content
        logger.debug("config_preset_applied", file=file_path, preset=preset.value, changed=changed)
        return SafeFixResult(
            changed=changed,
            output=output,
            notes=[f"Applied {preset.value} preset values."] if changed else [],
            issues=collect_config_issues(file_path, output),
        )

    if kind in (FileKind.OPTIONS, FileKind.TXT, FileKind.PROPERTIES):
        delimiter = "=" if kind == FileKind.PROPERTIES else ":"
        by_leaf: dict[str, int | bool | str] = {}
        for path, value in values.items():
            by_leaf.setdefault(path.rsplit(".", 1)[-1].lower(), value)

        lines = _LINE_SPLIT_RE.split(content or "")
        changed = False
        for i, line in enumerate(lines):
            idx = line.find(delimiter)
            if idx <= 0:
                continue
            key = line[:idx].strip()
            if key.lower() not in by_leaf:
                continue
            rewritten = f"{key}{delimiter}{_preset_text(by_leaf[key.lower()])}"
            if rewritten != line:
                lines[i] = rewritten
                changed = True

        output = "\n".join(lines)
        logger.debug("config_preset_applied", file=file_path, preset=preset.value, changed=changed)
        return SafeFixResult(
            changed=changed,
            output=output,
            notes=[f"Applied {preset.value} preset to matching keys."] if changed else [],
            issues=collect_config_issues(file_path, output),
        )

    return SafeFixResult(
        changed=False,
        output=content,
        issues=collect_config_issues(file_path, content),
        blocking_error="Presets are not available for this file type.",
    )


def get_config_doc_for_path(file_path: str, path: str) -> ConfigDoc | None:
    """Documentation for a key, falling back to a generic doc per file type."""
    normalized = normalize_path(path)
    for pattern, doc in KEY_DOCS:
        if pattern.search(normalized):
            return doc

    lower = (file_path or "").lower()
    if lower.endswith(".json"):
        return JSON_FIELD_DOC
    if lower.endswith((".properties", ".toml", ".txt")):
        return TEXT_FIELD_DOC
    return None


def group_issues_by_path(issues: list[ConfigIssue]) -> dict[str, list[ConfigIssue]]:
    grouped: dict[str, list[ConfigIssue]] = {}
    for issue in issues:
        grouped.setdefault(normalize_path(issue.path), []).append(issue)
    return grouped
