"""
Config file tooling for instance and world configs.

- Formatting: spacing normalization for JSON, .properties, TOML and options.txt
- Linting: value rules (ranges, booleans, enums) and duplicate keys
- Safe fixes: clamp/normalize/reset values that break the rules
- Presets: performance / balanced / quality value sets
"""

from crashscope.configfile.formatting import format_config_content, get_formatter_support
from crashscope.configfile.lint import (
    apply_config_preset,
    apply_safe_fixes,
    collect_config_issues,
    get_config_doc_for_path,
    group_issues_by_path,
)
from crashscope.configfile.models import (
    ConfigDoc,
    ConfigFormatDiagnostic,
    ConfigFormatResult,
    ConfigFormatSupport,
    ConfigIssue,
    ConfigPreset,
    IssueSeverity,
    SafeFixResult,
)

__all__ = [
    "ConfigDoc",
    "ConfigFormatDiagnostic",
    "ConfigFormatResult",
    "ConfigFormatSupport",
    "ConfigIssue",
    "ConfigPreset",
    "IssueSeverity",
    "SafeFixResult",
    "apply_config_preset",
    "apply_safe_fixes",
    "collect_config_issues",
    "format_config_content",
    "get_config_doc_for_path",
    "get_formatter_support",
    "group_issues_by_path",
]
