"""
Dedupe normalization for log lines.

Two lines that differ only in long hex ids, timestamps or spacing are
the same line for repetition counting. The pipeline lower-cases the
message, then applies masking rules in order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MaskingRule:
    """A single masking rule with pattern and replacement."""

    name: str
    pattern: re.Pattern[str]
    replacement: str


def _default_rules() -> tuple[MaskingRule, ...]:
    return (
        MaskingRule(
            name="whitespace",
            pattern=re.compile(r"\s+"),
            replacement=" ",
        ),
        # object hashes, session ids: 16+ hex chars
        MaskingRule(
            name="hex_run",
            pattern=re.compile(r"[0-9a-f]{16,}"),
            replacement="<hex>",
        ),
        # 2024-01-15 10:30:00 / 2024-01-15t10:30:00 (already lower-cased)
        MaskingRule(
            name="iso_timestamp",
            pattern=re.compile(r"\d{4}-\d{2}-\d{2}[ t]\d{2}:\d{2}:\d{2}"),
            replacement="<ts>",
        ),
    )


@dataclass(frozen=True)
class DedupeNormalizer:
    """
    Pipeline that maps a log message to its dedupe key.

    Rules run on the lower-cased message; whitespace is collapsed first
    so timestamp masking sees single separators. Instances are immutable,
    so one normalizer can be shared across analyses.
    """

    rules: tuple[MaskingRule, ...] = field(default_factory=_default_rules)

    def __post_init__(self) -> None:
        if not isinstance(self.rules, tuple):
            object.__setattr__(self, "rules", tuple(self.rules))

    def normalize(self, message: str | None) -> str:
        """Return the dedupe key for a message."""
        result = (message or "").lower()
        for rule in self.rules:
            result = rule.pattern.sub(rule.replacement, result)
        return result.strip()


DEFAULT_NORMALIZER = DedupeNormalizer()


def get_normalizer() -> DedupeNormalizer:
    """Get the default dedupe normalizer."""
    return DEFAULT_NORMALIZER


def normalize_for_dedupe(message: str | None, normalizer: DedupeNormalizer = DEFAULT_NORMALIZER) -> str:
    """Convenience function using the default normalizer."""
    return normalizer.normalize(message)
