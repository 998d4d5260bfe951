"""Tests for the dedupe normalization module."""

import dataclasses
import re

import pytest

from crashscope.normalization import (
    DEFAULT_NORMALIZER,
    DedupeNormalizer,
    MaskingRule,
    get_normalizer,
    normalize_for_dedupe,
)


class TestDedupeNormalizer:
    """Test cases for the DedupeNormalizer."""

    @pytest.fixture
    def normalizer(self) -> DedupeNormalizer:
        """Create a fresh normalizer for each test."""
        return DedupeNormalizer()

    def test_lowercases_and_collapses_whitespace(self, normalizer: DedupeNormalizer) -> None:
        """Test case folding and whitespace collapsing."""
        assert normalizer.normalize("  Loading   Textures\t\tnow ") == "loading textures now"

    def test_masks_hex_runs(self, normalizer: DedupeNormalizer) -> None:
        """Test that long hex ids are masked."""
        msg = "Object 0123456789ABCDEF0123 freed"
        assert normalizer.normalize(msg) == "object <hex> freed"

    def test_short_hex_is_kept(self, normalizer: DedupeNormalizer) -> None:
        """Test that short hex-looking words are not masked."""
        assert normalizer.normalize("Chunk deadbeef loaded") == "chunk deadbeef loaded"

    def test_masks_iso_timestamps(self, normalizer: DedupeNormalizer) -> None:
        """Test ISO timestamp masking with both separators."""
        assert normalizer.normalize("at 2024-01-15 10:30:00 done") == "at <ts> done"
        assert normalizer.normalize("2024-01-15T10:30:00 done") == "<ts> done"

    def test_equivalent_lines_share_key(self, normalizer: DedupeNormalizer) -> None:
        """Test that lines differing only by volatile parts collapse."""
        a = normalizer.normalize("Session 00112233445566778899aabb expired at 2024-01-15 10:30:00")
        b = normalizer.normalize("session  ffeeddccbbaa99887766554433 expired at 2024-02-01T08:00:59")
        assert a == b

    def test_none_and_empty(self, normalizer: DedupeNormalizer) -> None:
        """Test empty input."""
        assert normalizer.normalize(None) == ""
        assert normalizer.normalize("   ") == ""

    def test_rules_are_immutable(self, normalizer: DedupeNormalizer) -> None:
        """Test that neither the rule list nor a rule can be changed in place."""
        assert isinstance(normalizer.rules, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            normalizer.rules = ()  # type: ignore[misc]
        with pytest.raises(dataclasses.FrozenInstanceError):
            normalizer.rules[0].replacement = "_"  # type: ignore[misc]

    def test_custom_rules(self) -> None:
        """Test a normalizer built with its own rule list."""
        normalizer = DedupeNormalizer(
            rules=[MaskingRule(name="digits", pattern=re.compile(r"\d+"), replacement="<n>")]
        )
        assert normalizer.normalize("Tick 42 took 12ms") == "tick <n> took <n>ms"


class TestSharedNormalizer:
    """Test cases for the module-level helpers."""

    def test_default(self) -> None:
        """Test that the default normalizer is the module constant."""
        assert get_normalizer() is DEFAULT_NORMALIZER
        assert [rule.name for rule in DEFAULT_NORMALIZER.rules] == ["whitespace", "hex_run", "iso_timestamp"]

    def test_normalize_for_dedupe(self) -> None:
        """Test the convenience function."""
        assert normalize_for_dedupe("A  B") == "a b"

    def test_normalize_for_dedupe_custom(self) -> None:
        """Test passing an explicit normalizer."""
        plain = DedupeNormalizer(rules=[])
        assert normalize_for_dedupe("A  B", plain) == "a  b"
