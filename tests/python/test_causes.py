"""Tests for the cause rule engine."""

import pytest

from crashscope.causes import (
    MAX_EVIDENCE,
    ScoredCause,
    boilerplate_penalty,
    clamp01,
    collect_cause_scores,
    collect_likely_causes,
    rank_causes,
    severity_weight,
    to_confidence,
)
from crashscope.config import AnalysisLimits
from crashscope.models import Severity
from crashscope.parser import parse_lines
from crashscope.rules import CauseRule, RuleTables


class TestScoringHelpers:
    """Test cases for the scoring helper functions."""

    @pytest.mark.parametrize(
        "severity,expected",
        [
            (Severity.ERROR, 2.35),
            (Severity.WARN, 1.2),
            (Severity.INFO, 0.94),
            (Severity.DEBUG, 0.74),
            (Severity.TRACE, 0.6),
        ],
    )
    def test_severity_weight(self, severity: Severity, expected: float) -> None:
        """Test per-severity weights."""
        assert severity_weight(severity) == expected

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("loading shaders", 0.65),
            ("found 3 shader packs", 0.65),
            ("loading failed", 1.0),
            ("stacktrace omitted for brevity", 0.7),
            ("exception suppressed, continuing", 0.7),
            ("shader compile problem", 1.0),
        ],
    )
    def test_boilerplate_penalty(self, message: str, expected: float) -> None:
        """Test the progress and suppressed-line penalties."""
        assert boilerplate_penalty(message) == expected

    def test_clamp01(self) -> None:
        """Test clamping and non-finite handling."""
        assert clamp01(-0.5) == 0.0
        assert clamp01(0.25) == 0.25
        assert clamp01(7) == 1.0
        assert clamp01(float("nan")) == 0.0
        assert clamp01(float("inf")) == 0.0

    def test_to_confidence(self) -> None:
        """Test the logarithmic confidence curve."""
        assert to_confidence(0) == 0.14
        assert to_confidence(-10) == 0.14
        assert to_confidence(9) == 0.48
        assert to_confidence(1e9) == 1.0

    def test_to_confidence_monotonic(self) -> None:
        """Test that higher scores never lower confidence."""
        values = [to_confidence(score) for score in (0, 0.5, 1, 5, 20, 100, 1000)]
        assert values == sorted(values)


class TestScoredCause:
    """Test cases for the per-rule accumulator."""

    def test_evidence_cap_and_dedupe(self) -> None:
        """Test that evidence is unique and capped."""
        cause = ScoredCause(id="x", title="X", reason="r", fixes=[])
        for text in ["a", "a", "b", "c", "d", "e"]:
            cause.add_evidence(text)
        assert cause.evidence == ["a", "b", "c", "d"]
        assert len(cause.evidence) == MAX_EVIDENCE


class TestCollectCauseScores:
    """Test cases for collect_cause_scores."""

    def test_repetition_dampening(self) -> None:
        """Test that N identical lines score sqrt(N) times one line."""
        once = collect_cause_scores(parse_lines(["Shader compile error"]))
        four = collect_cause_scores(parse_lines(["Shader compile error"] * 4))

        assert set(once) == {"shader_render_conflict"}
        assert four["shader_render_conflict"].score == pytest.approx(
            2 * once["shader_render_conflict"].score
        )

    def test_score_formula(self) -> None:
        """Test weight x severity for a line with no proximity boost."""
        scores = collect_cause_scores(parse_lines(["Shader compile error"]))
        assert scores["shader_render_conflict"].score == pytest.approx(6 * 2.35)

    def test_reason_prefers_significant_line(self) -> None:
        """Test that the reason moves to a later failure line."""
        scores = collect_cause_scores(
            parse_lines(["Using shader pack BSL", "Shader pack BSL failed to compile"])
        )
        assert scores["shader_render_conflict"].reason == "Shader pack BSL failed to compile"

    def test_reason_kept_when_later_line_is_routine(self) -> None:
        """Test that routine lines do not replace a failure reason."""
        scores = collect_cause_scores(parse_lines(["Shader pack failed to compile", "Shader reload"]))
        assert scores["shader_render_conflict"].reason == "Shader pack failed to compile"

    def test_reason_defaults_to_first_match(self) -> None:
        """Test the reason when no matching line is significant."""
        scores = collect_cause_scores(parse_lines(["Using shader pack BSL", "Shader reload"]))
        assert scores["shader_render_conflict"].reason == "Using shader pack BSL"

    def test_no_matches(self) -> None:
        """Test that rules without matches are absent."""
        assert collect_cause_scores(parse_lines(["all quiet"])) == {}


class TestRankCauses:
    """Test cases for ranking and the public cause list."""

    @pytest.fixture
    def tied_tables(self) -> RuleTables:
        """Two rules that always score the same."""
        return RuleTables(
            cause_rules=(
                CauseRule.build("beta", "Beta failure", ["boom"], 5),
                CauseRule.build("alpha", "Alpha failure", ["boom"], 5),
            )
        )

    def test_ties_break_by_title(self, tied_tables: RuleTables) -> None:
        """Test that equal scores sort by title ascending."""
        causes, _ = collect_likely_causes(parse_lines(["boom"]), tables=tied_tables)
        assert [cause.id for cause in causes] == ["alpha", "beta"]

    def test_limit(self) -> None:
        """Test that rank_causes truncates."""
        scores = {
            str(i): ScoredCause(id=str(i), title=f"T{i}", reason="", fixes=[], score=float(i))
            for i in range(10)
        }
        ranked = rank_causes(scores, 3)
        assert [cause.id for cause in ranked] == ["9", "8", "7"]

    def test_evidence_sliced_to_limit(self) -> None:
        """Test that reported evidence respects max_cause_evidence."""
        lines = parse_lines([f"OutOfMemoryError in worker {i}" for i in range(6)])
        causes, evidence = collect_likely_causes(lines, limits=AnalysisLimits(max_cause_evidence=3))

        assert causes[0].id == "memory_oom"
        assert len(evidence["memory_oom"]) == 3
        assert evidence["memory_oom"][0] == "OutOfMemoryError in worker 0"

    def test_fixes_copied(self) -> None:
        """Test that fixes come from the rule."""
        causes, _ = collect_likely_causes(parse_lines(["java.lang.OutOfMemoryError"]))
        assert causes[0].fixes[0] == "Increase memory allocation for the instance."
