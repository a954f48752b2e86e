"""
Tests for the severity scale, finding matcher, classifier and scorer.
"""

import pytest

from scancompare.core.classifier import classify_direction, classify_pair
from scancompare.core.matcher import match_findings
from scancompare.core.scoring import aggregate
from scancompare.core.severity import SeverityLevel, coerce_severity, rank
from scancompare.models.schemas import ChangeDirection, Finding


def finding(area, severity="medium", confidence=0.5, finding_id=None):
    return Finding(
        id=finding_id or f"{area}-{severity}",
        area=area,
        severity=severity,
        confidence=confidence
    )


class TestSeverityScale:
    """Test severity ranks and defaulting."""

    def test_ranks_are_ordered(self):
        """Ranks follow normal < low < medium < high < critical."""
        ranks = [rank(level) for level in SeverityLevel]
        assert ranks == [0, 1, 2, 3, 4]

    def test_rank_accepts_strings(self):
        """String labels rank like their enum members."""
        assert rank("critical") == 4
        assert rank("High") == 3

    def test_unknown_and_missing_rank_zero(self):
        """Unknown or missing severity ranks as normal."""
        assert rank(None) == 0
        assert rank("severe") == 0
        assert coerce_severity(42) == SeverityLevel.NORMAL


class TestFindingMatcher:
    """Test matching by area."""

    def test_three_disjoint_views(self):
        """Findings split into resolved, introduced and matched."""
        before = [finding("lung"), finding("heart")]
        after = [finding("heart", "low"), finding("liver")]

        match = match_findings(before, after)

        assert [f.area for f in match.resolved] == ["lung"]
        assert [f.area for f in match.introduced] == ["liver"]
        assert match.matched_areas == ["heart"]
        before_heart, after_heart = match.matched[0]
        assert before_heart.severity == SeverityLevel.MEDIUM
        assert after_heart.severity == SeverityLevel.LOW

    def test_matching_is_case_sensitive(self):
        """Differently cased areas do not match."""
        match = match_findings([finding("Lung")], [finding("lung")])

        assert len(match.resolved) == 1
        assert len(match.introduced) == 1
        assert match.matched == []

    def test_duplicate_areas_first_match_wins(self):
        """Only the first occurrence of a shared area is paired."""
        before = [
            finding("knee", finding_id="b1"),
            finding("knee", finding_id="b2"),
            finding("hip", finding_id="b3"),
        ]
        after = [
            finding("knee", finding_id="a1"),
            finding("knee", finding_id="a2"),
            finding("ankle", finding_id="a3"),
        ]

        match = match_findings(before, after)

        assert [(b.id, a.id) for b, a in match.matched] == [("b1", "a1")]
        assert [f.id for f in match.resolved] == ["b3"]
        assert [f.id for f in match.introduced] == ["a3"]

    def test_unmatched_duplicates_are_kept(self):
        """Duplicates without a counterpart are all resolved."""
        before = [finding("knee", finding_id="b1"), finding("knee", finding_id="b2")]

        match = match_findings(before, [])

        assert [f.id for f in match.resolved] == ["b1", "b2"]

    def test_empty_inputs(self):
        """Empty lists give empty views."""
        match = match_findings([], [])

        assert match.resolved == []
        assert match.introduced == []
        assert match.matched == []


class TestChangeClassifier:
    """Test per-pair classification."""

    def test_direction_from_delta(self):
        """Sign of the severity delta picks the direction."""
        assert classify_direction(-2) == ChangeDirection.IMPROVED
        assert classify_direction(1) == ChangeDirection.WORSENED
        assert classify_direction(0) == ChangeDirection.STABLE

    def test_stable_with_confidence_drift(self):
        """Confidence drift shows in the percentage, not the direction."""
        issue = classify_pair(
            finding("lung", "high", 0.9),
            finding("lung", "high", 0.6)
        )

        assert issue.change == ChangeDirection.STABLE
        assert issue.change_percentage == pytest.approx(30.0)

    def test_improved_pair(self):
        """Lower severity after is an improvement."""
        issue = classify_pair(
            finding("lung", "critical", 0.4),
            finding("lung", "normal", 0.9)
        )

        assert issue.area == "lung"
        assert issue.change == ChangeDirection.IMPROVED
        assert issue.change_percentage == pytest.approx(50.0)


class TestScoreAggregator:
    """Test the overall score."""

    def test_counts_and_score(self):
        """New findings count as worsened."""
        before = [finding("a", "high"), finding("b", "high"), finding("c", "low")]
        after = [finding("b", "low"), finding("c", "high"), finding("d", "low")]
        match = match_findings(before, after)
        changed = [classify_pair(b, a) for b, a in match.matched]

        score = aggregate(match, changed, len(before))

        assert score.resolved_count == 1
        assert score.improved_count == 1
        assert score.worsened_count == 2
        assert score.total_issues == 3
        assert score.improvement_score == pytest.approx(0.0)
        assert score.overall_change == ChangeDirection.STABLE
        assert score.change_percentage == pytest.approx(0.0)

    def test_zero_before_uses_one(self):
        """An empty before set divides by one."""
        match = match_findings([], [finding("x"), finding("y")])

        score = aggregate(match, [], 0)

        assert score.total_issues == 1
        assert score.improvement_score == pytest.approx(-2.0)
        assert score.overall_change == ChangeDirection.WORSENED
        assert score.change_percentage == pytest.approx(200.0)
