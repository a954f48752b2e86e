"""
Tests for the narrative generator.
"""

import pytest
from pydantic import ValidationError

from scancompare.config import Settings
from scancompare.core.severity import SeverityLevel
from scancompare.models.schemas import ChangeDirection, Finding, ScanResult
from scancompare.services.comparison_engine import comparison_engine
from scancompare.services.narrative import NarrativeGenerator, narrative_generator

RECS = NarrativeGenerator.RECOMMENDATIONS


@pytest.fixture
def knee_results():
    """Knee finding that goes from low to high severity."""
    before = ScanResult(
        id="before",
        scan_id="scan-before",
        findings=[Finding(id="f1", area="knee", severity="low", confidence=0.7)],
        severity="low"
    )
    after = ScanResult(
        id="after",
        scan_id="scan-after",
        findings=[Finding(id="f2", area="knee", severity="high", confidence=0.7)],
        severity="high"
    )
    return before, after


class TestSummary:
    """Test summary templates."""

    def test_improved_summary(self):
        """Improvement mentions percentage, resolved count and severities."""
        resolved = [Finding(area="lung", severity="high", confidence=0.9)]

        summary = narrative_generator.generate_summary(
            ChangeDirection.IMPROVED, 100.0, resolved, [], [], "high", "normal"
        )

        assert summary == (
            "Analysis shows an overall improvement of 100.0%. "
            "1 condition(s) have been resolved. "
            "Severity level has changed from HIGH to NORMAL."
        )

    def test_worsened_summary(self, knee_results):
        """Decline mentions worsened areas."""
        result = comparison_engine.compare(*knee_results)

        assert result.summary == (
            "Analysis indicates a decline of 100.0%. "
            "Severity level has changed from LOW to HIGH. "
            "Detailed analysis shows 0 improved area(s) and 1 worsened area(s)."
        )

    def test_stable_summary(self):
        """Stable without changes is a single sentence."""
        summary = narrative_generator.generate_summary(
            ChangeDirection.STABLE, 0.0, [], [], [], "normal", "normal"
        )

        assert summary == "The condition appears stable with no significant changes."

    def test_stable_with_variations(self):
        """Stable verdict with offsetting changes mentions variations."""
        before = ScanResult(
            id="b",
            scan_id="s1",
            findings=[
                Finding(area="a", severity="high", confidence=0.5),
                Finding(area="b", severity="low", confidence=0.5),
            ],
            severity="medium"
        )
        after = ScanResult(
            id="a",
            scan_id="s2",
            findings=[
                Finding(area="a", severity="low", confidence=0.5),
                Finding(area="b", severity="high", confidence=0.5),
            ],
            severity="medium"
        )

        result = comparison_engine.compare(before, after)

        assert result.overall_change == ChangeDirection.STABLE
        assert "minor variations" in result.summary
        assert "1 improved area(s) and 1 worsened area(s)" in result.summary


class TestRecommendations:
    """Test recommendation rules and their order."""

    def test_worsened_rules_in_order(self, knee_results):
        """Worsening, worsened areas and severity rules fire in order."""
        result = comparison_engine.compare(*knee_results)

        assert result.recommendations == [
            RECS["immediate_follow_up"],
            "Areas showing deterioration (knee) should be closely monitored.",
            RECS["severity_consult"],
        ]

    def test_new_findings_named(self):
        """New finding areas are listed in the specialist advice."""
        introduced = [
            Finding(area="liver", severity="low", confidence=0.5),
            Finding(area="spleen", severity="low", confidence=0.5),
        ]

        recommendations = narrative_generator.generate_recommendations(
            ChangeDirection.WORSENED, introduced, [], "medium"
        )

        assert recommendations == [
            RECS["immediate_follow_up"],
            "New findings require medical attention. Consider consulting "
            "a specialist for the liver, spleen.",
        ]

    def test_severity_rule_applies_when_improving(self):
        """High current severity advises consultation regardless of trend."""
        recommendations = narrative_generator.generate_recommendations(
            ChangeDirection.IMPROVED, [], [], "critical"
        )

        assert recommendations == [
            RECS["severity_consult"],
            RECS["continue_treatment"],
            RECS["routine_follow_up"],
        ]

    def test_stable_rules(self):
        """Stable trend keeps the regimen."""
        recommendations = narrative_generator.generate_recommendations(
            ChangeDirection.STABLE, [], [], "low"
        )

        assert recommendations == [RECS["maintain_regimen"], RECS["preventive_discussion"]]

    def test_never_empty(self):
        """Every verdict produces at least one recommendation."""
        for change in ChangeDirection:
            assert narrative_generator.generate_recommendations(change, [], [], "normal")


class TestClinicalInsight:
    """Test the markdown comparative analysis."""

    def test_worsened_insight(self, knee_results):
        """Worsening uses the short follow-up interval."""
        before, after = knee_results
        result = comparison_engine.compare(before, after, scan_type="mri", body_part="knee")

        insight = result.clinical_insight
        assert insight.startswith("## Comparative Analysis Report: MRI of KNEE")
        assert "has deteriorated" in insight
        assert "3-6 months" in insight
        assert "1 high/critical severity findings in knee" in insight
        assert "Prioritize evaluation of the 1 high-severity findings." in insight

    def test_unknown_scan_context(self):
        """Missing scan type and body part fall back to unknown."""
        insight = narrative_generator.generate_clinical_insight(
            ChangeDirection.STABLE, [], [], [], "normal", "normal"
        )

        assert "UNKNOWN of UNKNOWN" in insight
        assert "4-8 months" in insight
        assert "No new concerning areas have been identified." in insight
        assert "No high-severity findings are present in the current scan." in insight

    def test_resolved_and_new_areas(self):
        """Resolved and new areas are named."""
        insight = narrative_generator.generate_clinical_insight(
            ChangeDirection.IMPROVED,
            [Finding(area="lung", severity="medium", confidence=0.5)],
            [Finding(area="rib", severity="low", confidence=0.5)],
            [Finding(area="rib", severity="low", confidence=0.5)],
            "medium",
            "low",
            scan_type="xray",
            body_part="chest"
        )

        assert "abnormalities in lung have resolved" in insight
        assert "New findings have emerged in rib" in insight
        assert "newly identified areas: rib" in insight
        assert "6-12 months" in insight


class TestTextReport:
    """Test the plain-text comparison output."""

    def test_text_report(self, knee_results):
        """Report lists verdict, severities, areas and recommendations."""
        before, after = knee_results
        result = comparison_engine.compare(before, after)

        report = narrative_generator.render_text_report(
            result, before.severity, after.severity, scan_type="mri", body_part="knee"
        )

        assert report.startswith("SCAN COMPARISON ANALYSIS:")
        assert "Scan Type: MRI" in report
        assert "Overall Change: WORSENED" in report
        assert "Change Percentage: 100.0%" in report
        assert "Severity Change: LOW → HIGH" in report
        assert "✓ No resolved issues" in report
        assert "✓ No new issues detected" in report
        assert "↘ 1 worsened areas: knee" in report
        assert "↗" not in report
        assert f"• {RECS['severity_consult']}" in report

    def test_deterministic(self, knee_results):
        """Same inputs render the same text."""
        before, after = knee_results
        result = comparison_engine.compare(before, after)

        first = narrative_generator.render_text_report(result, "low", "high")
        second = narrative_generator.render_text_report(result, "low", "high")

        assert first == second


class TestConsultSeverities:
    """Test the configured severities behind the consultation advice."""

    def test_misspelled_level_rejected(self, monkeypatch):
        """A typo in the environment fails settings validation."""
        monkeypatch.setenv("IMMEDIATE_CONSULT_SEVERITIES", "high,critcal")

        with pytest.raises(ValidationError, match="critcal"):
            Settings()

    def test_levels_normalised(self):
        """Labels are trimmed and lower-cased."""
        configured = Settings(immediate_consult_severities=" High , CRITICAL ")

        assert configured.consult_severities == [SeverityLevel.HIGH, SeverityLevel.CRITICAL]

    def test_generator_rejects_unknown_level(self):
        """Unknown labels are not silently turned into normal."""
        with pytest.raises(ValueError):
            NarrativeGenerator(consult_severities=["high", "critcal"])

    def test_normal_severity_never_consults(self):
        """A normal after-scan gets no consultation advice by default."""
        recommendations = narrative_generator.generate_recommendations(
            ChangeDirection.STABLE, [], [], "normal"
        )

        assert RECS["severity_consult"] not in recommendations

    def test_custom_levels(self):
        """Only the configured levels trigger the advice."""
        generator = NarrativeGenerator(consult_severities=["critical"])

        high = generator.generate_recommendations(ChangeDirection.STABLE, [], [], "high")
        critical = generator.generate_recommendations(ChangeDirection.STABLE, [], [], "critical")

        assert RECS["severity_consult"] not in high
        assert critical[0] == RECS["severity_consult"]

    def test_normal_findings_not_reported_as_severe(self):
        """The clinical insight only counts configured severities."""
        after_findings = [Finding(area="lung", severity="normal", confidence=0.4)]

        insight = narrative_generator.generate_clinical_insight(
            ChangeDirection.STABLE, [], [], after_findings, "normal", "normal"
        )

        assert "No high-severity findings are present in the current scan." in insight
