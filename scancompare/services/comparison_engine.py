"""
Comparison engine for ScanCompare.

Composes matcher, classifier, scorer and narrative generator into a
single comparison of two analysis results.
"""

from typing import Optional

from scancompare.core.classifier import classify_matches
from scancompare.core.matcher import match_findings
from scancompare.core.scoring import aggregate
from scancompare.models.schemas import ComparisonResult, ScanResult
from scancompare.services.narrative import NarrativeGenerator, narrative_generator
from scancompare.utils.logger import get_logger

logger = get_logger("comparison_engine")


class ComparisonError(Exception):
    """Base class for comparison failures reported to callers."""

    error_code = "COMPARISON_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingAnalysisError(ComparisonError):
    """One or both results lack findings or an overall severity."""

    error_code = "MISSING_ANALYSIS"

    def __init__(self, message: str, missing: dict):
        super().__init__(message)
        self.missing = missing


class ComparisonEngine:
    """
    Longitudinal comparison of two scan analyses.

    Pipeline:
    - Match findings by area
    - Classify each matched pair
    - Aggregate into an overall verdict
    - Generate summary, recommendations and clinical insight

    The engine is stateless: calls are independent and inputs are
    never modified.
    """

    def __init__(self, narrative: Optional[NarrativeGenerator] = None):
        self.narrative = narrative or narrative_generator

    def compare(
        self,
        before: ScanResult,
        after: ScanResult,
        scan_type: Optional[str] = None,
        body_part: Optional[str] = None
    ) -> ComparisonResult:
        """
        Compare a before and an after analysis.

        Args:
            before: Result of the earlier scan
            after: Result of the later scan
            scan_type: Imaging modality, used in the clinical insight only
            body_part: Imaged body part, used in the clinical insight only

        Returns:
            ComparisonResult

        Raises:
            MissingAnalysisError: If either result has no findings or severity
        """
        self._check_complete(before, after)

        before_findings = list(before.findings)
        after_findings = list(after.findings)

        match = match_findings(before_findings, after_findings)
        changed_issues = classify_matches(match.matched)
        score = aggregate(match, changed_issues, len(before_findings))

        summary = self.narrative.generate_summary(
            score.overall_change,
            score.change_percentage,
            match.resolved,
            match.introduced,
            changed_issues,
            before.severity,
            after.severity
        )
        recommendations = self.narrative.generate_recommendations(
            score.overall_change,
            match.introduced,
            changed_issues,
            after.severity
        )
        clinical_insight = self.narrative.generate_clinical_insight(
            score.overall_change,
            match.resolved,
            match.introduced,
            after_findings,
            before.severity,
            after.severity,
            scan_type=scan_type,
            body_part=body_part
        )

        logger.info(
            "Comparison complete",
            before_result_id=before.id,
            after_result_id=after.id,
            overall_change=score.overall_change.value,
            change_percentage=round(score.change_percentage, 1),
            resolved=score.resolved_count,
            introduced=len(match.introduced),
            changed=len(changed_issues)
        )

        return ComparisonResult(
            overall_change=score.overall_change,
            change_percentage=score.change_percentage,
            resolved_issues=match.resolved,
            new_issues=match.introduced,
            changed_issues=changed_issues,
            summary=summary,
            recommendations=recommendations,
            clinical_insight=clinical_insight
        )

    def _check_complete(self, before: ScanResult, after: ScanResult) -> None:
        """Raise MissingAnalysisError unless both results are complete."""
        missing = {}
        for label, result in (("before", before), ("after", after)):
            fields = [
                name for name in ("findings", "severity")
                if getattr(result, name, None) is None
            ]
            if fields:
                missing[label] = fields

        if missing:
            logger.warning("Comparison rejected: incomplete analysis", missing=missing)
            raise MissingAnalysisError(
                "Both scans must be analyzed before they can be compared",
                missing=missing
            )


# Singleton instance
comparison_engine = ComparisonEngine()


def compare_scans(before: ScanResult, after: ScanResult) -> ComparisonResult:
    """Compare two analysis results with the shared engine."""
    return comparison_engine.compare(before, after)
