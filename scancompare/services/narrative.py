"""
Narrative generation for ScanCompare.

Builds the human-readable parts of a comparison: summary, recommendation
list, comparative clinical insight and the plain-text report. Output is
templated and fully deterministic: identical inputs give identical text.
"""

from typing import List, Optional, Sequence, Union

from jinja2 import Template

from scancompare.config import settings
from scancompare.core.classifier import issues_with_change
from scancompare.core.severity import SeverityLevel, coerce_severity
from scancompare.models.schemas import (
    ChangeDirection,
    ChangedIssue,
    ComparisonResult,
    Finding
)
from scancompare.utils.logger import get_logger

logger = get_logger("narrative")

SeverityInput = Union[SeverityLevel, str, None]


def area_label(area: Optional[str]) -> str:
    """Display label for a finding area (areas may be missing)."""
    return area if area else "unspecified area"


def join_areas(items: Sequence[Union[Finding, ChangedIssue]]) -> str:
    return ", ".join(area_label(item.area) for item in items)


class NarrativeGenerator:
    """
    Templated text for scan comparisons.

    Produces:
    - A short summary of the overall trend
    - An ordered recommendation list
    - A markdown comparative analysis ("clinical insight")
    - A plain-text report for clipboard/export

    None of the text is generated by a model.
    """

    RECOMMENDATIONS = {
        "immediate_follow_up": (
            "Schedule an immediate follow-up with your healthcare provider "
            "to discuss the progression of your condition."
        ),
        "new_findings": (
            "New findings require medical attention. Consider consulting "
            "a specialist for the {areas}."
        ),
        "monitor_worsened": (
            "Areas showing deterioration ({areas}) should be closely monitored."
        ),
        "severity_consult": (
            "Due to the current severity level, immediate medical consultation "
            "is strongly advised."
        ),
        "continue_treatment": (
            "Continue with your current treatment plan as it shows positive results."
        ),
        "routine_follow_up": (
            "Schedule a routine follow-up to maintain progress monitoring."
        ),
        "maintain_regimen": (
            "Maintain your current treatment regimen and continue regular monitoring."
        ),
        "preventive_discussion": (
            "Consider discussing preventive measures with your healthcare provider."
        ),
    }

    # Follow-up imaging interval by overall change
    FOLLOW_UP_INTERVALS = {
        ChangeDirection.IMPROVED: "6-12 months",
        ChangeDirection.WORSENED: "3-6 months",
        ChangeDirection.STABLE: "4-8 months",
    }

    CLINICAL_INSIGHT_TEMPLATE = """\
## Comparative Analysis Report: {{ scan_type }} of {{ body_part }}

### Executive Summary
The patient's condition {{ change_status }} between the two examinations. \
The overall severity has changed from {{ before_severity }} to {{ after_severity }}, \
indicating a {{ trajectory }} trajectory.

### Detailed Findings
The comparative analysis of the {{ scan_type_lower }} scans reveals the following changes \
in the {{ body_part_lower }} region.
{% if resolved_areas %}
Previously identified abnormalities in {{ resolved_areas }} have resolved, suggesting therapeutic efficacy.
{% endif %}
{% if new_areas %}
New findings have emerged in {{ new_areas }}, which warrant clinical attention.
{% else %}
No new concerning areas have been identified.
{% endif %}

{% if severe_count %}
Of particular concern are the {{ severe_count }} high/critical severity findings in {{ severe_areas }}. \
These areas demonstrate {{ severe_outlook }}
{% else %}
No high-severity findings are present in the current scan.
{% endif %}

### Radiological Interpretation
The {{ scan_type_lower }} images demonstrate {{ interpretation }}

### Clinical Correlation
These imaging findings {{ correlation }}

### Recommendations
1. {{ primary_recommendation }}
2. Focus clinical attention on {{ focus }}.
3. Schedule follow-up imaging in {{ follow_up_interval }} to reassess progression.
4. {{ severe_recommendation }}

This analysis is template-generated from automated imaging findings and should be \
interpreted in conjunction with clinical findings by a qualified healthcare professional.
"""

    TEXT_REPORT_TEMPLATE = """\
SCAN COMPARISON ANALYSIS:
-------------------------
Scan Type: {{ scan_type }}
Body Part: {{ body_part }}
Overall Change: {{ overall_change }}
Change Percentage: {{ change_percentage }}%
Severity Change: {{ before_severity }} → {{ after_severity }}

MAIN FINDINGS:
{% if resolved %}
✓ {{ resolved|length }} resolved issues: {{ resolved_areas }}
{% else %}
✓ No resolved issues
{% endif %}
{% if new %}
⚠ {{ new|length }} new issues: {{ new_areas }}
{% else %}
✓ No new issues detected
{% endif %}
{% if improved %}
↗ {{ improved|length }} improved areas: {{ improved_areas }}
{% endif %}
{% if worsened %}
↘ {{ worsened|length }} worsened areas: {{ worsened_areas }}
{% endif %}

ANALYSIS SUMMARY:
{{ summary }}

KEY RECOMMENDATIONS:
{% for recommendation in recommendations %}
• {{ recommendation }}
{% endfor %}
"""

    INTERPRETATIONS = {
        ChangeDirection.IMPROVED: (
            "reduction in pathological markers, with improved tissue architecture "
            "and diminished inflammatory response."
        ),
        ChangeDirection.WORSENED: (
            "progression of pathological features, with increased tissue involvement "
            "and potential structural changes."
        ),
        ChangeDirection.STABLE: (
            "relatively unchanged pathological features, with similar tissue "
            "presentation across both timepoints."
        ),
    }

    CORRELATIONS = {
        ChangeDirection.IMPROVED: (
            "correlate with a positive response to the current treatment regimen "
            "and suggest continuing the established therapeutic approach."
        ),
        ChangeDirection.WORSENED: (
            "indicate suboptimal response to the current treatment regimen "
            "and suggest reevaluation of the therapeutic approach."
        ),
        ChangeDirection.STABLE: (
            "suggest a plateau in response to the current treatment regimen "
            "and may warrant consideration of treatment modifications."
        ),
    }

    PRIMARY_RECOMMENDATIONS = {
        ChangeDirection.IMPROVED: "Continue current treatment protocol with regular monitoring.",
        ChangeDirection.WORSENED: "Consider escalation of therapy and more frequent follow-up imaging.",
        ChangeDirection.STABLE: "Maintain vigilant monitoring while evaluating potential adjustments to treatment.",
    }

    def __init__(self, consult_severities: Optional[Sequence[SeverityInput]] = None):
        if consult_severities is None:
            consult_severities = settings.consult_severities
        # Unknown labels raise ValueError
        self.consult_severities = [SeverityLevel(level) for level in consult_severities]
        self._insight_template = Template(
            self.CLINICAL_INSIGHT_TEMPLATE,
            trim_blocks=True,
            keep_trailing_newline=True
        )
        self._text_template = Template(
            self.TEXT_REPORT_TEMPLATE,
            trim_blocks=True,
            keep_trailing_newline=True
        )

    def generate_summary(
        self,
        overall_change: ChangeDirection,
        change_percentage: float,
        resolved: Sequence[Finding],
        introduced: Sequence[Finding],
        changed_issues: Sequence[ChangedIssue],
        before_severity: SeverityInput,
        after_severity: SeverityInput
    ) -> str:
        """
        Summarize the overall trend in a few sentences.

        Args:
            overall_change: Aggregated verdict
            change_percentage: Magnitude of the improvement score
            resolved: Findings no longer present
            introduced: Findings that appeared
            changed_issues: Classified matched pairs
            before_severity: Overall severity of the earlier scan
            after_severity: Overall severity of the later scan

        Returns:
            Summary text
        """
        severity_change = (
            f"Severity level has changed from {self._upper(before_severity)} "
            f"to {self._upper(after_severity)}."
        )
        parts = []

        if overall_change == ChangeDirection.IMPROVED:
            parts.append(f"Analysis shows an overall improvement of {change_percentage:.1f}%.")
            if resolved:
                parts.append(f"{len(resolved)} condition(s) have been resolved.")
            parts.append(severity_change)
        elif overall_change == ChangeDirection.WORSENED:
            parts.append(f"Analysis indicates a decline of {change_percentage:.1f}%.")
            if introduced:
                parts.append(f"{len(introduced)} new issue(s) detected.")
            parts.append(severity_change)
        else:
            parts.append("The condition appears stable with no significant changes.")
            if any(issue.change != ChangeDirection.STABLE for issue in changed_issues):
                parts.append(
                    "While some areas show minor variations, the overall severity remains unchanged."
                )

        improved_areas = len(issues_with_change(changed_issues, ChangeDirection.IMPROVED))
        worsened_areas = len(issues_with_change(changed_issues, ChangeDirection.WORSENED))

        if improved_areas > 0 or worsened_areas > 0:
            parts.append(
                f"Detailed analysis shows {improved_areas} improved area(s) "
                f"and {worsened_areas} worsened area(s)."
            )

        return " ".join(parts)

    def generate_recommendations(
        self,
        overall_change: ChangeDirection,
        introduced: Sequence[Finding],
        changed_issues: Sequence[ChangedIssue],
        after_severity: SeverityInput
    ) -> List[str]:
        """
        Build the ordered recommendation list.

        Every applicable rule contributes, in this order: worsening trend,
        new findings, worsened areas, current severity, improving trend,
        stable trend. The list is never empty since exactly one trend
        rule always applies.
        """
        recommendations = []

        if overall_change == ChangeDirection.WORSENED:
            recommendations.append(self.RECOMMENDATIONS["immediate_follow_up"])

        if introduced:
            recommendations.append(
                self.RECOMMENDATIONS["new_findings"].format(areas=join_areas(introduced))
            )

        worsened = issues_with_change(changed_issues, ChangeDirection.WORSENED)
        if worsened:
            recommendations.append(
                self.RECOMMENDATIONS["monitor_worsened"].format(areas=join_areas(worsened))
            )

        if coerce_severity(after_severity) in self.consult_severities:
            recommendations.append(self.RECOMMENDATIONS["severity_consult"])

        if overall_change == ChangeDirection.IMPROVED:
            recommendations.extend([
                self.RECOMMENDATIONS["continue_treatment"],
                self.RECOMMENDATIONS["routine_follow_up"],
            ])

        if overall_change == ChangeDirection.STABLE:
            recommendations.extend([
                self.RECOMMENDATIONS["maintain_regimen"],
                self.RECOMMENDATIONS["preventive_discussion"],
            ])

        return recommendations

    def generate_clinical_insight(
        self,
        overall_change: ChangeDirection,
        resolved: Sequence[Finding],
        introduced: Sequence[Finding],
        after_findings: Sequence[Finding],
        before_severity: SeverityInput,
        after_severity: SeverityInput,
        scan_type: Optional[str] = None,
        body_part: Optional[str] = None
    ) -> str:
        """
        Render the markdown comparative analysis.

        Args:
            overall_change: Aggregated verdict
            resolved: Findings no longer present
            introduced: Findings that appeared
            after_findings: All findings of the later scan
            before_severity: Overall severity of the earlier scan
            after_severity: Overall severity of the later scan
            scan_type: Imaging modality, "unknown" when not given
            body_part: Imaged body part, "unknown" when not given

        Returns:
            Markdown text
        """
        scan_type = scan_type or "unknown"
        body_part = body_part or "unknown"

        severe = [
            finding for finding in after_findings
            if finding.severity in self.consult_severities
        ]

        if overall_change == ChangeDirection.IMPROVED:
            change_status, trajectory = "has shown improvement", "positive"
        elif overall_change == ChangeDirection.WORSENED:
            change_status, trajectory = "has deteriorated", "concerning"
        else:
            change_status, trajectory = "remains stable", "stable"

        if overall_change == ChangeDirection.WORSENED:
            severe_outlook = "progressive deterioration and may require urgent intervention."
        else:
            severe_outlook = "persistent abnormalities despite treatment."

        if severe:
            severe_recommendation = f"Prioritize evaluation of the {len(severe)} high-severity findings."
        else:
            severe_recommendation = "Continue holistic evaluation of the entire region during follow-up."

        new_areas = join_areas(introduced)

        return self._insight_template.render(
            scan_type=scan_type.upper(),
            scan_type_lower=scan_type,
            body_part=body_part.upper(),
            body_part_lower=body_part,
            change_status=change_status,
            trajectory=trajectory,
            before_severity=self._upper(before_severity),
            after_severity=self._upper(after_severity),
            resolved_areas=join_areas(resolved),
            new_areas=new_areas,
            severe_count=len(severe),
            severe_areas=join_areas(severe),
            severe_outlook=severe_outlook,
            interpretation=self.INTERPRETATIONS[overall_change],
            correlation=self.CORRELATIONS[overall_change],
            primary_recommendation=self.PRIMARY_RECOMMENDATIONS[overall_change],
            focus=f"newly identified areas: {new_areas}" if introduced else "maintaining current status",
            follow_up_interval=self.FOLLOW_UP_INTERVALS[overall_change],
            severe_recommendation=severe_recommendation,
        )

    def render_text_report(
        self,
        result: ComparisonResult,
        before_severity: SeverityInput,
        after_severity: SeverityInput,
        scan_type: Optional[str] = None,
        body_part: Optional[str] = None
    ) -> str:
        """
        Render the plain-text comparison output.

        Suitable for copying to the clipboard or pasting into a report.
        """
        improved = issues_with_change(result.changed_issues, ChangeDirection.IMPROVED)
        worsened = issues_with_change(result.changed_issues, ChangeDirection.WORSENED)

        return self._text_template.render(
            scan_type=(scan_type or "unknown").upper(),
            body_part=(body_part or "unknown").upper(),
            overall_change=result.overall_change.value.upper(),
            change_percentage=f"{result.change_percentage:.1f}",
            before_severity=self._upper(before_severity),
            after_severity=self._upper(after_severity),
            resolved=result.resolved_issues,
            resolved_areas=join_areas(result.resolved_issues),
            new=result.new_issues,
            new_areas=join_areas(result.new_issues),
            improved=improved,
            improved_areas=join_areas(improved),
            worsened=worsened,
            worsened_areas=join_areas(worsened),
            summary=result.summary,
            recommendations=result.recommendations,
        )

    @staticmethod
    def _upper(severity: SeverityInput) -> str:
        return coerce_severity(severity).value.upper()


# Singleton instance
narrative_generator = NarrativeGenerator()
