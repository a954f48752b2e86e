"""
Score aggregation for ScanCompare.

Turns matched/unmatched findings into one signed improvement score:

    score = ((resolved + improved) - (worsened + new)) / before_count

New findings always count against the patient. The percentage is the
score's magnitude and is deliberately not clamped; display layers clamp.
"""

from dataclasses import dataclass
from typing import List

from scancompare.core.classifier import issues_with_change
from scancompare.core.matcher import FindingMatch
from scancompare.models.schemas import ChangeDirection, ChangedIssue


@dataclass
class ChangeScore:
    """Aggregated verdict of a comparison."""
    
    resolved_count: int
    improved_count: int
    worsened_count: int
    total_issues: int
    improvement_score: float
    overall_change: ChangeDirection
    change_percentage: float


def aggregate(
    match: FindingMatch,
    changed_issues: List[ChangedIssue],
    total_before: int
) -> ChangeScore:
    """
    Aggregate classified changes into an overall verdict.
    
    Args:
        match: Matcher output
        changed_issues: Classified matched pairs
        total_before: Number of findings in the before analysis
        
    Returns:
        ChangeScore
    """
    resolved_count = len(match.resolved)
    improved_count = len(issues_with_change(changed_issues, ChangeDirection.IMPROVED))
    worsened_count = (
        len(issues_with_change(changed_issues, ChangeDirection.WORSENED))
        + len(match.introduced)
    )
    
    # An empty before set still yields a defined score
    total_issues = max(total_before, 1)
    
    improvement_score = ((resolved_count + improved_count) - worsened_count) / total_issues
    
    if improvement_score > 0:
        overall_change = ChangeDirection.IMPROVED
    elif improvement_score < 0:
        overall_change = ChangeDirection.WORSENED
    else:
        overall_change = ChangeDirection.STABLE
    
    return ChangeScore(
        resolved_count=resolved_count,
        improved_count=improved_count,
        worsened_count=worsened_count,
        total_issues=total_issues,
        improvement_score=improvement_score,
        overall_change=overall_change,
        change_percentage=abs(improvement_score * 100)
    )
