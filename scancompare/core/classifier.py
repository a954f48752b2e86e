"""
Change classifier for ScanCompare.

Severity decides the direction of a change; confidence only sets its
magnitude. A finding can be "stable" with a large percentage (the model
became more or less sure) or "worsened" with 0% (same confidence, higher
severity).
"""

from typing import Iterable, List, Tuple

from scancompare.core.severity import rank
from scancompare.models.schemas import ChangeDirection, ChangedIssue, Finding


def classify_direction(severity_delta: int) -> ChangeDirection:
    """Map a severity rank delta (after - before) to a direction."""
    if severity_delta < 0:
        return ChangeDirection.IMPROVED
    elif severity_delta > 0:
        return ChangeDirection.WORSENED
    else:
        return ChangeDirection.STABLE


def classify_pair(before: Finding, after: Finding) -> ChangedIssue:
    """
    Classify how one finding changed between two analyses.
    
    Args:
        before: Finding from the earlier analysis
        after: Finding for the same area in the later analysis
        
    Returns:
        ChangedIssue with direction and confidence drift in percent
    """
    severity_delta = rank(after.severity) - rank(before.severity)
    confidence_delta = after.confidence - before.confidence
    
    return ChangedIssue(
        area=before.area,
        before=before,
        after=after,
        change=classify_direction(severity_delta),
        change_percentage=abs(confidence_delta * 100)
    )


def classify_matches(pairs: Iterable[Tuple[Finding, Finding]]) -> List[ChangedIssue]:
    """Classify every matched pair, keeping matcher order."""
    return [classify_pair(before, after) for before, after in pairs]


def issues_with_change(
    changed_issues: Iterable[ChangedIssue],
    change: ChangeDirection
) -> List[ChangedIssue]:
    return [issue for issue in changed_issues if issue.change == change]
