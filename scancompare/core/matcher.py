"""
Finding matcher for ScanCompare.

Aligns findings of two analyses by anatomical area. Matching is exact,
case-sensitive string equality: "Lung" and "lung" are different areas.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from scancompare.models.schemas import Finding
from scancompare.utils.logger import get_logger

logger = get_logger("matcher")


@dataclass
class FindingMatch:
    """Three disjoint views over a before/after pair of finding lists."""
    
    resolved: List[Finding] = field(default_factory=list)
    introduced: List[Finding] = field(default_factory=list)
    matched: List[Tuple[Finding, Finding]] = field(default_factory=list)
    
    @property
    def matched_areas(self) -> List[Optional[str]]:
        return [before.area for before, _ in self.matched]


def match_findings(
    before_findings: Sequence[Finding],
    after_findings: Sequence[Finding]
) -> FindingMatch:
    """
    Split two finding lists into resolved, introduced and matched sets.
    
    When an area occurs more than once in the same list, its first
    occurrence is paired and later ones are dropped. Duplicates of an
    area without a counterpart are all kept as resolved/introduced.
    
    Args:
        before_findings: Findings of the earlier analysis
        after_findings: Findings of the later analysis
        
    Returns:
        FindingMatch with the three views, in input order
    """
    first_after = {}
    for finding in after_findings:
        first_after.setdefault(finding.area, finding)
    before_areas = {finding.area for finding in before_findings}
    
    result = FindingMatch()
    paired = set()
    duplicates = []
    
    for before in before_findings:
        if before.area not in first_after:
            result.resolved.append(before)
        elif before.area in paired:
            duplicates.append(before.area)
        else:
            paired.add(before.area)
            result.matched.append((before, first_after[before.area]))
    
    for after in after_findings:
        if after.area not in before_areas:
            result.introduced.append(after)
        elif after is not first_after[after.area]:
            duplicates.append(after.area)
    
    if duplicates:
        logger.warning(
            "Duplicate finding areas ignored",
            dropped=len(duplicates),
            areas=sorted({str(area) for area in duplicates})
        )
    
    logger.debug(
        "Findings matched",
        resolved=len(result.resolved),
        introduced=len(result.introduced),
        matched=len(result.matched)
    )
    
    return result
