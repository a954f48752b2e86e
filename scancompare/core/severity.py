"""
Severity scale for ScanCompare.

Total order over the five clinical severity levels. Ranks are only
ever subtracted from each other (after - before), never displayed.
"""

from enum import Enum
from typing import Any, Union

import structlog

# Imported by config, so the logger is taken from structlog directly
logger = structlog.get_logger("severity")


class SeverityLevel(str, Enum):
    """Ordinal clinical urgency of a finding or a whole scan."""
    NORMAL = "normal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_RANKS = {
    SeverityLevel.NORMAL: 0,
    SeverityLevel.LOW: 1,
    SeverityLevel.MEDIUM: 2,
    SeverityLevel.HIGH: 3,
    SeverityLevel.CRITICAL: 4,
}


def coerce_severity(value: Any) -> SeverityLevel:
    """
    Convert a raw severity value to a SeverityLevel.
    
    Old records may omit severity or carry labels from retired models,
    so anything unrecognised falls back to NORMAL instead of failing.
    
    Args:
        value: SeverityLevel, string label or None
        
    Returns:
        Matching SeverityLevel, NORMAL when unknown
    """
    if isinstance(value, SeverityLevel):
        return value
    if isinstance(value, str):
        try:
            return SeverityLevel(value.strip().lower())
        except ValueError:
            pass
    logger.warning("Unknown severity defaulted to normal", value=repr(value))
    return SeverityLevel.NORMAL


def rank(level: Union[SeverityLevel, str, None]) -> int:
    """Integer rank 0..4 of a severity level (unknown -> 0)."""
    return SEVERITY_RANKS[coerce_severity(level)]
