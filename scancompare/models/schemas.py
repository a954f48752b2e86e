"""
Pydantic schemas for ScanCompare.

Defines the scan/analysis data model, the comparison output and the
request/response models for all API endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, List
from uuid import uuid4

from pydantic import BaseModel, Field, ConfigDict, field_validator

from scancompare.core.severity import SeverityLevel, coerce_severity


# =============================================================================
# Enums
# =============================================================================

class ScanType(str, Enum):
    """Imaging modalities."""
    XRAY = "xray"
    CT = "ct"
    MRI = "mri"
    ULTRASOUND = "ultrasound"


class ScanStatus(str, Enum):
    """Lifecycle of an uploaded scan."""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    ANALYZED = "analyzed"
    REVIEWED = "reviewed"


class ChangeDirection(str, Enum):
    """Three-way verdict for a finding or a whole comparison."""
    IMPROVED = "improved"
    WORSENED = "worsened"
    STABLE = "stable"


class ReportFormat(str, Enum):
    """Rendered comparison report formats."""
    TEXT = "text"
    HTML = "html"


# =============================================================================
# Analysis Data
# =============================================================================

class Finding(BaseModel):
    """A single localized observation produced by scan analysis."""
    
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Finding identifier"
    )
    area: Optional[str] = Field(
        default=None,
        description="Anatomical area label, used as the matching key"
    )
    description: str = Field(default="", description="Finding description")
    severity: SeverityLevel = Field(
        default=SeverityLevel.NORMAL,
        description="Severity of this finding"
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Model confidence for this finding"
    )
    
    model_config = ConfigDict(frozen=True, from_attributes=True)
    
    @field_validator("severity", mode="before")
    @classmethod
    def _default_severity(cls, value: Any) -> SeverityLevel:
        return coerce_severity(value)


class ScanResult(BaseModel):
    """Output of a completed AI analysis of one scan."""
    
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Result identifier"
    )
    scan_id: str = Field(description="Scan this result belongs to")
    findings: Optional[List[Finding]] = Field(
        default=None,
        description="Findings; None when the analysis has not completed"
    )
    severity: Optional[SeverityLevel] = Field(
        default=None,
        description="Overall severity; None when the analysis has not completed"
    )
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    abnormalities_detected: bool = Field(default=False)
    triage_priority: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Urgency score, independent of the comparison score"
    )
    ai_model: str = Field(default="unknown", description="Model that produced the result")
    heatmap_image: Optional[str] = Field(default=None)
    raw_analysis: Optional[str] = Field(default=None)
    report_id: Optional[str] = Field(default=None)
    processed_at: Optional[datetime] = Field(default=None)
    
    model_config = ConfigDict(frozen=True, from_attributes=True)
    
    @field_validator("severity", mode="before")
    @classmethod
    def _default_severity(cls, value: Any) -> Optional[SeverityLevel]:
        if value is None:
            return None
        return coerce_severity(value)

    @property
    def is_complete(self) -> bool:
        """True once both findings and overall severity are present."""
        return self.findings is not None and self.severity is not None


class Scan(BaseModel):
    """An uploaded scan and, once analyzed, its result."""
    
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str = Field(description="Uploading user")
    patient_id: Optional[str] = Field(default=None)
    type: ScanType = Field(description="Imaging modality")
    body_part: str = Field(description="Imaged body part")
    status: ScanStatus = Field(default=ScanStatus.UPLOADED)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    result: Optional[ScanResult] = Field(default=None)

    model_config = ConfigDict(frozen=True, from_attributes=True)


# =============================================================================
# Comparison Output
# =============================================================================

class ChangedIssue(BaseModel):
    """A finding present in both scans and how it changed."""
    
    area: Optional[str] = Field(description="Shared anatomical area")
    before: Finding
    after: Finding
    change: ChangeDirection
    change_percentage: float = Field(
        ge=0.0,
        description="Absolute confidence drift in percent"
    )
    
    model_config = ConfigDict(from_attributes=True)


class ComparisonResult(BaseModel):
    """Structured delta between a before and an after analysis."""
    
    overall_change: ChangeDirection
    change_percentage: float = Field(
        ge=0.0,
        description="Magnitude of the improvement score in percent (unclamped)"
    )
    resolved_issues: List[Finding] = Field(default=[])
    new_issues: List[Finding] = Field(default=[])
    changed_issues: List[ChangedIssue] = Field(default=[])
    summary: str
    recommendations: List[str] = Field(default=[])
    clinical_insight: str = Field(
        default="",
        description="Templated comparative report in markdown"
    )
    
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Requests
# =============================================================================

class CompareScansRequest(BaseModel):
    """Compare two stored scans by id."""
    
    before_scan_id: str = Field(description="Earlier scan")
    after_scan_id: str = Field(description="Later scan")


class CompareResultsRequest(BaseModel):
    """Compare two analysis results supplied inline."""
    
    before: ScanResult
    after: ScanResult
    scan_type: Optional[ScanType] = Field(default=None)
    body_part: Optional[str] = Field(default=None)


# =============================================================================
# Responses
# =============================================================================

class ComparisonResponse(BaseModel):
    """Comparison of two stored scans."""
    
    comparison_id: str = Field(default_factory=lambda: str(uuid4()))
    before_scan_id: str
    after_scan_id: str
    scan_type: ScanType
    body_part: str
    compared_at: datetime = Field(default_factory=datetime.utcnow)
    result: ComparisonResult
    text_report: str = Field(description="Plain-text comparison output")


class ComparableScansResponse(BaseModel):
    """Scans that can be compared with a given scan."""
    
    scan_id: str
    candidates: List[Scan] = Field(default=[])


class HealthResponse(BaseModel):
    """Health check response."""
    
    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    
    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Standard error response."""
    
    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    
    model_config = ConfigDict(from_attributes=True)
