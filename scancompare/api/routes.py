"""
API routes for ScanCompare.

Defines all REST API endpoints for storing scans and comparing them.
"""

from typing import List
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Request, Query
from fastapi.responses import HTMLResponse, PlainTextResponse

from scancompare.config import settings
from scancompare.api.middleware import limiter
from scancompare.models.schemas import (
    Scan,
    ScanResult,
    CompareScansRequest,
    CompareResultsRequest,
    ComparisonResult,
    ComparisonResponse,
    ComparableScansResponse,
    HealthResponse,
    ErrorResponse,
    ReportFormat
)
from scancompare.services.comparison_engine import comparison_engine, MissingAnalysisError
from scancompare.services.narrative import narrative_generator
from scancompare.services.report_generator import get_report_generator
from scancompare.services.scan_store import scan_store, ScanNotFoundError
from scancompare.utils.logger import bind_comparison_context, get_logger

logger = get_logger("routes")

router = APIRouter()


def get_scan_or_404(scan_id: str) -> Scan:
    """Look up a scan, raising 404 if it is unknown."""
    try:
        return scan_store.get_scan(scan_id)
    except ScanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def check_finding_limit(result: ScanResult) -> None:
    """Reject results with more findings than the configured limit."""
    if result.findings is not None and len(result.findings) > settings.max_findings_per_scan:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Too many findings in result {result.id}: {len(result.findings)} "
                f"(max {settings.max_findings_per_scan})"
            )
        )


def compare_stored_scans(body: CompareScansRequest) -> ComparisonResponse:
    """
    Compare two stored scans.

    Both scans must exist, be different, share type and body part and
    carry an analysis result.
    """
    if body.before_scan_id == body.after_scan_id:
        raise HTTPException(status_code=400, detail="Cannot compare a scan with itself")

    before_scan = get_scan_or_404(body.before_scan_id)
    after_scan = get_scan_or_404(body.after_scan_id)

    if before_scan.type != after_scan.type or before_scan.body_part != after_scan.body_part:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Scans are not comparable: {before_scan.type.value}/{before_scan.body_part} "
                f"vs {after_scan.type.value}/{after_scan.body_part}"
            )
        )

    missing = {
        label: ["result"]
        for label, scan in (("before", before_scan), ("after", after_scan))
        if scan.result is None
    }
    if missing:
        raise MissingAnalysisError(
            "Both scans must be uploaded and analyzed first",
            missing=missing
        )

    check_finding_limit(before_scan.result)
    check_finding_limit(after_scan.result)

    comparison_id = str(uuid4())
    bind_comparison_context(
        comparison_id,
        before_scan_id=before_scan.id,
        after_scan_id=after_scan.id
    )

    result = comparison_engine.compare(
        before_scan.result,
        after_scan.result,
        scan_type=before_scan.type.value,
        body_part=before_scan.body_part
    )

    text_report = narrative_generator.render_text_report(
        result,
        before_scan.result.severity,
        after_scan.result.severity,
        scan_type=before_scan.type.value,
        body_part=before_scan.body_part
    )

    return ComparisonResponse(
        comparison_id=comparison_id,
        before_scan_id=before_scan.id,
        after_scan_id=after_scan.id,
        scan_type=before_scan.type,
        body_part=before_scan.body_part,
        result=result,
        text_report=text_report
    )


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """
    Check if the service is healthy and running.

    Returns basic health status and version information.
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version
    )


# =============================================================================
# Scans
# =============================================================================

@router.post(
    "/scans",
    response_model=Scan,
    status_code=201,
    tags=["Scans"],
    summary="Register a scan"
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_scan(request: Request, scan: Scan):
    """
    Register a scan, optionally together with its analysis result.

    A scan submitted with a result is stored as analyzed.
    """
    if scan.result is not None:
        check_finding_limit(scan.result)
    return scan_store.add_scan(scan)


@router.get(
    "/scans",
    response_model=List[Scan],
    tags=["Scans"],
    summary="List scans"
)
async def list_scans():
    """List all stored scans, oldest first."""
    return scan_store.list_scans()


@router.get(
    "/scans/{scan_id}",
    response_model=Scan,
    tags=["Scans"],
    summary="Get a scan",
    responses={404: {"model": ErrorResponse, "description": "Scan not found"}}
)
async def get_scan(scan_id: str):
    """Get a stored scan and its result."""
    return get_scan_or_404(scan_id)


@router.put(
    "/scans/{scan_id}/result",
    response_model=Scan,
    tags=["Scans"],
    summary="Attach an analysis result",
    responses={404: {"model": ErrorResponse, "description": "Scan not found"}}
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def attach_result(request: Request, scan_id: str, result: ScanResult):
    """Attach a completed analysis result to a scan."""
    check_finding_limit(result)
    try:
        return scan_store.attach_result(scan_id, result)
    except ScanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/scans/{scan_id}/comparable",
    response_model=ComparableScansResponse,
    tags=["Scans"],
    summary="List scans comparable with a scan",
    responses={404: {"model": ErrorResponse, "description": "Scan not found"}}
)
async def comparable_scans(scan_id: str):
    """
    List candidate scans for comparison.

    Candidates share the scan's type and body part and have been
    analyzed or reviewed.
    """
    try:
        candidates = scan_store.find_comparable(scan_id)
    except ScanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ComparableScansResponse(scan_id=scan_id, candidates=candidates)


# =============================================================================
# Comparison
# =============================================================================

@router.post(
    "/compare",
    response_model=ComparisonResponse,
    tags=["Comparison"],
    summary="Compare two stored scans",
    responses={
        400: {"model": ErrorResponse, "description": "Scans not comparable"},
        404: {"model": ErrorResponse, "description": "Scan not found"},
        422: {"model": ErrorResponse, "description": "Scan not analyzed"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def compare_scans(request: Request, body: CompareScansRequest):
    """
    Compare a before and an after scan of the same type and body part.

    Returns the structured delta:
    - Resolved, new and changed findings
    - Overall change and percentage
    - Summary, recommendations and clinical insight
    - Plain-text report
    """
    comparison = compare_stored_scans(body)

    logger.info(
        "Scans compared",
        overall_change=comparison.result.overall_change.value
    )

    return comparison


@router.post(
    "/compare/results",
    response_model=ComparisonResult,
    tags=["Comparison"],
    summary="Compare two analysis results",
    responses={422: {"model": ErrorResponse, "description": "Incomplete analysis"}}
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def compare_results(request: Request, body: CompareResultsRequest):
    """
    Compare two analysis results supplied in the request body.

    Useful when results come from outside the scan store.
    """
    check_finding_limit(body.before)
    check_finding_limit(body.after)

    return comparison_engine.compare(
        body.before,
        body.after,
        scan_type=body.scan_type.value if body.scan_type else None,
        body_part=body.body_part
    )


@router.post(
    "/compare/report",
    tags=["Comparison"],
    summary="Render a comparison report",
    response_class=HTMLResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Scans not comparable"},
        404: {"model": ErrorResponse, "description": "Scan not found"},
        422: {"model": ErrorResponse, "description": "Scan not analyzed"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def comparison_report(
    request: Request,
    body: CompareScansRequest,
    format: ReportFormat = Query(default=ReportFormat.HTML, description="Report format")
):
    """
    Render a comparison of two stored scans as HTML or plain text.
    """
    comparison = compare_stored_scans(body)

    if format == ReportFormat.TEXT:
        return PlainTextResponse(comparison.text_report)

    html_content = get_report_generator().generate_html(comparison)
    return HTMLResponse(html_content)
