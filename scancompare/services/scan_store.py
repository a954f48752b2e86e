"""
In-memory scan store for ScanCompare.

Holds uploaded scans and their analysis results. Scans are frozen
models, so callers can share them freely; the comparison engine never
writes here.
"""

import threading
from datetime import datetime
from typing import Dict, List

from scancompare.models.schemas import (
    Finding,
    Scan,
    ScanResult,
    ScanStatus,
    ScanType
)
from scancompare.core.severity import SeverityLevel
from scancompare.utils.logger import get_logger

logger = get_logger("scan_store")

COMPARABLE_STATUSES = (ScanStatus.ANALYZED, ScanStatus.REVIEWED)


class ScanNotFoundError(KeyError):
    """Raised when a scan id is not in the store."""

    def __init__(self, scan_id: str):
        super().__init__(scan_id)
        self.scan_id = scan_id

    def __str__(self) -> str:
        return f"Scan not found: {self.scan_id}"


class ScanStore:
    """
    Thread-safe in-memory collection of scans.

    Scans are keyed by id. A scan that arrives with a complete result
    but an "uploaded" status is promoted to "analyzed".
    """

    def __init__(self):
        self._scans: Dict[str, Scan] = {}
        self._lock = threading.Lock()

    def add_scan(self, scan: Scan) -> Scan:
        """
        Add or replace a scan.

        Args:
            scan: Scan to store

        Returns:
            The stored scan
        """
        if scan.result is not None and scan.result.is_complete and scan.status == ScanStatus.UPLOADED:
            scan = scan.model_copy(update={"status": ScanStatus.ANALYZED})

        with self._lock:
            self._scans[scan.id] = scan

        logger.info(
            "Scan stored",
            scan_id=scan.id,
            scan_type=scan.type.value,
            body_part=scan.body_part,
            status=scan.status.value
        )
        return scan

    def get_scan(self, scan_id: str) -> Scan:
        """Get a scan by id, raising ScanNotFoundError if unknown."""
        with self._lock:
            scan = self._scans.get(scan_id)
        if scan is None:
            raise ScanNotFoundError(scan_id)
        return scan

    def list_scans(self) -> List[Scan]:
        """All scans, oldest upload first."""
        with self._lock:
            scans = list(self._scans.values())
        return sorted(scans, key=lambda s: s.uploaded_at)

    def attach_result(self, scan_id: str, result: ScanResult) -> Scan:
        """
        Attach an analysis result and mark the scan analyzed.

        A reviewed scan keeps its status. A result without findings or
        severity leaves the scan uploaded, so it is not offered for
        comparison.
        """
        with self._lock:
            scan = self._scans.get(scan_id)
            if scan is None:
                raise ScanNotFoundError(scan_id)
            if not result.is_complete:
                status = ScanStatus.UPLOADED
            elif scan.status == ScanStatus.REVIEWED:
                status = scan.status
            else:
                status = ScanStatus.ANALYZED
            scan = scan.model_copy(update={"result": result, "status": status})
            self._scans[scan_id] = scan

        logger.info(
            "Result attached",
            scan_id=scan_id,
            result_id=result.id,
            status=status.value,
            severity=result.severity.value if result.severity else None
        )
        return scan

    def find_comparable(self, scan_id: str) -> List[Scan]:
        """
        Scans that can be compared with the given one.

        Same type and body part, analyzed or reviewed with a complete
        result, excluding the scan itself, oldest first.
        """
        scan = self.get_scan(scan_id)
        return [
            candidate for candidate in self.list_scans()
            if candidate.id != scan.id
            and candidate.type == scan.type
            and candidate.body_part == scan.body_part
            and candidate.status in COMPARABLE_STATUSES
            and candidate.result is not None
            and candidate.result.is_complete
        ]

    def remove_scan(self, scan_id: str) -> bool:
        """Remove a scan. Returns False if it was not stored."""
        with self._lock:
            removed = self._scans.pop(scan_id, None)
        if removed is not None:
            logger.info("Scan removed", scan_id=scan_id)
            return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._scans.clear()


def seed_demo_data(store: "ScanStore") -> None:
    """Load a small set of demo scans (debug mode only)."""
    demo_scans = [
        Scan(
            id="scan-1",
            user_id="user-2",
            type=ScanType.XRAY,
            body_part="chest",
            status=ScanStatus.ANALYZED,
            uploaded_at=datetime(2023, 8, 15, 10, 30),
            result=ScanResult(
                id="result-1",
                scan_id="scan-1",
                abnormalities_detected=True,
                confidence_score=0.92,
                ai_model="ResNet-50",
                findings=[
                    Finding(
                        id="finding-1",
                        area="Upper right lobe",
                        description="Potential nodule detected in upper right lobe",
                        confidence=0.89,
                        severity=SeverityLevel.MEDIUM
                    )
                ],
                severity=SeverityLevel.MEDIUM,
                triage_priority=7,
                processed_at=datetime(2023, 8, 15, 10, 35),
                report_id="report-1"
            )
        ),
        Scan(
            id="scan-6",
            user_id="user-2",
            type=ScanType.XRAY,
            body_part="chest",
            status=ScanStatus.ANALYZED,
            uploaded_at=datetime(2024, 2, 10, 9, 0),
            result=ScanResult(
                id="result-6",
                scan_id="scan-6",
                abnormalities_detected=False,
                confidence_score=0.94,
                ai_model="ResNet-50",
                findings=[],
                severity=SeverityLevel.NORMAL,
                triage_priority=2,
                processed_at=datetime(2024, 2, 10, 9, 5)
            )
        ),
        Scan(
            id="scan-3",
            user_id="user-2",
            type=ScanType.MRI,
            body_part="knee",
            status=ScanStatus.ANALYZED,
            uploaded_at=datetime(2023, 10, 20, 8, 15),
            result=ScanResult(
                id="result-3",
                scan_id="scan-3",
                abnormalities_detected=True,
                confidence_score=0.85,
                ai_model="ResNet-50",
                findings=[
                    Finding(
                        id="finding-2",
                        area="Medial meniscus",
                        description="Partial tear in medial meniscus",
                        confidence=0.83,
                        severity=SeverityLevel.MEDIUM
                    )
                ],
                severity=SeverityLevel.MEDIUM,
                triage_priority=6,
                processed_at=datetime(2023, 10, 20, 8, 20),
                report_id="report-3"
            )
        ),
        Scan(
            id="scan-4",
            user_id="user-2",
            patient_id="user-2",
            type=ScanType.XRAY,
            body_part="spine",
            uploaded_at=datetime(2023, 11, 12, 11, 20),
        ),
    ]

    for scan in demo_scans:
        store.add_scan(scan)

    logger.info("Demo scans loaded", count=len(demo_scans))


# Singleton instance
scan_store = ScanStore()
