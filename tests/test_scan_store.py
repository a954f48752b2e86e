"""
Tests for the in-memory scan store.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from scancompare.models.schemas import ScanResult, ScanStatus, ScanType, Scan
from scancompare.services.scan_store import ScanNotFoundError, ScanStore, seed_demo_data


def make_scan(scan_id, scan_type=ScanType.MRI, body_part="knee", analyzed=True, day=1):
    result = None
    if analyzed:
        result = ScanResult(id=f"result-{scan_id}", scan_id=scan_id, findings=[], severity="normal")
    return Scan(
        id=scan_id,
        user_id="user-1",
        type=scan_type,
        body_part=body_part,
        uploaded_at=datetime(2024, 1, day),
        result=result
    )


@pytest.fixture
def store():
    return ScanStore()


class TestScanStore:
    """Test storing and retrieving scans."""

    def test_add_with_result_marks_analyzed(self, store):
        """Scans submitted with a result are analyzed."""
        stored = store.add_scan(make_scan("s1"))
        assert stored.status == ScanStatus.ANALYZED

    def test_add_without_result_stays_uploaded(self, store):
        """Scans without a result keep the uploaded status."""
        stored = store.add_scan(make_scan("s1", analyzed=False))
        assert stored.status == ScanStatus.UPLOADED

    def test_get_unknown_scan(self, store):
        """Unknown ids raise ScanNotFoundError."""
        with pytest.raises(ScanNotFoundError):
            store.get_scan("missing")

    def test_attach_result(self, store):
        """Attaching a result marks the scan analyzed."""
        store.add_scan(make_scan("s1", analyzed=False))
        result = ScanResult(id="r1", scan_id="s1", findings=[], severity="low")

        scan = store.attach_result("s1", result)

        assert scan.status == ScanStatus.ANALYZED
        assert store.get_scan("s1").result.id == "r1"

    def test_attach_result_keeps_reviewed(self, store):
        """Reviewed scans stay reviewed when the result is replaced."""
        scan = make_scan("s1").model_copy(update={"status": ScanStatus.REVIEWED})
        store.add_scan(scan)

        updated = store.attach_result("s1", ScanResult(id="r2", scan_id="s1", findings=[], severity="low"))

        assert updated.status == ScanStatus.REVIEWED

    def test_attach_incomplete_result_stays_uploaded(self, store):
        """A result without severity does not promote the scan."""
        store.add_scan(make_scan("s1", analyzed=False))

        scan = store.attach_result("s1", ScanResult(id="r1", scan_id="s1", findings=[]))

        assert scan.status == ScanStatus.UPLOADED
        assert scan.result.id == "r1"

    def test_add_incomplete_result_stays_uploaded(self, store):
        """Scans submitted with an unfinished result keep the uploaded status."""
        scan = make_scan("s1", analyzed=False).model_copy(
            update={"result": ScanResult(id="r1", scan_id="s1", severity="low")}
        )

        assert store.add_scan(scan).status == ScanStatus.UPLOADED

    def test_stored_scans_are_frozen(self, store):
        """Callers cannot change a stored scan in place."""
        store.add_scan(make_scan("s1"))
        scan = store.get_scan("s1")

        with pytest.raises(ValidationError):
            scan.status = ScanStatus.REVIEWED

        assert store.get_scan("s1").status == ScanStatus.ANALYZED

    def test_attach_result_unknown_scan(self, store):
        """Attaching to an unknown scan fails."""
        with pytest.raises(ScanNotFoundError):
            store.attach_result("missing", ScanResult(scan_id="missing"))

    def test_remove_scan(self, store):
        """Removed scans are gone."""
        store.add_scan(make_scan("s1"))

        assert store.remove_scan("s1") is True
        assert store.remove_scan("s1") is False
        assert store.list_scans() == []


class TestComparableScans:
    """Test candidate filtering."""

    def test_filters_by_type_body_part_and_status(self, store):
        """Only analyzed scans of the same type and body part qualify."""
        store.add_scan(make_scan("target", day=1))
        store.add_scan(make_scan("later", day=5))
        store.add_scan(make_scan("earlier", day=3))
        store.add_scan(make_scan("other-part", body_part="shoulder"))
        store.add_scan(make_scan("other-type", scan_type=ScanType.CT))
        store.add_scan(make_scan("pending", analyzed=False))

        candidates = store.find_comparable("target")

        assert [scan.id for scan in candidates] == ["earlier", "later"]

    def test_incomplete_results_excluded(self, store):
        """Scans whose result lacks findings or severity are not candidates."""
        store.add_scan(make_scan("target"))
        store.add_scan(make_scan("pending", analyzed=False))
        store.attach_result("pending", ScanResult(id="r1", scan_id="pending", severity="low"))

        assert store.find_comparable("target") == []

    def test_unknown_scan(self, store):
        """Candidates for an unknown scan raise ScanNotFoundError."""
        with pytest.raises(ScanNotFoundError):
            store.find_comparable("missing")

    def test_demo_data(self, store):
        """Demo data includes a comparable chest x-ray pair."""
        seed_demo_data(store)

        assert [scan.id for scan in store.find_comparable("scan-1")] == ["scan-6"]
