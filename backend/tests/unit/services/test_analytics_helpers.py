"""
Unit Tests for the analytics folding helpers and CSV export
"""
from app.models.academic import AttendanceStatus
from app.services.analytics_service import (
    PERFORMANCE_RANGES,
    export_to_csv,
    label,
    performance_range,
    status_counts,
    status_summary,
    with_percentages,
)


class TestLabels:

    def test_enum_label(self):
        assert label(AttendanceStatus.PRESENT) == "present"

    def test_missing_reference_is_blank(self):
        assert label(None) == ""

    def test_performance_buckets(self):
        assert performance_range(39.99) == PERFORMANCE_RANGES[0]
        assert performance_range(40) == "40% - 60%"
        assert performance_range(79.99) == "60% - 80%"
        assert performance_range(80) == "Above 80%"


class TestStatusFolding:

    def test_every_status_present(self):
        counts = status_counts([(AttendanceStatus.PRESENT, 3), ("absent", 1)])

        assert counts == {"present": 3, "absent": 1, "late": 0, "excused": 0}

    def test_summary_percentages(self):
        summary = status_summary({"present": 3, "absent": 1, "late": 0, "excused": 0})

        assert summary["total"] == 4
        assert summary["present_percentage"] == 75.0
        assert summary["late_percentage"] == 0.0

    def test_with_percentages_empty_total(self):
        rows = with_percentages({"A": 0, "B": 0}, key="grade")

        assert rows == [
            {"grade": "A", "count": 0, "percentage": 0.0},
            {"grade": "B", "count": 0, "percentage": 0.0},
        ]


class TestCsvExport:

    def test_header_and_blank_nulls(self):
        export = {
            "fields": ["student_id", "name", "department"],
            "data": [{"student_id": "STU1", "name": "Asha", "department": None, "extra": "x"}],
        }

        lines = export_to_csv(export).splitlines()

        assert lines[0] == "student_id,name,department"
        assert lines[1] == "STU1,Asha,"

    def test_no_rows(self):
        assert export_to_csv({"fields": ["a", "b"], "data": []}).strip() == "a,b"
