"""
Unit Tests for application numbering and status history
"""
from types import SimpleNamespace

from app.models.admission import ApplicationStatus
from app.services.admission_service import format_application_number, next_sequence, record_status


def make_admission(status=ApplicationStatus.DRAFT):
    return SimpleNamespace(
        id=None,
        application_number="24CS0001",
        application_status=status,
        submitted_at=None,
        status_history=[],
    )


class TestApplicationNumber:

    def test_format(self):
        assert format_application_number(2024, "CS", 7) == "24CS0007"

    def test_year_two_digits(self):
        assert format_application_number(2005, "ME", 123) == "05ME0123"

    def test_unknown_program(self):
        assert format_application_number(2024, None, 1) == "24UNK0001"

    def test_next_sequence_starts_at_one(self):
        assert next_sequence("24CS", []) == 1

    def test_next_sequence_follows_highest_issued(self):
        assert next_sequence("24CS", ["24CS0002", "24CS0007", "24CS0003"]) == 8

    def test_next_sequence_ignores_gaps_and_other_prefixes(self):
        issued = ["24CS0003", "24CSE0042", "23CS0099", None]

        assert next_sequence("24CS", issued) == 4


class TestRecordStatus:

    def test_first_entry_always_recorded(self):
        admission = make_admission()

        entry = record_status(admission, ApplicationStatus.DRAFT, remarks="Application created")

        assert entry is not None
        assert entry.remarks == "Application created"
        assert len(admission.status_history) == 1

    def test_unchanged_status_not_recorded(self):
        admission = make_admission()
        record_status(admission, ApplicationStatus.DRAFT)

        assert record_status(admission, ApplicationStatus.DRAFT) is None
        assert len(admission.status_history) == 1

    def test_transition_appends_history(self):
        admission = make_admission()
        record_status(admission, ApplicationStatus.DRAFT)
        entry = record_status(admission, "Under Review", updated_by_id="admin-1")

        assert admission.application_status == ApplicationStatus.UNDER_REVIEW
        assert entry.remarks == "Status changed to Under Review"
        assert entry.updated_by_id == "admin-1"
        assert [item.status for item in admission.status_history] == [
            ApplicationStatus.DRAFT, ApplicationStatus.UNDER_REVIEW,
        ]

    def test_submission_timestamp_set_once(self):
        admission = make_admission()
        record_status(admission, ApplicationStatus.SUBMITTED)
        submitted_at = admission.submitted_at

        record_status(admission, ApplicationStatus.UNDER_REVIEW)
        record_status(admission, ApplicationStatus.SUBMITTED)

        assert submitted_at is not None
        assert admission.submitted_at == submitted_at
