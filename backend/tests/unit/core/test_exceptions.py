"""
Unit Tests for the error taxonomy and the failure envelope
"""
import pytest

from app.core.exceptions import (
    UniManageError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ScheduleConflictError,
    DependencyError,
    error_response,
)


class TestStatusCodes:
    """Each error kind maps to one HTTP status"""

    @pytest.mark.parametrize("error, status", [
        (ValidationError("bad"), 400),
        (AuthenticationError(), 401),
        (AuthorizationError(), 403),
        (NotFoundError("Course", "abc"), 404),
        (ConflictError("dup"), 400),
        (ScheduleConflictError("overlap", conflict_type="Room"), 400),
        (DependencyError("down"), 503),
    ])
    def test_status_code(self, error, status):
        assert isinstance(error, UniManageError)
        assert error.status_code == status


class TestErrorDetails:

    def test_not_found_message_names_resource(self):
        error = NotFoundError("Course", "abc")

        assert error.message == "Course not found with id of abc"
        assert error.code == "COURSE_NOT_FOUND"

    def test_validation_error_records_field(self):
        assert ValidationError("too high", field="marks_obtained").details == {"field": "marks_obtained"}

    def test_schedule_conflict_details(self):
        error = ScheduleConflictError("overlap", conflict_type="Room", slot_id="slot-1")

        assert error.code == "SCHEDULE_CONFLICT"
        assert error.details["conflict_type"] == "Room"
        assert error.details["conflicting_slot_id"] == "slot-1"

    def test_error_response_envelope(self):
        body = error_response(ConflictError("Course with code CS101 already exists"))

        assert body["success"] is False
        assert body["message"] == "Course with code CS101 already exists"
        assert body["error"]["code"] == "CONFLICT"
