"""
Custom Exceptions for UniManage
===============================

Every error a handler or service raises on purpose belongs to this taxonomy.
The exception handler registered in main.py renders them into the standard
failure envelope with the status code carried by the class.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    if not exam:
        raise NotFoundError("Exam", exam_id)

    if marks_obtained > exam.total_marks:
        raise ValidationError(
            f"Marks cannot exceed total marks of {exam.total_marks}",
            field="marks_obtained",
        )
"""

from typing import Optional, Any, Dict


class UniManageError(Exception):
    """Base exception for all UniManage errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(UniManageError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidTokenError(AuthenticationError):
    """Email verification / password reset token is invalid or expired"""

    status_code = 400

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


class AuthorizationError(UniManageError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", action: Optional[str] = None):
        details = {"action": action} if action else {}
        super().__init__(message, code="NOT_AUTHORIZED", details=details)


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(UniManageError):
    """Referenced entity does not exist"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any = None, message: Optional[str] = None):
        if message is None:
            if resource_id is None:
                message = f"{resource_type} not found"
            else:
                message = f"{resource_type} not found with id of {resource_id}"
        super().__init__(
            message,
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(UniManageError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


# ============================================
# Conflict Errors (uniqueness, scheduling)
# ============================================

class ConflictError(UniManageError):
    """Uniqueness violation or overlapping schedule; reported as a 400 with code CONFLICT"""

    status_code = 400

    def __init__(self, message: str, conflict_type: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if conflict_type:
            details["conflict_type"] = conflict_type
        super().__init__(message, code="CONFLICT", details=details)


class ScheduleConflictError(ConflictError):
    """Timetable slot overlaps an existing slot"""

    def __init__(self, message: str, conflict_type: str, slot_id: Optional[str] = None):
        super().__init__(message, conflict_type=conflict_type)
        self.code = "SCHEDULE_CONFLICT"
        if slot_id:
            self.details["conflicting_slot_id"] = slot_id


# ============================================
# Dependency Errors (email, storage)
# ============================================

class DependencyError(UniManageError):
    """External collaborator (email, storage) failed"""

    status_code = 503

    def __init__(self, message: str, dependency: str = "external"):
        super().__init__(message, code="DEPENDENCY_ERROR", details={"dependency": dependency})


class StorageError(DependencyError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, dependency="storage")
        self.code = "STORAGE_ERROR"


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: UniManageError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "message": error.message,
        "error": error.to_dict()
    }
