from app.services.storage_service import StorageService, storage_service
from app.services.email_service import EmailService, email_service
from app.services.profile_service import ProfileService

# Academic workflows
from app.services.course_service import CourseService
from app.services.exam_service import ExamService
from app.services.attendance_service import AttendanceService
from app.services.analytics_service import AnalyticsService

__all__ = [
    # Core services
    "StorageService",
    "storage_service",
    "EmailService",
    "email_service",
    "ProfileService",
    # Academic services
    "CourseService",
    "ExamService",
    "AttendanceService",
    "AnalyticsService",
]
