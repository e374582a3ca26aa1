# Re-export all models for convenient imports
from app.models.user import User, UserRole, UserDocument, UserDocumentType, ADMIN_ROLES
from app.models.organization import (
    Department,
    Program,
    ProgramLevel,
    Student,
    StudentEnrollment,
    EnrollmentStatus,
    AcademicStatus,
    FeesStatus,
    Faculty,
    Designation,
    EmploymentStatus,
    EmploymentType,
)
from app.models.academic import (
    Course,
    CourseLevel,
    CourseStatus,
    Semester,
    Weekday,
    course_instructors,
    Exam,
    ExamType,
    ExamStatus,
    ExamResult,
    ResultStatus,
    Attendance,
    AttendanceStatus,
    VerificationMethod,
    Timetable,
    TimetableStatus,
    TimetableSlot,
    SlotType,
    TimetableConflict,
    ConflictType,
)
from app.models.admission import (
    Admission,
    AdmissionDocument,
    AdmissionDocumentType,
    AdmissionStatusHistory,
    ApplicationStatus,
    Gender,
)
from app.models.announcement import (
    Announcement,
    AnnouncementAcknowledgement,
    AnnouncementCategory,
    AnnouncementPriority,
    Audience,
)
from app.models.forum import (
    Forum,
    ForumTopic,
    ForumReply,
    ForumTopicLike,
    ForumCategory,
    ForumAccessLevel,
)

__all__ = [
    # User
    "User",
    "UserRole",
    "UserDocument",
    "UserDocumentType",
    "ADMIN_ROLES",
    # Organization
    "Department",
    "Program",
    "ProgramLevel",
    "Student",
    "StudentEnrollment",
    "EnrollmentStatus",
    "AcademicStatus",
    "FeesStatus",
    "Faculty",
    "Designation",
    "EmploymentStatus",
    "EmploymentType",
    # Academic
    "Course",
    "CourseLevel",
    "CourseStatus",
    "Semester",
    "Weekday",
    "course_instructors",
    "Exam",
    "ExamType",
    "ExamStatus",
    "ExamResult",
    "ResultStatus",
    "Attendance",
    "AttendanceStatus",
    "VerificationMethod",
    "Timetable",
    "TimetableStatus",
    "TimetableSlot",
    "SlotType",
    "TimetableConflict",
    "ConflictType",
    # Admissions
    "Admission",
    "AdmissionDocument",
    "AdmissionDocumentType",
    "AdmissionStatusHistory",
    "ApplicationStatus",
    "Gender",
    # Announcements
    "Announcement",
    "AnnouncementAcknowledgement",
    "AnnouncementCategory",
    "AnnouncementPriority",
    "Audience",
    # Forums
    "Forum",
    "ForumTopic",
    "ForumReply",
    "ForumTopicLike",
    "ForumCategory",
    "ForumAccessLevel",
]
