# API endpoints
from . import (
    auth, users, departments, programs, students, faculty, courses, exams, attendance,
    timetables, admissions, announcements, forums, dashboard, analytics, health,
)

__all__ = [
    "auth", "users", "departments", "programs", "students", "faculty", "courses", "exams",
    "attendance", "timetables", "admissions", "announcements", "forums", "dashboard",
    "analytics", "health",
]
