from fastapi import APIRouter
from app.api.v1.endpoints import (
    auth, users, departments, programs, students, faculty, courses, exams, attendance,
    timetables, admissions, announcements, forums, dashboard, analytics,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["User Management"])
api_router.include_router(departments.router, prefix="/departments", tags=["Departments"])
api_router.include_router(programs.router, prefix="/programs", tags=["Programs"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(faculty.router, prefix="/faculty", tags=["Faculty"])
api_router.include_router(courses.router, prefix="/courses", tags=["Courses"])
api_router.include_router(exams.router, prefix="/exams", tags=["Exams"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(timetables.router, prefix="/timetables", tags=["Timetables"])
api_router.include_router(admissions.router, prefix="/admissions", tags=["Admissions"])
api_router.include_router(announcements.router, prefix="/announcements", tags=["Announcements"])
api_router.include_router(forums.router, prefix="/forums", tags=["Forums"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
