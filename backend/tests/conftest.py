"""
UniManage - Test Configuration and Fixtures
"""
import os
import tempfile
from datetime import date
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from faker import Faker

_TEST_DIR = tempfile.mkdtemp(prefix="unimanage-tests-")

# Set testing environment before the app reads its settings
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = f'sqlite+aiosqlite:///{_TEST_DIR}/test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['UPLOAD_PATH'] = f'{_TEST_DIR}/uploads'
os.environ['SMTP_HOST'] = ''

from app.main import app
from app.core.database import Base, get_db
from app.core.security import get_password_hash, create_access_token
from app.models.academic import (
    Attendance, AttendanceStatus, Course, CourseLevel, Exam, ExamResult, ExamType, ResultStatus, Semester,
)
from app.models.organization import Department, Program, ProgramLevel, Student, Faculty, Designation
from app.models.user import User, UserRole

fake = Faker()

TEST_PASSWORD = 'testpassword123'

test_engine = create_async_engine(os.environ['DATABASE_URL'], echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


def headers_for(user: User) -> dict:
    """Bearer header for a user, as issued at login"""
    token = create_access_token({
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    })
    return {'Authorization': f'Bearer {token}'}


async def make_user(db: AsyncSession, role: UserRole, **fields) -> User:
    user = User(
        email=fields.pop('email', None) or fake.unique.email(),
        name=fields.pop('name', None) or fake.name(),
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        is_active=True,
        is_verified=True,
        **fields
    )
    db.add(user)
    await db.flush()
    return user


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema and session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the test session"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def department(db_session: AsyncSession) -> Department:
    dept = Department(name='Computer Science', code='CS')
    db_session.add(dept)
    await db_session.commit()
    return dept


@pytest.fixture
async def program(db_session: AsyncSession, department: Department) -> Program:
    prog = Program(
        name='B.Tech Computer Science',
        code='BTCS',
        department_id=department.id,
        level=ProgramLevel.UNDERGRADUATE,
        duration_years=4,
        duration_semesters=8,
        total_credits=160,
    )
    db_session.add(prog)
    await db_session.commit()
    return prog


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    user = await make_user(db_session, UserRole.ADMIN)
    await db_session.commit()
    return user


@pytest.fixture
async def faculty_user(db_session: AsyncSession, department: Department) -> User:
    """Faculty account with its profile"""
    user = await make_user(db_session, UserRole.FACULTY, faculty_profile=Faculty(
        faculty_id=f'FAC{fake.unique.random_int(1000, 9999)}',
        designation=Designation.ASSISTANT_PROFESSOR,
        department_id=department.id,
    ))
    await db_session.commit()
    return user


@pytest.fixture
async def other_faculty_user(db_session: AsyncSession, department: Department) -> User:
    user = await make_user(db_session, UserRole.FACULTY, faculty_profile=Faculty(
        faculty_id=f'FAC{fake.unique.random_int(1000, 9999)}',
        designation=Designation.LECTURER,
        department_id=department.id,
    ))
    await db_session.commit()
    return user


@pytest.fixture
async def student_user(db_session: AsyncSession, department: Department, program: Program) -> User:
    """Student account with its profile"""
    user = await make_user(db_session, UserRole.STUDENT, student_profile=Student(
        student_id=f'STU{fake.unique.random_int(1000, 9999)}',
        department_id=department.id,
        program_id=program.id,
        semester=1,
        batch='2024',
        enrollment_date=date(2024, 8, 1),
    ))
    await db_session.commit()
    return user


@pytest.fixture
async def course(db_session: AsyncSession, department: Department, program: Program, faculty_user: User) -> Course:
    """Course taught by faculty_user"""
    item = Course(
        code='CS101',
        title='Introduction to Programming',
        department_id=department.id,
        program_id=program.id,
        main_instructor_id=faculty_user.faculty_profile.id,
        credits=4,
        level=CourseLevel.INTRODUCTORY,
        semester=Semester.FALL,
        year=2024,
        capacity=2,
        enrolled_students=0,
        schedule=[],
    )
    item.instructors = [faculty_user.faculty_profile]
    db_session.add(item)
    await db_session.commit()
    return item


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def faculty_headers(faculty_user: User) -> dict:
    return headers_for(faculty_user)


@pytest.fixture
def other_faculty_headers(other_faculty_user: User) -> dict:
    return headers_for(other_faculty_user)


@pytest.fixture
def student_headers(student_user: User) -> dict:
    return headers_for(student_user)


@pytest.fixture
def student_factory(db_session: AsyncSession, department: Department, program: Program):
    """Create extra enrolled-ready students on demand"""
    async def create(**fields) -> User:
        user = await make_user(db_session, UserRole.STUDENT, student_profile=Student(
            student_id=f'STU{fake.unique.random_int(1000, 9999)}',
            department_id=department.id,
            program_id=program.id,
            semester=1,
            batch=fields.pop('batch', '2024'),
            enrollment_date=date(2024, 8, 1),
        ), **fields)
        await db_session.commit()
        return user
    return create


@pytest.fixture
def auth_headers():
    return headers_for


@pytest.fixture
async def other_course(db_session: AsyncSession, department: Department, program: Program, other_faculty_user: User) -> Course:
    """Course taught by other_faculty_user only"""
    item = Course(
        code='CS201',
        title='Data Structures',
        department_id=department.id,
        program_id=program.id,
        main_instructor_id=other_faculty_user.faculty_profile.id,
        credits=4,
        level=CourseLevel.INTERMEDIATE,
        semester=Semester.FALL,
        year=2024,
        capacity=30,
        enrolled_students=0,
        schedule=[],
    )
    item.instructors = [other_faculty_user.faculty_profile]
    db_session.add(item)
    await db_session.commit()
    return item


@pytest.fixture
async def attendance_records(db_session: AsyncSession, course: Course, other_course: Course, faculty_user: User,
                             other_faculty_user: User, student_user: User, student_factory) -> dict:
    """
    CS101 (faculty_user): student_user present + absent, a classmate present.
    CS201 (other_faculty_user): student_user present.
    """
    classmate = await student_factory()

    def mark(item: Course, teacher: User, learner: User, day: date, status: AttendanceStatus) -> Attendance:
        return Attendance(
            course_id=item.id,
            student_id=learner.student_profile.id,
            faculty_id=teacher.faculty_profile.id,
            date=day,
            status=status,
            marked_by_id=teacher.id,
        )

    db_session.add_all([
        mark(course, faculty_user, student_user, date(2024, 9, 2), AttendanceStatus.PRESENT),
        mark(course, faculty_user, student_user, date(2024, 9, 3), AttendanceStatus.ABSENT),
        mark(course, faculty_user, classmate, date(2024, 9, 2), AttendanceStatus.PRESENT),
        mark(other_course, other_faculty_user, student_user, date(2024, 9, 2), AttendanceStatus.PRESENT),
    ])
    await db_session.commit()
    return {'classmate': classmate}


@pytest.fixture
async def exam_records(db_session: AsyncSession, course: Course, other_course: Course, student_user: User) -> dict:
    """student_user scores 82 in CS101 and 35 in CS201"""
    exams = {}
    for item, marks, grade, points, status in (
        (course, 82.0, 'A-', 3.7, ResultStatus.PASS),
        (other_course, 35.0, 'F', 0.0, ResultStatus.FAIL),
    ):
        exam = Exam(
            title=f'{item.code} Midterm',
            course_id=item.id,
            exam_type=ExamType.MIDTERM,
            total_marks=100,
            passing_marks=40,
            weightage=30,
            date=date(2024, 10, 1),
            start_time='10:00',
            end_time='12:00',
            duration=120,
        )
        db_session.add(exam)
        await db_session.flush()
        db_session.add(ExamResult(
            exam_id=exam.id,
            student_id=student_user.student_profile.id,
            course_id=item.id,
            marks_obtained=marks,
            percentage=marks,
            grade=grade,
            grade_points=points,
            status=status,
        ))
        exams[item.code] = exam
    await db_session.commit()
    return exams
