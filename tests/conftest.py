import os
from datetime import datetime, timezone
from types import SimpleNamespace

# cheap hashes for the test run; must be set before app.core.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.deps import get_clock, get_db
from app.core.security import hash_password
from app.db.base import Base
from app.main import app
from app.models.course import Course
from app.models.course_module import CourseModule
from app.models.department import Department
from app.models.enrollment import Enrollment
from app.models.user import User

TEST_DB_FILE = "test_module_timelines.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)

# fixed "now" for every request unless a test moves the clock
DEFAULT_NOW = datetime(2024, 1, 5, tzinfo=timezone.utc)

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data():
    """
    Seed a clean minimal dataset for each test:

    - departments "Assembly" and "Welding"
    - course "Line Safety" with modules 1..3 (in order)
    - admin, instructor, two Assembly students and one Welding student,
      all students enrolled in the course
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()

        assembly = Department(name="Assembly")
        welding = Department(name="Welding")
        db.add_all([assembly, welding])
        db.commit()

        admin = User(email="admin@example.com", full_name="Admin", role="admin", hashed_password=PASSWORD_HASH)
        instructor = User(
            email="instructor1@example.com",
            full_name="Instructor One",
            role="instructor",
            hashed_password=PASSWORD_HASH,
        )
        student1 = User(
            email="student1@example.com",
            full_name="Student One",
            role="student",
            department_id=assembly.id,
            hashed_password=PASSWORD_HASH,
        )
        student2 = User(
            email="student2@example.com",
            full_name="Student Two",
            role="student",
            department_id=assembly.id,
            hashed_password=PASSWORD_HASH,
        )
        student3 = User(
            email="student3@example.com",
            full_name="Student Three",
            role="student",
            department_id=welding.id,
            hashed_password=PASSWORD_HASH,
        )
        db.add_all([admin, instructor, student1, student2, student3])
        db.commit()

        course = Course(title="Line Safety", instructor_id=instructor.id)
        other_course = Course(title="Forklift Basics", instructor_id=instructor.id)
        db.add_all([course, other_course])
        db.commit()

        modules = [
            CourseModule(course_id=course.id, title=f"Module {i}", order=i) for i in (1, 2, 3)
        ]
        foreign_module = CourseModule(course_id=other_course.id, title="Forklift Intro", order=1)
        db.add_all(modules + [foreign_module])
        db.commit()

        for s in (student1, student2, student3):
            db.add(Enrollment(course_id=course.id, student_id=s.id))
        db.commit()

        ids = SimpleNamespace(
            assembly_id=assembly.id,
            welding_id=welding.id,
            admin_id=admin.id,
            instructor_id=instructor.id,
            student1_id=student1.id,
            student2_id=student2.id,
            student3_id=student3.id,
            course_id=course.id,
            other_course_id=other_course.id,
            module_ids=[m.id for m in modules],
            foreign_module_id=foreign_module.id,
        )
    finally:
        db.close()

    yield ids


@pytest.fixture()
def clock():
    """Mutable clock injected into every request via get_clock."""
    return SimpleNamespace(now=DEFAULT_NOW)


@pytest.fixture()
def client(clock):
    """Test client that uses the test DB session and the test clock."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock.now
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def db():
    """Direct session on the test database for service-level tests."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
