"""
Global fixtures for the school portal backend test suite.
"""
import random
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core import dependencies
from app.infrastructure.auth.models import RoleID
from app.infrastructure.cache.app_cache import AppCache, MemoryCacheBackend
from app.infrastructure.cache.class_scoped_cache import ExamVisibilityCache, SubjectAssignmentCache
from app.infrastructure.database.base import build_engine, create_tables, get_db
from app.infrastructure.database.models.school_models import (
    ClassSubjectMapping,
    Exam,
    ExamResult,
    ReportCard,
    ReportCardItem,
    Role,
    SchoolClass,
    Student,
    StudentSubjectAssignment,
    Subject,
    Term,
    User,
)
from app.infrastructure.database.repositories.school_repository import SchoolRepository
from app.infrastructure.database.repositories.user_repository import UserRepository
from app.infrastructure.security.jwt_service import JWTConfig, JWTService
from app.infrastructure.security.password_hasher import PasswordHasher
from app.infrastructure.security.rate_limiter import LoginRateLimiter
from app.services.auth_service import Authenticator
from app.services.comment_generator import CommentGenerator

TEST_ACCOUNTS = ["student", "teacher", "admin", "parent", "superadmin"]

PASSWORDS = {
    "office_admin": "AdminPass1",
    "mrs_okafor": "TeachPass1",
    "parent55": "ParentPass1",
    "ada_obi": "StudentPass1",
    "bola_ade": "StudentPass2",
    "gone_user": "GonePass1",
}


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_minutes(self, minutes: float) -> None:
        self.advance(minutes * 60)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(rounds=4)


@pytest.fixture
def seeded(db_session, hasher) -> Dict[str, Any]:
    """
    Seed roles, users and class 12 (JSS 2).

    Class 12 maps Mathematics and English. Both students have report cards with
    Mathematics and English items; Ada has Science results recorded for term 1.
    """
    db = db_session
    for role in RoleID:
        db.add(Role(id=int(role), name=role.label))

    def user(username, role_id, first, last, email=None, **extra):
        u = User(
            username=username,
            email=email,
            password_hash=hasher.hash_password(PASSWORDS[username]),
            first_name=first,
            last_name=last,
            role_id=int(role_id),
            **extra,
        )
        db.add(u)
        return u

    admin = user("office_admin", RoleID.ADMIN, "Grace", "Eze", email="office@school.test")
    teacher = user("mrs_okafor", RoleID.TEACHER, "Ngozi", "Okafor", email="okafor@school.test")
    parent = user("parent55", RoleID.PARENT, "Kemi", "Ade", email="parent55@school.test",
                  phone_numbers=["+2348000000001"])
    ada_user = user("ada_obi", RoleID.STUDENT, "Ada", "Obi")
    bola_user = user("bola_ade", RoleID.STUDENT, "Bola", "Ade")
    gone = user("gone_user", RoleID.TEACHER, "Old", "Staff", is_active=False)

    math = Subject(id=1, name="Mathematics", code="MTH")
    english = Subject(id=2, name="English", code="ENG")
    science = Subject(id=3, name="Basic Science", code="BSC")
    class_12 = SchoolClass(id=12, name="JSS 2", level="junior")
    class_3 = SchoolClass(id=3, name="JSS 1", level="junior")
    term = Term(id=1, name="First Term", year="2025/2026", is_current=True)
    db.add_all([math, english, science, class_12, class_3, term])
    db.flush()

    db.add_all([
        ClassSubjectMapping(class_id=12, subject_id=1),
        ClassSubjectMapping(class_id=12, subject_id=2),
        ClassSubjectMapping(class_id=3, subject_id=1),
    ])
    db.flush()

    ada = Student(id=1, user_id=ada_user.id, admission_number="ADM001", full_name="Ada Obi", class_id=12)
    bola = Student(id=2, user_id=bola_user.id, admission_number="ADM002", full_name="Bola Ade", class_id=12)
    db.add_all([ada, bola])
    db.flush()

    for student in (ada, bola):
        for subject_id in (1, 2):
            db.add(StudentSubjectAssignment(student_id=student.id, subject_id=subject_id, class_id=12))

    math_exam = Exam(id=1, name="Mathematics Exam", subject_id=1, class_id=12, term_id=1,
                     exam_type="exam", total_marks=100)
    science_test = Exam(id=2, name="Science Test", subject_id=3, class_id=12, term_id=1,
                        exam_type="test", total_marks=10)
    science_exam = Exam(id=3, name="Science Exam", subject_id=3, class_id=12, term_id=1,
                        exam_type="exam", total_marks=90)
    draft_exam = Exam(id=4, name="English Draft", subject_id=2, class_id=12, term_id=1,
                      exam_type="exam", total_marks=100, is_published=False)
    db.add_all([math_exam, science_test, science_exam, draft_exam])
    db.flush()
    db.add_all([
        ExamResult(exam_id=2, student_id=1, score=8),
        ExamResult(exam_id=3, student_id=1, score=60),
    ])

    ada_card = ReportCard(id=1, student_id=1, class_id=12, term_id=1)
    bola_card = ReportCard(id=2, student_id=2, class_id=12, term_id=1)
    db.add_all([ada_card, bola_card])
    db.flush()
    db.add_all([
        ReportCardItem(report_card_id=1, subject_id=1, test_score=15, test_max_score=20,
                       exam_score=55, exam_max_score=80, total_score=70, percentage=70.0),
        ReportCardItem(report_card_id=1, subject_id=2, total_score=50, percentage=50.0),
        ReportCardItem(report_card_id=2, subject_id=1, total_score=45, percentage=45.0),
        ReportCardItem(report_card_id=2, subject_id=2, total_score=35, percentage=35.0),
    ])
    db.commit()

    return {
        "admin": admin,
        "teacher": teacher,
        "parent": parent,
        "ada_user": ada_user,
        "bola_user": bola_user,
        "inactive": gone,
        "class_id": 12,
        "math": 1,
        "english": 2,
        "science": 3,
    }


@pytest.fixture
def limiter(clock) -> LoginRateLimiter:
    """Limiter with production thresholds."""
    return LoginRateLimiter(
        max_attempts=5,
        window_seconds=15 * 60,
        violation_window_seconds=60 * 60,
        max_violations=3,
        test_accounts=TEST_ACCOUNTS,
        clock=clock,
    )


@pytest.fixture
def jwt_service() -> JWTService:
    return JWTService(JWTConfig(secret_key="test-secret-key-with-enough-length-0123", issuer="school-portal-test"))


@pytest.fixture
def cache(clock) -> AppCache:
    return AppCache(MemoryCacheBackend(clock=clock), default_ttl=300)


@pytest.fixture
def user_repository(db_session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def school_repository(db_session) -> SchoolRepository:
    return SchoolRepository(db_session)


@pytest.fixture
def authenticator(user_repository, limiter, jwt_service, hasher) -> Authenticator:
    return Authenticator(user_repository, limiter, jwt_service, hasher)


@pytest.fixture
def exam_visibility_cache(cache) -> ExamVisibilityCache:
    return ExamVisibilityCache(cache)


@pytest.fixture
def subject_assignment_cache(cache) -> SubjectAssignmentCache:
    return SubjectAssignmentCache(cache)


@pytest.fixture
def client(db_session, seeded, limiter, jwt_service, hasher, cache):
    """TestClient wired to the in-memory database and per-test components."""
    from app.main import app

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[dependencies.get_rate_limiter] = lambda: limiter
    app.dependency_overrides[dependencies.get_jwt_service] = lambda: jwt_service
    app.dependency_overrides[dependencies.get_password_hasher] = lambda: hasher
    app.dependency_overrides[dependencies.get_app_cache] = lambda: cache
    app.dependency_overrides[dependencies.get_comment_generator] = lambda: CommentGenerator(random.Random(7))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(jwt_service):
    """Build bearer headers for a seeded user."""
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {jwt_service.generate_token(user.id, user.role_id)}"}
    return _headers
