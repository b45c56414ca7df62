"""
Relational models for the school portal.

Handles:
- Users and roles
- Classes, subjects and the class-subject mapping
- Student subject assignments derived from the mapping
- Exams, exam results and report cards
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import List

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from app.infrastructure.database.base import Base

logger = logging.getLogger(__name__)

_string_list_adapter = TypeAdapter(List[str])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JSONStringList(TypeDecorator):
    """
    A list of strings stored as a JSON array in a text column.

    Values are validated on the way in. A stored value that is not a JSON array
    of strings is read back as an empty list.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return json.dumps([])
        return json.dumps(_string_list_adapter.validate_python(list(value)))

    def process_result_value(self, value, dialect):
        if not value:
            return []
        try:
            return _string_list_adapter.validate_json(value)
        except PydanticValidationError:
            logger.warning(f"Discarding malformed string list column value: {value[:80]!r}")
            return []


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    must_change_password = Column(Boolean, nullable=False, default=False)
    profile_image_url = Column(String(500), nullable=True)
    phone_numbers = Column(JSONStringList, nullable=False, default=list)
    alternate_emails = Column(JSONStringList, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    role = relationship("Role")


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    level = Column(String(50), nullable=True)

    subject_mappings = relationship(
        "ClassSubjectMapping", back_populates="school_class", cascade="all, delete-orphan"
    )


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    code = Column(String(20), nullable=True)
    category = Column(String(50), nullable=True)


class ClassSubjectMapping(Base):
    __tablename__ = "class_subject_mappings"
    __table_args__ = (UniqueConstraint("class_id", "subject_id", name="uq_class_subject"),)

    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)

    school_class = relationship("SchoolClass", back_populates="subject_mappings")
    subject = relationship("Subject")


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    admission_number = Column(String(50), unique=True, nullable=False)
    full_name = Column(String(200), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=True, index=True)

    user = relationship("User")


class StudentSubjectAssignment(Base):
    __tablename__ = "student_subject_assignments"
    __table_args__ = (UniqueConstraint("student_id", "subject_id", name="uq_student_subject"),)

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Term(Base):
    __tablename__ = "terms"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)
    year = Column(String(20), nullable=False)
    is_current = Column(Boolean, nullable=False, default=False)


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    term_id = Column(Integer, ForeignKey("terms.id"), nullable=False)
    exam_type = Column(String(20), nullable=False, default="exam")  # 'test' or 'exam'
    total_marks = Column(Float, nullable=False, default=100.0)
    is_published = Column(Boolean, nullable=False, default=True)


class ExamResult(Base):
    __tablename__ = "exam_results"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_exam_student"),)

    id = Column(Integer, primary_key=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    score = Column(Float, nullable=False)

    exam = relationship("Exam")


class ReportCard(Base):
    __tablename__ = "report_cards"
    __table_args__ = (UniqueConstraint("student_id", "term_id", name="uq_report_card_student_term"),)

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    term_id = Column(Integer, ForeignKey("terms.id"), nullable=False)
    teacher_comment = Column(Text, nullable=True)
    principal_comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    student = relationship("Student")
    items = relationship("ReportCardItem", back_populates="report_card", cascade="all, delete-orphan")


class ReportCardItem(Base):
    __tablename__ = "report_card_items"
    __table_args__ = (UniqueConstraint("report_card_id", "subject_id", name="uq_report_card_subject"),)

    id = Column(Integer, primary_key=True)
    report_card_id = Column(Integer, ForeignKey("report_cards.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    test_score = Column(Float, nullable=True)
    test_max_score = Column(Float, nullable=True)
    exam_score = Column(Float, nullable=True)
    exam_max_score = Column(Float, nullable=True)
    total_score = Column(Float, nullable=True)
    percentage = Column(Float, nullable=True)

    report_card = relationship("ReportCard", back_populates="items")
    subject = relationship("Subject")
