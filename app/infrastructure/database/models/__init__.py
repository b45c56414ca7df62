"""Database models for persistence."""

from .school_models import (
    Role,
    User,
    SchoolClass,
    Subject,
    ClassSubjectMapping,
    Student,
    StudentSubjectAssignment,
    Term,
    Exam,
    ExamResult,
    ReportCard,
    ReportCardItem,
)

__all__ = [
    "Role",
    "User",
    "SchoolClass",
    "Subject",
    "ClassSubjectMapping",
    "Student",
    "StudentSubjectAssignment",
    "Term",
    "Exam",
    "ExamResult",
    "ReportCard",
    "ReportCardItem",
]
