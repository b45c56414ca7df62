from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from app.core.config import settings


class CamelModel(BaseModel):
    """Accepts both camelCase (wire) and snake_case field names."""
    model_config = ConfigDict(populate_by_name=True)


# --- Auth Schemas ---

class LoginRequest(BaseModel):
    """Login request model."""
    identifier: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1, description="Password")


class UserResponse(CamelModel):
    """Public user profile."""
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    role_id: int = Field(..., alias="roleId")
    profile_image_url: Optional[str] = Field(None, alias="profileImageUrl")
    must_change_password: bool = Field(False, alias="mustChangePassword")


class LoginResponse(BaseModel):
    """Token and profile returned after a successful login."""
    token: str
    user: UserResponse


class PasswordChangeRequest(CamelModel):
    """Password change request model."""
    current_password: str = Field(..., min_length=1, alias="currentPassword", description="Current password")
    new_password: str = Field(
        ...,
        min_length=settings.PASSWORD_MIN_LENGTH,
        max_length=settings.PASSWORD_MAX_LENGTH,
        alias="newPassword",
        description="New password",
    )


class MessageResponse(BaseModel):
    message: str


# --- Class / Subject Schemas ---

class SubjectResponse(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    category: Optional[str] = None


class ClassSubjectsUpdateRequest(CamelModel):
    """Replacement subject set for a class plus resync options."""
    subject_ids: List[int] = Field(..., alias="subjectIds", description="Subjects the class should map to")
    cleanup_report_cards: bool = Field(
        True, alias="cleanupReportCards",
        description="Remove report card items of subjects no longer mapped",
    )
    add_missing_subjects: bool = Field(
        True, alias="addMissingSubjects",
        description="Add report card items for newly mapped subjects",
    )


class SyncResultResponse(CamelModel):
    students_synced: int = Field(0, alias="studentsSynced")
    report_card_items_removed: int = Field(0, alias="reportCardItemsRemoved")
    report_card_items_added: int = Field(0, alias="reportCardItemsAdded")
    exam_scores_synced: int = Field(0, alias="examScoresSynced")
    cache_keys_invalidated: int = Field(0, alias="cacheKeysInvalidated")
    sync_errors: List[str] = Field(default_factory=list, alias="syncErrors")


class ClassSubjectsUpdateResponse(CamelModel):
    class_id: int = Field(..., alias="classId")
    subjects: List[SubjectResponse]
    sync: SyncResultResponse


class ExamResponse(CamelModel):
    id: int
    name: str
    subject_id: int = Field(..., alias="subjectId")
    class_id: int = Field(..., alias="classId")
    term_id: Optional[int] = Field(None, alias="termId")
    exam_type: str = Field(..., alias="examType")
    total_marks: float = Field(..., alias="totalMarks")


# --- Report Card Schemas ---

class ReportCardItemResponse(CamelModel):
    id: int
    subject_id: int = Field(..., alias="subjectId")
    subject_name: Optional[str] = Field(None, alias="subjectName")
    test_score: Optional[float] = Field(None, alias="testScore")
    test_max_score: Optional[float] = Field(None, alias="testMaxScore")
    exam_score: Optional[float] = Field(None, alias="examScore")
    exam_max_score: Optional[float] = Field(None, alias="examMaxScore")
    total_score: Optional[float] = Field(None, alias="totalScore")
    percentage: Optional[float] = None


class ReportCardResponse(CamelModel):
    id: int
    student_id: int = Field(..., alias="studentId")
    student_name: Optional[str] = Field(None, alias="studentName")
    class_id: int = Field(..., alias="classId")
    term_id: Optional[int] = Field(None, alias="termId")
    teacher_comment: Optional[str] = Field(None, alias="teacherComment")
    principal_comment: Optional[str] = Field(None, alias="principalComment")
    average_percentage: Optional[float] = Field(None, alias="averagePercentage")
    items: List[ReportCardItemResponse] = Field(default_factory=list)


# --- Exam Scoring Schemas ---

class TheoryScoreRequest(CamelModel):
    student_answer: str = Field("", alias="studentAnswer", description="Answer written by the student")
    expected_keywords: List[str] = Field(default_factory=list, alias="expectedKeywords")
    sample_answer: Optional[str] = Field(None, alias="sampleAnswer")
    points: float = Field(..., gt=0, description="Points available for the question")


class TheoryScoreResponse(CamelModel):
    score: float
    confidence: float
    feedback: str
    auto_scored: bool = Field(..., alias="autoScored")
