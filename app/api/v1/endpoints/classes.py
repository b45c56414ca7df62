"""
Class API endpoints.

Handles:
- Subject mapping reads (cached per class)
- Subject mapping replacement followed by cache invalidation and resync
- Exam visibility per class (cached per class)
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from app.api.v1.schemas import ClassSubjectsUpdateRequest, ClassSubjectsUpdateResponse, ExamResponse, SubjectResponse
from app.core.dependencies import (
    get_current_user,
    get_exam_visibility_cache,
    get_school_repository,
    get_subject_assignment_cache,
    get_sync_coordinator,
    require_admin,
)
from app.core.errors import NotFoundError, ValidationError
from app.infrastructure.cache.class_scoped_cache import ExamVisibilityCache, SubjectAssignmentCache
from app.infrastructure.database.models.school_models import Exam, Subject, User
from app.infrastructure.database.repositories.school_repository import SchoolRepository
from app.services.subject_mapping_sync import SubjectMappingSyncCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()


def _subject_dict(subject: Subject) -> Dict[str, Any]:
    return {"id": subject.id, "name": subject.name, "code": subject.code, "category": subject.category}


def _exam_dict(exam: Exam) -> Dict[str, Any]:
    return {
        "id": exam.id,
        "name": exam.name,
        "subjectId": exam.subject_id,
        "classId": exam.class_id,
        "termId": exam.term_id,
        "examType": exam.exam_type,
        "totalMarks": exam.total_marks,
    }


async def _require_class(repository: SchoolRepository, class_id: int):
    school_class = await repository.get_class(class_id)
    if school_class is None:
        raise NotFoundError(f"Class {class_id} not found")
    return school_class


@router.get("/{class_id}/subjects", response_model=List[SubjectResponse])
async def get_class_subjects(
    class_id: int,
    current_user: User = Depends(get_current_user),
    repository: SchoolRepository = Depends(get_school_repository),
    cache: SubjectAssignmentCache = Depends(get_subject_assignment_cache),
):
    """Subjects currently mapped to a class."""
    cached = cache.get(class_id)
    if cached is not None:
        return cached

    await _require_class(repository, class_id)
    subjects = [_subject_dict(s) for s in await repository.get_mapped_subjects(class_id)]
    cache.set(class_id, subjects)
    return subjects


@router.put("/{class_id}/subjects", response_model=ClassSubjectsUpdateResponse)
async def update_class_subjects(
    class_id: int,
    request: ClassSubjectsUpdateRequest,
    current_user: User = Depends(require_admin),
    repository: SchoolRepository = Depends(get_school_repository),
    coordinator: SubjectMappingSyncCoordinator = Depends(get_sync_coordinator),
):
    """Replace the subjects mapped to a class and propagate the change."""
    await _require_class(repository, class_id)

    requested = set(request.subject_ids)
    found = {s.id for s in await repository.get_subjects_by_ids(requested)}
    unknown = sorted(requested - found)
    if unknown:
        raise ValidationError("Unknown subject ids", details={"subjectIds": unknown})

    await repository.replace_class_subjects(class_id, requested)
    result = await coordinator.invalidate_subject_mappings_and_sync(
        [class_id],
        cleanup_report_cards=request.cleanup_report_cards,
        add_missing_subjects=request.add_missing_subjects,
    )
    logger.info(f"User {current_user.id} updated subject mapping of class {class_id}")

    return {
        "classId": class_id,
        "subjects": [_subject_dict(s) for s in await repository.get_mapped_subjects(class_id)],
        "sync": result.to_dict(),
    }


@router.get("/{class_id}/exams", response_model=List[ExamResponse])
async def get_class_exams(
    class_id: int,
    current_user: User = Depends(get_current_user),
    repository: SchoolRepository = Depends(get_school_repository),
    cache: ExamVisibilityCache = Depends(get_exam_visibility_cache),
):
    """Published exams whose subject is mapped to the class."""
    cached = cache.get(class_id)
    if cached is not None:
        return cached

    await _require_class(repository, class_id)
    exams = [_exam_dict(e) for e in await repository.get_visible_exams(class_id)]
    cache.set(class_id, exams)
    return exams
