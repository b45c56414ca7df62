"""Report card API endpoints."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from app.api.v1.schemas import ReportCardResponse
from app.core.dependencies import (
    get_app_cache,
    get_comment_generator,
    get_current_user,
    get_school_repository,
    require_staff,
)
from app.core.errors import NotFoundError
from app.infrastructure.auth.models import RoleID
from app.infrastructure.cache.app_cache import AppCache
from app.infrastructure.database.models.school_models import ReportCard, User
from app.infrastructure.database.repositories.school_repository import SchoolRepository
from app.services.comment_generator import CommentGenerator

logger = logging.getLogger(__name__)

router = APIRouter()

STAFF_ROLES = {int(RoleID.SUPER_ADMIN), int(RoleID.ADMIN), int(RoleID.TEACHER)}


def report_card_cache_key(report_card_id: int) -> str:
    return f"reportcard:{report_card_id}"


def average_percentage(card: ReportCard) -> Optional[float]:
    values = [item.percentage for item in card.items if item.percentage is not None]
    return round(sum(values) / len(values), 2) if values else None


def report_card_dict(card: ReportCard) -> Dict[str, Any]:
    return {
        "id": card.id,
        "studentId": card.student_id,
        "studentName": card.student.full_name if card.student else None,
        "classId": card.class_id,
        "termId": card.term_id,
        "teacherComment": card.teacher_comment,
        "principalComment": card.principal_comment,
        "averagePercentage": average_percentage(card),
        "items": [
            {
                "id": item.id,
                "subjectId": item.subject_id,
                "subjectName": item.subject.name if item.subject else None,
                "testScore": item.test_score,
                "testMaxScore": item.test_max_score,
                "examScore": item.exam_score,
                "examMaxScore": item.exam_max_score,
                "totalScore": item.total_score,
                "percentage": item.percentage,
            }
            for item in sorted(card.items, key=lambda i: i.subject_id)
        ],
    }


@router.get("/{report_card_id}", response_model=ReportCardResponse)
async def get_report_card(
    report_card_id: int,
    current_user: User = Depends(get_current_user),
    repository: SchoolRepository = Depends(get_school_repository),
    cache: AppCache = Depends(get_app_cache),
):
    """
    Report card with its line items.

    Non-staff callers may only read their own card; anyone else's card
    answers exactly like a missing one.
    """
    not_found = NotFoundError(f"Report card {report_card_id} not found")
    key = report_card_cache_key(report_card_id)
    data = cache.get(key)
    owner_user_id = data.get("ownerUserId") if data else None

    if data is None:
        card = await repository.get_report_card(report_card_id)
        if card is None:
            raise not_found
        data = report_card_dict(card)
        owner_user_id = card.student.user_id if card.student else None
        cache.set(key, {**data, "ownerUserId": owner_user_id})

    if current_user.role_id not in STAFF_ROLES and owner_user_id != current_user.id:
        logger.warning(f"User {current_user.id} denied report card {report_card_id}")
        raise not_found
    data.pop("ownerUserId", None)
    return data


@router.post("/{report_card_id}/comments", response_model=ReportCardResponse)
async def generate_report_card_comments(
    report_card_id: int,
    current_user: User = Depends(require_staff),
    repository: SchoolRepository = Depends(get_school_repository),
    cache: AppCache = Depends(get_app_cache),
    generator: CommentGenerator = Depends(get_comment_generator),
):
    """Generate teacher and principal remarks from the card's average percentage."""
    card = await repository.get_report_card(report_card_id)
    if card is None:
        raise NotFoundError(f"Report card {report_card_id} not found")

    name = card.student.full_name if card.student else ""
    percentage = average_percentage(card) or 0.0
    card = await repository.save_report_card_comments(
        card,
        teacher_comment=generator.teacher_comment(name, percentage),
        principal_comment=generator.principal_comment(name, percentage),
    )
    cache.delete(report_card_cache_key(report_card_id))
    logger.info(f"User {current_user.id} generated comments for report card {report_card_id}")
    return report_card_dict(card)
