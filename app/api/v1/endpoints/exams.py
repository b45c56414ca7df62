"""Exam scoring API endpoints."""

from fastapi import APIRouter, Depends

from app.api.v1.schemas import TheoryScoreRequest, TheoryScoreResponse
from app.core.dependencies import require_staff
from app.infrastructure.database.models.school_models import User
from app.services.exam_scoring import score_theory_answer

router = APIRouter()


@router.post("/theory-score", response_model=TheoryScoreResponse)
async def score_theory(request: TheoryScoreRequest, current_user: User = Depends(require_staff)):
    """Auto-score a theory answer or flag it for review."""
    result = score_theory_answer(
        request.student_answer,
        request.expected_keywords,
        request.sample_answer,
        request.points,
    )
    return result.to_dict()
