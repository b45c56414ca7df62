"""
Automatic scoring of theory answers.

A hybrid score combines keyword coverage (60%) with word overlap against a
sample answer (40%). Low-confidence or low-scoring answers are not scored and
are flagged for teacher review instead.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

KEYWORD_WEIGHT = 0.6
SIMILARITY_WEIGHT = 0.4
MIN_AUTO_SCORE_CONFIDENCE = 0.7
MIN_AUTO_SCORE_HYBRID = 0.3
REVIEW_NOTE = "This answer has been flagged for teacher review."


@dataclass
class TheoryScoreResult:
    score: float
    confidence: float
    feedback: str
    auto_scored: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["autoScored"] = data.pop("auto_scored")
        return data


def _significant_words(text: str) -> List[str]:
    return [w for w in text.lower().split() if len(w) > 3]


def _confidence(keyword_score: float) -> float:
    if keyword_score > 0.8:
        return 0.9
    if keyword_score > 0.5:
        return 0.7
    return 0.5


def score_theory_answer(
    student_answer: str,
    expected_keywords: List[str],
    sample_answer: Optional[str],
    points: float,
) -> TheoryScoreResult:
    if not student_answer or not student_answer.strip():
        return TheoryScoreResult(score=0, confidence=1.0, feedback="No answer provided.", auto_scored=True)

    text = student_answer.lower().strip()

    matched: List[str] = []
    missed: List[str] = []
    keyword_score = 0.0
    if expected_keywords:
        for keyword in expected_keywords:
            (matched if keyword.lower().strip() in text else missed).append(keyword)
        keyword_score = len(matched) / len(expected_keywords)

    if sample_answer and sample_answer.strip():
        sample_words = _significant_words(sample_answer)
        common = [w for w in _significant_words(text) if w in sample_words]
        similarity = len(common) / len(sample_words) if sample_words else 0.0
    else:
        similarity = keyword_score

    hybrid = keyword_score * KEYWORD_WEIGHT + similarity * SIMILARITY_WEIGHT
    awarded = round(hybrid * points, 2)
    confidence = _confidence(keyword_score)

    if hybrid >= 0.8:
        feedback = f"Excellent answer! Key points identified: {', '.join(matched)}. "
    elif hybrid >= 0.5:
        feedback = f"Good effort. You covered: {', '.join(matched)}. "
        if missed:
            feedback += f"Consider including: {', '.join(missed[:3])}. "
    else:
        feedback = "Needs improvement. "
        if missed:
            feedback += f"Missing key points: {', '.join(missed[:3])}. "

    auto_scored = confidence >= MIN_AUTO_SCORE_CONFIDENCE and hybrid >= MIN_AUTO_SCORE_HYBRID
    if not auto_scored:
        feedback += REVIEW_NOTE

    return TheoryScoreResult(
        score=awarded if auto_scored else 0,
        confidence=confidence,
        feedback=feedback.strip(),
        auto_scored=auto_scored,
    )
