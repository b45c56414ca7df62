"""
Repository layer for class-subject mappings and the records derived from them.

Handles:
- Class-subject mapping reads and replacement
- Student subject assignment synchronization
- Report card cleanup and backfill
- Exam score propagation into report card items
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.infrastructure.database.models.school_models import (
    ClassSubjectMapping,
    Exam,
    ExamResult,
    ReportCard,
    ReportCardItem,
    SchoolClass,
    Student,
    StudentSubjectAssignment,
    Subject,
)

logger = logging.getLogger(__name__)


@dataclass
class StudentSyncResult:
    synced: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class ReportCardCleanupResult:
    items_removed: int = 0


@dataclass
class BackfillResult:
    items_added: int = 0
    exam_scores_synced: int = 0
    errors: List[str] = field(default_factory=list)


class SchoolRepository:
    """
    Repository for class, subject and report card data.

    Sync operations commit their own work so that each step of a mapping
    resynchronization stands on its own.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    # Classes and mappings
    async def get_class(self, class_id: int) -> Optional[SchoolClass]:
        return self.db.get(SchoolClass, class_id)

    async def get_subjects_by_ids(self, subject_ids: Iterable[int]) -> List[Subject]:
        ids = set(subject_ids)
        if not ids:
            return []
        return self.db.query(Subject).filter(Subject.id.in_(ids)).all()

    async def get_mapped_subjects(self, class_id: int) -> List[Subject]:
        return (
            self.db.query(Subject)
            .join(ClassSubjectMapping, ClassSubjectMapping.subject_id == Subject.id)
            .filter(ClassSubjectMapping.class_id == class_id)
            .order_by(Subject.name)
            .all()
        )

    def _mapped_subject_ids(self, class_ids: Iterable[int]) -> Dict[int, Set[int]]:
        ids = list(class_ids)
        mapping: Dict[int, Set[int]] = {class_id: set() for class_id in ids}
        if not ids:
            return mapping
        rows = (
            self.db.query(ClassSubjectMapping.class_id, ClassSubjectMapping.subject_id)
            .filter(ClassSubjectMapping.class_id.in_(ids))
            .all()
        )
        for class_id, subject_id in rows:
            mapping[class_id].add(subject_id)
        return mapping

    async def replace_class_subjects(self, class_id: int, subject_ids: Iterable[int]) -> Tuple[Set[int], Set[int]]:
        """Make the class map exactly ``subject_ids``; returns (added, removed)."""
        desired = set(subject_ids)
        current = self._mapped_subject_ids([class_id])[class_id]
        added = desired - current
        removed = current - desired
        try:
            if removed:
                (
                    self.db.query(ClassSubjectMapping)
                    .filter(
                        ClassSubjectMapping.class_id == class_id,
                        ClassSubjectMapping.subject_id.in_(removed),
                    )
                    .delete(synchronize_session=False)
                )
            for subject_id in sorted(added):
                self.db.add(ClassSubjectMapping(class_id=class_id, subject_id=subject_id))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info(f"Class {class_id} mapping updated: +{sorted(added)} -{sorted(removed)}")
        return added, removed

    async def get_visible_exams(self, class_id: int) -> List[Exam]:
        """Published exams of the class whose subject is currently mapped to it."""
        return (
            self.db.query(Exam)
            .join(
                ClassSubjectMapping,
                (ClassSubjectMapping.subject_id == Exam.subject_id)
                & (ClassSubjectMapping.class_id == Exam.class_id),
            )
            .filter(Exam.class_id == class_id, Exam.is_published.is_(True))
            .order_by(Exam.id)
            .all()
        )

    # Report cards
    async def get_report_card(self, report_card_id: int) -> Optional[ReportCard]:
        return (
            self.db.query(ReportCard)
            .options(selectinload(ReportCard.items).selectinload(ReportCardItem.subject),
                     selectinload(ReportCard.student))
            .filter(ReportCard.id == report_card_id)
            .first()
        )

    async def save_report_card_comments(self, report_card: ReportCard, teacher_comment: str, principal_comment: str) -> ReportCard:
        report_card.teacher_comment = teacher_comment
        report_card.principal_comment = principal_comment
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(report_card)
        return report_card

    # Mapping synchronization
    async def sync_students_with_class_mappings(self, class_id: int) -> StudentSyncResult:
        """Align every student's subject assignments in the class with the class mapping."""
        result = StudentSyncResult()
        try:
            mapped = self._mapped_subject_ids([class_id])[class_id]
            students = self.db.query(Student).filter(Student.class_id == class_id).all()
            if not students:
                return result

            student_ids = [s.id for s in students]
            assignments = (
                self.db.query(StudentSubjectAssignment)
                .filter(StudentSubjectAssignment.student_id.in_(student_ids))
                .all()
            )
            by_student: Dict[int, Dict[int, StudentSubjectAssignment]] = {sid: {} for sid in student_ids}
            for assignment in assignments:
                by_student[assignment.student_id][assignment.subject_id] = assignment

            for student in students:
                existing = by_student[student.id]
                for subject_id, assignment in existing.items():
                    if subject_id in mapped:
                        assignment.is_active = True
                        assignment.class_id = class_id
                    elif assignment.is_active:
                        assignment.is_active = False
                for subject_id in mapped - set(existing):
                    self.db.add(StudentSubjectAssignment(
                        student_id=student.id,
                        subject_id=subject_id,
                        class_id=class_id,
                        is_active=True,
                    ))
                result.synced += 1

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error syncing students for class {class_id}: {e}")
            result.synced = 0
            result.errors.append(f"Class {class_id}: failed to sync students: {e}")
        return result

    async def cleanup_report_cards_for_classes(self, class_ids: Iterable[int]) -> ReportCardCleanupResult:
        """Delete report card items whose subject is no longer mapped to the card's class."""
        ids = list(class_ids)
        result = ReportCardCleanupResult()
        if not ids:
            return result

        mapped = self._mapped_subject_ids(ids)
        rows = (
            self.db.query(ReportCardItem, ReportCard.class_id)
            .join(ReportCard, ReportCard.id == ReportCardItem.report_card_id)
            .filter(ReportCard.class_id.in_(ids))
            .all()
        )
        try:
            for item, class_id in rows:
                if item.subject_id not in mapped[class_id]:
                    self.db.delete(item)
                    result.items_removed += 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return result

    async def add_missing_subjects_to_report_cards(self, class_ids: Iterable[int]) -> BackfillResult:
        """Add items for newly mapped subjects to existing report cards and pull in exam scores."""
        ids = list(class_ids)
        result = BackfillResult()
        if not ids:
            return result

        mapped = self._mapped_subject_ids(ids)
        cards = (
            self.db.query(ReportCard)
            .options(selectinload(ReportCard.items), selectinload(ReportCard.student))
            .filter(ReportCard.class_id.in_(ids))
            .all()
        )
        try:
            for card in cards:
                if card.student is None:
                    result.errors.append(f"Report card {card.id}: student {card.student_id} not found")
                    continue
                present = {item.subject_id for item in card.items}
                for subject_id in sorted(mapped[card.class_id] - present):
                    item = ReportCardItem(report_card=card, subject_id=subject_id)
                    self.db.add(item)
                    result.items_added += 1
                    if self._apply_exam_scores(card, item):
                        result.exam_scores_synced += 1
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return result

    def _apply_exam_scores(self, card: ReportCard, item: ReportCardItem) -> bool:
        """Fill test and exam scores of an item from recorded exam results."""
        rows = (
            self.db.query(ExamResult.score, Exam.exam_type, Exam.total_marks)
            .join(Exam, Exam.id == ExamResult.exam_id)
            .filter(
                ExamResult.student_id == card.student_id,
                Exam.subject_id == item.subject_id,
                Exam.class_id == card.class_id,
                Exam.term_id == card.term_id,
            )
            .all()
        )
        if not rows:
            return False

        totals = {"test": [0.0, 0.0], "exam": [0.0, 0.0]}
        seen = set()
        for score, exam_type, total_marks in rows:
            bucket = "test" if exam_type == "test" else "exam"
            totals[bucket][0] += score
            totals[bucket][1] += total_marks
            seen.add(bucket)

        if "test" in seen:
            item.test_score, item.test_max_score = totals["test"]
        if "exam" in seen:
            item.exam_score, item.exam_max_score = totals["exam"]
        obtained = totals["test"][0] + totals["exam"][0]
        possible = totals["test"][1] + totals["exam"][1]
        item.total_score = obtained
        item.percentage = round(obtained / possible * 100, 2) if possible else None
        return True
