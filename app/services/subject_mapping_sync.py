"""
Propagation of class-subject mapping changes.

A mapping edit touches exam visibility, subject assignment lookups, report card
contents and per-student assignments at once. The coordinator drops every
cache derived from the mapping and re-derives the stored records, collecting
partial failures into the result instead of raising them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from app.infrastructure.cache.app_cache import AppCache
from app.infrastructure.cache.class_scoped_cache import ExamVisibilityCache, SubjectAssignmentCache
from app.infrastructure.database.repositories.school_repository import SchoolRepository

logger = logging.getLogger(__name__)

REPORT_CARD_CACHE_PATTERNS = (
    r"^reportcard:",
    r"^reportcards:",
    r"^report-card",
    r"^student-report",
)


@dataclass
class SyncResult:
    students_synced: int = 0
    report_card_items_removed: int = 0
    report_card_items_added: int = 0
    exam_scores_synced: int = 0
    cache_keys_invalidated: int = 0
    sync_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentsSynced": self.students_synced,
            "reportCardItemsRemoved": self.report_card_items_removed,
            "reportCardItemsAdded": self.report_card_items_added,
            "examScoresSynced": self.exam_scores_synced,
            "cacheKeysInvalidated": self.cache_keys_invalidated,
            "syncErrors": list(self.sync_errors),
        }


class SubjectMappingSyncCoordinator:
    """Runs the cache invalidation and resync steps after a mapping change."""

    def __init__(
        self,
        repository: SchoolRepository,
        cache: AppCache,
        exam_visibility_cache: ExamVisibilityCache,
        subject_assignment_cache: SubjectAssignmentCache,
    ):
        self.repository = repository
        self.cache = cache
        self.exam_visibility_cache = exam_visibility_cache
        self.subject_assignment_cache = subject_assignment_cache

    def invalidate_report_card_caches(self) -> int:
        return sum(self.cache.invalidate(pattern) for pattern in REPORT_CARD_CACHE_PATTERNS)

    async def invalidate_subject_mappings_and_sync(
        self,
        affected_class_ids: Iterable[int],
        cleanup_report_cards: bool = False,
        add_missing_subjects: bool = True,
    ) -> SyncResult:
        class_ids = list(dict.fromkeys(affected_class_ids))
        result = SyncResult()

        # Cache failures are recorded; the resync below always runs.
        for class_id in class_ids:
            try:
                result.cache_keys_invalidated += self.exam_visibility_cache.invalidate_class(class_id)
            except Exception as e:
                logger.error(f"Error invalidating exam visibility cache for class {class_id}: {e}", exc_info=True)
                result.sync_errors.append(f"Class {class_id}: failed to invalidate exam visibility cache: {e}")

        for class_id in class_ids:
            try:
                result.cache_keys_invalidated += self.subject_assignment_cache.invalidate_class(class_id)
            except Exception as e:
                logger.error(f"Error invalidating subject assignment cache for class {class_id}: {e}", exc_info=True)
                result.sync_errors.append(f"Class {class_id}: failed to invalidate subject assignment cache: {e}")

        try:
            result.cache_keys_invalidated += self.invalidate_report_card_caches()
        except Exception as e:
            logger.error(f"Error invalidating report card caches: {e}", exc_info=True)
            result.sync_errors.append(f"Failed to invalidate report card caches: {e}")

        for class_id in class_ids:
            try:
                synced = await self.repository.sync_students_with_class_mappings(class_id)
            except Exception as e:
                logger.error(f"Error syncing students for class {class_id}: {e}", exc_info=True)
                result.sync_errors.append(f"Class {class_id}: failed to sync students: {e}")
                continue
            result.students_synced += synced.synced
            result.sync_errors.extend(synced.errors)

        if cleanup_report_cards and class_ids:
            try:
                cleanup = await self.repository.cleanup_report_cards_for_classes(class_ids)
                result.report_card_items_removed = cleanup.items_removed
            except Exception as e:
                logger.error(f"Error cleaning up report cards: {e}", exc_info=True)
                result.sync_errors.append(f"Failed to clean up report cards: {e}")

        if add_missing_subjects and class_ids:
            try:
                backfill = await self.repository.add_missing_subjects_to_report_cards(class_ids)
                result.report_card_items_added = backfill.items_added
                result.exam_scores_synced = backfill.exam_scores_synced
                result.sync_errors.extend(backfill.errors)
            except Exception as e:
                logger.error(f"Error adding missing subjects: {e}", exc_info=True)
                result.sync_errors.append(f"Failed to add missing subjects: {e}")

        logger.info(
            f"Subject mapping sync: classes={len(class_ids)} students={result.students_synced} "
            f"cache_keys={result.cache_keys_invalidated} removed={result.report_card_items_removed} "
            f"added={result.report_card_items_added} errors={len(result.sync_errors)}"
        )
        return result
