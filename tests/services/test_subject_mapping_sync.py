"""
Tests for the subject mapping sync coordinator.

Tests:
- Cache invalidation accounting
- Step ordering and option handling with a mocked repository
- Failure isolation of the derived-record steps
- The class 12 remapping scenario against the database
"""

from unittest.mock import AsyncMock, MagicMock, call

import pytest
import redis

from app.infrastructure.cache.app_cache import AppCache, MemoryCacheBackend
from app.infrastructure.cache.class_scoped_cache import ExamVisibilityCache, SubjectAssignmentCache
from app.infrastructure.database.models.school_models import ReportCardItem
from app.infrastructure.database.repositories.school_repository import (
    BackfillResult,
    ReportCardCleanupResult,
    StudentSyncResult,
)
from app.services.subject_mapping_sync import SubjectMappingSyncCoordinator, SyncResult


@pytest.fixture
def mock_repository():
    repo = MagicMock()
    repo.sync_students_with_class_mappings = AsyncMock(return_value=StudentSyncResult(synced=3))
    repo.cleanup_report_cards_for_classes = AsyncMock(return_value=ReportCardCleanupResult(items_removed=4))
    repo.add_missing_subjects_to_report_cards = AsyncMock(
        return_value=BackfillResult(items_added=5, exam_scores_synced=2)
    )
    return repo


@pytest.fixture
def coordinator_factory(cache, exam_visibility_cache, subject_assignment_cache):
    def _build(repository):
        return SubjectMappingSyncCoordinator(repository, cache, exam_visibility_cache, subject_assignment_cache)
    return _build


def populate_caches(cache, exam_visibility_cache, subject_assignment_cache):
    exam_visibility_cache.set(12, [{"id": 1}])
    exam_visibility_cache.set(12, [{"id": 1}], suffix="student:1")
    subject_assignment_cache.set(12, [{"id": 1}, {"id": 2}])
    cache.set("reportcard:1", {"id": 1})
    cache.set("reportcards:class:12", [1, 2])
    cache.set("report-card-summary:term:1", {})
    cache.set("student-report:1", {})
    # Unrelated entries that must survive
    exam_visibility_cache.set(3, [{"id": 9}])
    cache.set("subjects:all", [])


class TestSyncResult:

    def test_to_dict_uses_wire_names(self):
        result = SyncResult(students_synced=2, cache_keys_invalidated=7, sync_errors=["x"])
        assert result.to_dict() == {
            "studentsSynced": 2,
            "reportCardItemsRemoved": 0,
            "reportCardItemsAdded": 0,
            "examScoresSynced": 0,
            "cacheKeysInvalidated": 7,
            "syncErrors": ["x"],
        }


class TestCoordinator:

    @pytest.mark.asyncio
    async def test_counts_invalidated_keys(self, mock_repository, coordinator_factory, cache,
                                           exam_visibility_cache, subject_assignment_cache):
        populate_caches(cache, exam_visibility_cache, subject_assignment_cache)
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12], cleanup_report_cards=True)

        # 2 exam-visibility + 1 subject-assignment + 4 report card keys
        assert result.cache_keys_invalidated == 7
        assert exam_visibility_cache.get(3) == [{"id": 9}]
        assert cache.get("subjects:all") == []

    @pytest.mark.asyncio
    async def test_aggregates_repository_results(self, mock_repository, coordinator_factory):
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12, 3], cleanup_report_cards=True)

        assert result.students_synced == 6
        assert result.report_card_items_removed == 4
        assert result.report_card_items_added == 5
        assert result.exam_scores_synced == 2
        assert result.sync_errors == []
        mock_repository.sync_students_with_class_mappings.assert_has_awaits([call(12), call(3)])
        mock_repository.cleanup_report_cards_for_classes.assert_awaited_once_with([12, 3])
        mock_repository.add_missing_subjects_to_report_cards.assert_awaited_once_with([12, 3])

    @pytest.mark.asyncio
    async def test_duplicate_class_ids_synced_once(self, mock_repository, coordinator_factory):
        coordinator = coordinator_factory(mock_repository)
        await coordinator.invalidate_subject_mappings_and_sync([12, 12])
        assert mock_repository.sync_students_with_class_mappings.await_count == 1

    @pytest.mark.asyncio
    async def test_cleanup_is_opt_in(self, mock_repository, coordinator_factory):
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12])

        mock_repository.cleanup_report_cards_for_classes.assert_not_awaited()
        assert result.report_card_items_removed == 0
        mock_repository.add_missing_subjects_to_report_cards.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backfill_can_be_disabled(self, mock_repository, coordinator_factory):
        coordinator = coordinator_factory(mock_repository)
        await coordinator.invalidate_subject_mappings_and_sync([12], add_missing_subjects=False)
        mock_repository.add_missing_subjects_to_report_cards.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_classes_skips_batch_steps(self, mock_repository, coordinator_factory):
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([], cleanup_report_cards=True)

        mock_repository.cleanup_report_cards_for_classes.assert_not_awaited()
        mock_repository.add_missing_subjects_to_report_cards.assert_not_awaited()
        assert result.students_synced == 0

    @pytest.mark.asyncio
    async def test_backfill_failure_becomes_sync_error(self, mock_repository, coordinator_factory, cache):
        mock_repository.add_missing_subjects_to_report_cards.side_effect = RuntimeError("connection reset")
        cache.set("reportcard:1", {"id": 1})
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12], cleanup_report_cards=True)

        assert result.sync_errors == ["Failed to add missing subjects: connection reset"]
        assert result.cache_keys_invalidated >= 1
        assert result.students_synced == 3
        assert result.report_card_items_removed == 4

    @pytest.mark.asyncio
    async def test_student_sync_errors_are_collected(self, mock_repository, coordinator_factory):
        mock_repository.sync_students_with_class_mappings.side_effect = [
            StudentSyncResult(synced=0, errors=["Class 12: failed to sync students: locked"]),
            RuntimeError("timeout"),
        ]
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12, 3])

        assert result.sync_errors[0] == "Class 12: failed to sync students: locked"
        assert "Class 3" in result.sync_errors[1]
        assert "timeout" in result.sync_errors[1]
        mock_repository.add_missing_subjects_to_report_cards.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_failure_becomes_sync_error(self, mock_repository, coordinator_factory):
        mock_repository.cleanup_report_cards_for_classes.side_effect = RuntimeError("deadlock")
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12], cleanup_report_cards=True)

        assert result.sync_errors == ["Failed to clean up report cards: deadlock"]
        assert result.report_card_items_added == 5

    @pytest.mark.asyncio
    async def test_backfill_errors_are_appended(self, mock_repository, coordinator_factory):
        mock_repository.add_missing_subjects_to_report_cards.return_value = BackfillResult(
            items_added=1, errors=["Report card 9: student 44 not found"]
        )
        coordinator = coordinator_factory(mock_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12])

        assert result.sync_errors == ["Report card 9: student 44 not found"]


    @pytest.mark.asyncio
    async def test_cache_outage_does_not_block_resync(self, mock_repository, clock):
        backend = MemoryCacheBackend(clock=clock)
        backend.keys = MagicMock(side_effect=redis.ConnectionError("redis down"))
        cache = AppCache(backend, default_ttl=300)
        coordinator = SubjectMappingSyncCoordinator(
            mock_repository, cache, ExamVisibilityCache(cache), SubjectAssignmentCache(cache)
        )

        result = await coordinator.invalidate_subject_mappings_and_sync([12], cleanup_report_cards=True)

        mock_repository.sync_students_with_class_mappings.assert_awaited_once_with(12)
        mock_repository.cleanup_report_cards_for_classes.assert_awaited_once_with([12])
        mock_repository.add_missing_subjects_to_report_cards.assert_awaited_once_with([12])
        assert result.sync_errors == [
            "Class 12: failed to invalidate exam visibility cache: redis down",
            "Class 12: failed to invalidate subject assignment cache: redis down",
            "Failed to invalidate report card caches: redis down",
        ]
        assert result.cache_keys_invalidated == 0
        assert result.students_synced == 3
        assert result.report_card_items_added == 5


@pytest.mark.integration
class TestClass12Scenario:

    @pytest.mark.asyncio
    async def test_math_english_to_math_science(self, school_repository, db_session, seeded, coordinator_factory,
                                                cache, exam_visibility_cache, subject_assignment_cache):
        populate_caches(cache, exam_visibility_cache, subject_assignment_cache)
        await school_repository.replace_class_subjects(12, [seeded["math"], seeded["science"]])
        coordinator = coordinator_factory(school_repository)

        result = await coordinator.invalidate_subject_mappings_and_sync([12], cleanup_report_cards=True)

        assert result.sync_errors == []
        assert result.students_synced == 2
        assert result.report_card_items_removed == 2
        assert result.report_card_items_added == 2
        assert result.exam_scores_synced == 1
        assert result.cache_keys_invalidated == 7

        for card_id in (1, 2):
            subjects = {
                row[0] for row in
                db_session.query(ReportCardItem.subject_id).filter(ReportCardItem.report_card_id == card_id).all()
            }
            assert subjects == {seeded["math"], seeded["science"]}
