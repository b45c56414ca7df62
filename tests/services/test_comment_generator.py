"""Tests for report card remark generation."""

import random

import pytest

from app.services.comment_generator import (
    PRINCIPAL_TEMPLATES,
    TEACHER_TEMPLATES,
    CommentGenerator,
    PerformanceTier,
    last_name,
    performance_tier,
)


@pytest.mark.parametrize("percentage,tier", [
    (100, PerformanceTier.EXCELLENT),
    (70, PerformanceTier.EXCELLENT),
    (69.99, PerformanceTier.VERY_GOOD),
    (60, PerformanceTier.VERY_GOOD),
    (50, PerformanceTier.GOOD),
    (40, PerformanceTier.FAIR),
    (39.5, PerformanceTier.NEEDS_IMPROVEMENT),
    (0, PerformanceTier.NEEDS_IMPROVEMENT),
])
def test_performance_tiers(percentage, tier):
    assert performance_tier(percentage) is tier


def test_last_name():
    assert last_name("Ada Obi") == "Obi"
    assert last_name("  Chukwuemeka  ") == "Chukwuemeka"
    assert last_name("Mary Jane Okoro") == "Okoro"


class TestCommentGenerator:

    def test_teacher_comment_uses_tier_and_last_name(self):
        comment = CommentGenerator(random.Random(1)).teacher_comment("Ada Obi", 82)
        expected = {t.format(name="Obi") for t in TEACHER_TEMPLATES[PerformanceTier.EXCELLENT]}
        assert comment in expected

    def test_principal_comment_uses_tier(self):
        comment = CommentGenerator(random.Random(1)).principal_comment("Bola Ade", 35)
        expected = {t.format(name="Ade") for t in PRINCIPAL_TEMPLATES[PerformanceTier.NEEDS_IMPROVEMENT]}
        assert comment in expected

    def test_same_seed_same_comment(self):
        first = CommentGenerator(random.Random(42)).teacher_comment("Ada Obi", 55)
        second = CommentGenerator(random.Random(42)).teacher_comment("Ada Obi", 55)
        assert first == second

    def test_every_tier_has_three_templates(self):
        for templates in (TEACHER_TEMPLATES, PRINCIPAL_TEMPLATES):
            assert set(templates) == set(PerformanceTier)
            assert all(len(choices) == 3 for choices in templates.values())
