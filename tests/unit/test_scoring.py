"""Tests for taskdash/features/tasks/scoring.py

The scoring engine turns three ratings into a priority score and keeps the
unrated/rated status in step with whether the task is fully rated.
"""

import itertools

import pytest

from taskdash.features.tasks.domain import TaskStatus
from taskdash.features.tasks.scoring import (
    RATING_WEIGHTS,
    calculate_score,
    has_all_ratings,
    score_task,
)


# ─────────────────────────────────────────────────────────────────────────────
# Score Formula
# ─────────────────────────────────────────────────────────────────────────────


class TestCalculateScore:
    """Tests for the weighted score."""

    def test_documented_example(self):
        """energy=4, simplicity=6, impact=8 should score 6.6."""
        assert calculate_score(4, 6, 8) == 6.6

    def test_weights_sum_to_one(self):
        assert sum(RATING_WEIGHTS.values()) == pytest.approx(1.0)

    def test_max_ratings_score_ten(self):
        assert calculate_score(10, 10, 10) == 10.0

    def test_zero_ratings_score_zero(self):
        """Zero is a real rating, not a missing one."""
        assert calculate_score(0, 0, 0) == 0.0

    def test_impact_weighs_most(self):
        assert calculate_score(0, 0, 10) > calculate_score(0, 10, 0) > calculate_score(10, 0, 0)

    def test_rounded_to_two_decimals(self):
        assert calculate_score(1, 1, 1) == 1.0
        assert calculate_score(3, 7, 9) == 7.2

    @pytest.mark.parametrize("ratings", [
        (None, 5, 5),
        (5, None, 5),
        (5, 5, None),
        (None, None, None),
    ])
    def test_missing_rating_gives_no_score(self, ratings):
        assert calculate_score(*ratings) is None


class TestHasAllRatings:
    """Presence check for the three ratings."""

    def test_zero_counts_as_present(self):
        assert has_all_ratings(0, 0, 0) is True

    def test_none_is_absent(self):
        assert has_all_ratings(0, None, 0) is False


# ─────────────────────────────────────────────────────────────────────────────
# Status Promotion / Demotion
# ─────────────────────────────────────────────────────────────────────────────


class TestScoreTask:
    """Tests for score and status recomputation."""

    def test_full_ratings_promote_unrated(self):
        result = score_task(4, 6, 8, TaskStatus.UNRATED)

        assert result.status == TaskStatus.RATED
        assert result.score == 6.6

    def test_clearing_a_rating_demotes_rated(self):
        result = score_task(4, 6, None, TaskStatus.RATED)

        assert result.status == TaskStatus.UNRATED
        assert result.score is None

    @pytest.mark.parametrize("status", [TaskStatus.PARKED, TaskStatus.COMPLETED])
    def test_parked_and_completed_keep_status_when_rated(self, status):
        result = score_task(4, 6, 8, status)

        assert result.status == status
        assert result.score == 6.6

    @pytest.mark.parametrize("status", [TaskStatus.PARKED, TaskStatus.COMPLETED])
    def test_parked_and_completed_keep_status_when_unrated(self, status):
        result = score_task(None, 6, 8, status)

        assert result.status == status
        assert result.score is None

    def test_accepts_plain_strings(self):
        assert score_task(1, 2, 3, "unrated").status == TaskStatus.RATED

    def test_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            score_task(1, 2, 3, "archived")

    def test_idempotent(self):
        """Running the engine on its own output changes nothing."""
        for status in TaskStatus:
            for ratings in [(4, 6, 8), (None, 6, 8), (0, 0, 0)]:
                first = score_task(*ratings, status)
                second = score_task(*ratings, first.status)
                assert first == second

    def test_score_present_iff_fully_rated(self):
        values = [None, 0, 5, 10]
        for energy, simplicity, impact in itertools.product(values, repeat=3):
            result = score_task(energy, simplicity, impact, TaskStatus.UNRATED)
            fully_rated = None not in (energy, simplicity, impact)
            assert (result.score is not None) == fully_rated
