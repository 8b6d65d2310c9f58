from datetime import date

import pytest

from activityhub.errors import InvalidArgument
from activityhub.models import ActivityType, ActivityLevel, AchievementType
from activityhub.services.score_calculator import ScoreCalculator


class TestScoreCalculator:
    def test_internship_with_duration_bonus(self):
        """internship x college + winner + 21 days -> 15*1.2 + 20 + 3 = 41."""
        score = ScoreCalculator.calculate(
            ActivityType.INTERNSHIP, ActivityLevel.COLLEGE, AchievementType.WINNER, 21
        )
        assert score == 41

    def test_research_publication_national(self):
        """research x national + publication, no duration -> 20*2 + 25 = 65."""
        score = ScoreCalculator.calculate(
            ActivityType.RESEARCH, ActivityLevel.NATIONAL, AchievementType.PUBLICATION, 0
        )
        assert score == 65

    def test_unlisted_type_defaults_to_five(self):
        """Types missing from the points table (sports, cultural...) score 5 base."""
        score = ScoreCalculator.calculate(
            ActivityType.SPORTS, ActivityLevel.DEPARTMENT, AchievementType.NONE, 0
        )
        assert score == 5

    def test_duration_bonus_is_capped(self):
        """A year-long project earns at most 10 duration points."""
        score = ScoreCalculator.calculate(
            ActivityType.PROJECT, ActivityLevel.DEPARTMENT, AchievementType.NONE, 365
        )
        assert score == 10 + 10

    def test_duration_ignored_for_other_types(self):
        score = ScoreCalculator.calculate(
            ActivityType.WORKSHOP, ActivityLevel.DEPARTMENT, AchievementType.NONE, 70
        )
        assert score == 5

    def test_rounds_half_up(self):
        """workshop x university = 7.5, + participation 3 = 10.5 -> 11."""
        score = ScoreCalculator.calculate(
            ActivityType.WORKSHOP, ActivityLevel.UNIVERSITY, AchievementType.PARTICIPATION, 0
        )
        assert score == 11

    def test_level_multiplier_is_monotonic(self):
        scores = [
            ScoreCalculator.calculate(ActivityType.COMPETITION, level, AchievementType.NONE, 0)
            for level in ActivityLevel
        ]
        assert scores == sorted(scores)

    def test_deterministic_and_non_negative(self):
        """Every combination scores >= 0 and the same inputs give the same score."""
        for activity_type in ActivityType:
            for level in ActivityLevel:
                for achievement in AchievementType:
                    first = ScoreCalculator.calculate(activity_type, level, achievement, 14)
                    second = ScoreCalculator.calculate(activity_type, level, achievement, 14)
                    assert first == second
                    assert first >= 0


class TestDuration:
    def test_whole_days_between_dates(self):
        assert ScoreCalculator.compute_duration(date(2024, 1, 1), date(2024, 1, 22)) == 21

    def test_no_end_date_is_zero(self):
        assert ScoreCalculator.compute_duration(date(2024, 1, 1), None) == 0

    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidArgument):
            ScoreCalculator.compute_duration(date(2024, 1, 10), date(2024, 1, 1))
