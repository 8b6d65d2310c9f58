import math
from datetime import date, datetime
from typing import Optional

from activityhub.errors import InvalidArgument
from activityhub.models import ActivityType, ActivityLevel, AchievementType

TYPE_POINTS = {
    ActivityType.CERTIFICATION: 10,
    ActivityType.INTERNSHIP: 15,
    ActivityType.RESEARCH: 20,
    ActivityType.PUBLICATION: 25,
    ActivityType.COMPETITION: 12,
    ActivityType.PROJECT: 10,
    ActivityType.WORKSHOP: 5,
    ActivityType.SEMINAR: 5,
    ActivityType.ACHIEVEMENT: 15,
    ActivityType.ACADEMIC: 8,
    ActivityType.OTHER: 3,
}
DEFAULT_TYPE_POINTS = 5

LEVEL_MULTIPLIERS = {
    ActivityLevel.DEPARTMENT: 1.0,
    ActivityLevel.COLLEGE: 1.2,
    ActivityLevel.UNIVERSITY: 1.5,
    ActivityLevel.STATE: 1.8,
    ActivityLevel.NATIONAL: 2.0,
    ActivityLevel.INTERNATIONAL: 2.5,
}

ACHIEVEMENT_BONUS = {
    AchievementType.WINNER: 20,
    AchievementType.RUNNER_UP: 15,
    AchievementType.FINALIST: 10,
    AchievementType.PUBLICATION: 25,
    AchievementType.CERTIFICATE: 5,
    AchievementType.PARTICIPATION: 3,
    AchievementType.NONE: 0,
}

DURATION_BONUS_TYPES = (ActivityType.INTERNSHIP, ActivityType.PROJECT)
DURATION_BONUS_CAP = 10


class ScoreCalculator:
    @staticmethod
    def calculate(activity_type: ActivityType, level: ActivityLevel,
                  achievement_type: AchievementType, duration: int = 0) -> int:
        """
        Pure scoring rule:
        (type points x level multiplier) + achievement bonus
        + min(duration / 7, 10) for internships and projects,
        rounded half up.
        """
        score = TYPE_POINTS.get(activity_type, DEFAULT_TYPE_POINTS)
        score *= LEVEL_MULTIPLIERS[level]
        score += ACHIEVEMENT_BONUS[achievement_type]

        if activity_type in DURATION_BONUS_TYPES and duration > 0:
            score += min(duration / 7, DURATION_BONUS_CAP)

        return max(int(math.floor(score + 0.5)), 0)

    @staticmethod
    def score_activity(activity) -> int:
        return ScoreCalculator.calculate(
            activity.type, activity.level, activity.achievement_type, activity.duration or 0
        )

    @staticmethod
    def compute_duration(start_date, end_date: Optional[date]) -> int:
        """
        Whole days between start and end, rounded up. 0 without an end date.
        """
        if not start_date or not end_date:
            return 0
        if end_date < start_date:
            raise InvalidArgument("End date cannot be before start date", field="end_date")

        # Date columns give whole days already; datetimes can carry a partial day
        if isinstance(start_date, datetime) or isinstance(end_date, datetime):
            seconds = (end_date - start_date).total_seconds()
            return int(math.ceil(seconds / 86400))
        return (end_date - start_date).days
