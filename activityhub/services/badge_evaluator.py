from typing import Iterable, List

from activityhub.models import BadgeTier

# Evaluated high-to-low
BADGE_THRESHOLDS = (
    (BadgeTier.GOLD, 500),
    (BadgeTier.SILVER, 300),
    (BadgeTier.BRONZE, 100),
)

BADGE_NAMES = {
    BadgeTier.GOLD: "Gold Badge - 500+ Activity Points",
    BadgeTier.SILVER: "Silver Badge - 300+ Activity Points",
    BadgeTier.BRONZE: "Bronze Badge - 100+ Activity Points",
}


class BadgeEvaluator:
    @staticmethod
    def evaluate(activity_score: int, held_tiers: Iterable[BadgeTier]) -> List[BadgeTier]:
        """
        Returns the badge tiers to add for the given cumulative score.

        At most one tier is awarded per pass: the highest threshold crossed
        that the student does not hold yet. A student at 550 with no badges
        gets gold only; bronze and silver are not back-filled.
        """
        held = set(held_tiers)
        for tier, threshold in BADGE_THRESHOLDS:
            if activity_score >= threshold and tier not in held:
                return [tier]
        return []

    @staticmethod
    def badge_name(tier: BadgeTier) -> str:
        return BADGE_NAMES[tier]
