"""
Reward classification for observed labels
Maps classifier labels to point values through keyword groups
"""

import logging
from typing import Iterable, Optional, Tuple

from ecotrack.config import CategoryReward, DEFAULT_CATEGORY_REWARDS


class RewardClassifier:
    """
    Scores a label by case-insensitive substring match against ordered
    keyword groups. The first matching group wins; no match scores 0.

    Labels from the model may be English or localized
    ("plastic_bottle", "Пластиковая бутылка"), so each group carries
    all of its synonyms.
    """

    def __init__(self, category_rewards: Iterable[CategoryReward] = DEFAULT_CATEGORY_REWARDS):
        self.logger = logging.getLogger(__name__)
        self.category_rewards: Tuple[CategoryReward, ...] = tuple(category_rewards)

    def match(self, label) -> Optional[CategoryReward]:
        """Return the first category whose keywords occur in the label"""
        if not isinstance(label, str):
            return None

        lowered = label.lower()
        for category in self.category_rewards:
            if any(keyword in lowered for keyword in category.keywords):
                return category
        return None

    def value_of(self, label) -> int:
        """
        Point value for a label

        Args:
            label: Classifier label, any string

        Returns:
            Points (>= 0); 0 when no category matches
        """
        category = self.match(label)
        if category is None:
            self.logger.debug(f"No reward category for label '{label}'")
            return 0
        return category.points

    def category_of(self, label) -> str:
        """Name of the matched category, or empty string"""
        category = self.match(label)
        return category.name if category else ""
