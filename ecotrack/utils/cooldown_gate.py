"""
Cooldown gate for reward payouts
Enforces a minimum interval between successful awards
"""

import logging
from typing import Optional, Union

from ecotrack.models.events import (
    FiredObservation,
    Rejection,
    RewardEvent,
    REASON_COOLDOWN,
    REASON_NO_CATEGORY,
)
from ecotrack.models.reward_classifier import RewardClassifier


class CooldownGate:
    """
    Converts fired observations into reward events, at most one per
    cooldown window. This is the only place RewardEvent objects are made
    and the only writer of ``last_awarded_at``.
    """

    def __init__(self, reward_classifier: RewardClassifier, cooldown_seconds: float = 5.0):
        """
        Initialize cooldown gate

        Args:
            reward_classifier: Label -> points mapping
            cooldown_seconds: Elapsed time must be strictly greater than this
        """
        self.reward_classifier = reward_classifier
        self.cooldown_seconds = cooldown_seconds
        self.last_awarded_at: Optional[float] = None

        self.logger = logging.getLogger(__name__)

    def try_award(self, candidate: FiredObservation, now: float) -> Union[RewardEvent, Rejection]:
        """
        Decide whether a fired observation pays out

        Args:
            candidate: Observation fired by the consensus tracker
            now: Decision time in epoch seconds

        Returns:
            RewardEvent on success, otherwise a Rejection
        """
        points = self.reward_classifier.value_of(candidate.label)
        if points == 0:
            # Unscored labels never consume the cooldown
            self.logger.info(f"No reward category for '{candidate.label}'")
            return Rejection(reason=REASON_NO_CATEGORY, label=candidate.label, at=now)

        if self.last_awarded_at is not None:
            elapsed = now - self.last_awarded_at
            if elapsed <= self.cooldown_seconds:
                retry_after = self.cooldown_seconds - elapsed
                self.logger.info(
                    f"Cooldown active for '{candidate.label}': try again in {retry_after:.1f}s"
                )
                return Rejection(
                    reason=REASON_COOLDOWN,
                    label=candidate.label,
                    at=now,
                    retry_after=retry_after,
                )

        self.last_awarded_at = now
        reward = RewardEvent(
            label=candidate.label,
            points_delta=points,
            awarded_at=now,
            category=self.reward_classifier.category_of(candidate.label),
        )
        self.logger.info(f"Awarded {points} points for '{candidate.label}'")
        return reward

    def remaining(self, now: float) -> float:
        """Seconds left before the next payout is possible (0 when open)"""
        if self.last_awarded_at is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (now - self.last_awarded_at))
