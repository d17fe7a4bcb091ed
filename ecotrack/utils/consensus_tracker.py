"""
Consensus tracking over the per-frame classification stream
Turns noisy frame results into at most one fired observation per streak
"""

import logging
from typing import Optional

from ecotrack.models.events import ClassificationEvent, ConsensusState, FiredObservation


class ConsensusTracker:
    """
    Tracks a streak of consecutive, same-label, high-confidence frames.

    A weak frame (confidence <= threshold) discards the streak and the
    current label. A confident frame with a new label restarts the streak
    at 1. When the streak reaches the required length one observation is
    fired and the count goes back to 0, so the next firing needs a full
    new streak.

    Not thread-safe; callers serialize delivery.
    """

    def __init__(self, confidence_threshold: float = 0.75, required_streak_length: int = 8):
        """
        Initialize consensus tracker

        Args:
            confidence_threshold: Frames must be strictly above this to count
            required_streak_length: Streak length that fires an observation
        """
        if required_streak_length < 1:
            raise ValueError("required_streak_length must be >= 1")

        self.confidence_threshold = confidence_threshold
        self.required_streak_length = required_streak_length

        self.current_label: Optional[str] = None
        self.streak_count = 0

        self.setup_logging()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def observe(self, event: ClassificationEvent) -> Optional[FiredObservation]:
        """
        Feed one frame result

        Args:
            event: Validated classification event

        Returns:
            FiredObservation when this frame completes a streak, else None
        """
        if event.confidence <= self.confidence_threshold:
            if self.streak_count:
                self.logger.debug(
                    f"Weak frame ({event.confidence:.2f}) reset streak of "
                    f"{self.streak_count} for '{self.current_label}'"
                )
            self.reset()
            return None

        if event.label == self.current_label:
            self.streak_count += 1
        else:
            self.current_label = event.label
            self.streak_count = 1

        if self.streak_count < self.required_streak_length:
            return None

        self.streak_count = 0
        self.logger.info(f"Consensus reached for '{event.label}' at {event.observed_at:.3f}")
        return FiredObservation(label=event.label, observed_at=event.observed_at)

    def reset(self):
        """Drop the current streak (weak frame, session resume, frame gap)"""
        self.current_label = None
        self.streak_count = 0

    @property
    def state(self) -> ConsensusState:
        return ConsensusState(current_label=self.current_label, streak_count=self.streak_count)

    @property
    def progress(self) -> float:
        """Fraction of the required streak accumulated so far"""
        return self.streak_count / self.required_streak_length
