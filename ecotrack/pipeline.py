"""
Recognition-to-reward pipeline
Consensus tracker -> reward classifier -> cooldown gate -> ledger delta
"""

import logging
import math
import numbers
from typing import Dict, Optional

from ecotrack.config import EngineConfig
from ecotrack.models.events import (
    ClassificationEvent,
    PENDING,
    PipelineOutcome,
    Rejection,
    RewardEvent,
    REASON_COOLDOWN,
    REASON_INVALID,
    STATUS_REJECTED_COOLDOWN,
    STATUS_REJECTED_INVALID,
    STATUS_REJECTED_NO_CATEGORY,
    STATUS_REWARDED,
)
from ecotrack.models.reward_classifier import RewardClassifier
from ecotrack.utils.consensus_tracker import ConsensusTracker
from ecotrack.utils.cooldown_gate import CooldownGate


class RewardPipeline:
    """
    Single entry point for every reward-eligible trigger.

    Each call is one synchronous pass over one event; nothing is buffered.
    Bad frames are rejected locally and never raise, so a long-running
    stream keeps going past a corrupt result.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize reward pipeline

        Args:
            config: Engine configuration, defaults to the reference values
        """
        self.config = config or EngineConfig()

        self.reward_classifier = RewardClassifier(self.config.category_rewards)
        self.tracker = ConsensusTracker(
            confidence_threshold=self.config.confidence_threshold,
            required_streak_length=self.config.required_streak_length,
        )
        self.gate = CooldownGate(self.reward_classifier, self.config.cooldown_seconds)

        self.last_observed_at: Optional[float] = None

        # Statistics tracking
        self.frames_processed = 0
        self.frames_invalid = 0
        self.observations_fired = 0
        self.rewards_awarded = 0
        self.points_awarded = 0
        self.rejected_cooldown = 0
        self.rejected_no_category = 0

        self.setup_logging()
        self.logger.info(
            f"Reward pipeline initialized: threshold={self.config.confidence_threshold}, "
            f"streak={self.config.required_streak_length}, cooldown={self.config.cooldown_seconds}s"
        )

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def on_classification(self, event: ClassificationEvent) -> Optional[RewardEvent]:
        """
        Process one classification event

        Returns:
            RewardEvent if this event produced a payout, else None
        """
        return self.evaluate(event).reward

    def evaluate(self, event: ClassificationEvent) -> PipelineOutcome:
        """Process one classification event and report the full outcome"""
        problem = self._validate(event)
        if problem:
            self.frames_invalid += 1
            self.logger.warning(f"Ignoring invalid classification event ({problem}): {event!r}")
            return PipelineOutcome(
                status=STATUS_REJECTED_INVALID,
                rejection=Rejection(reason=REASON_INVALID, label=str(getattr(event, "label", ""))),
            )

        self.frames_processed += 1
        self._check_frame_gap(event.observed_at)
        self.last_observed_at = event.observed_at

        fired = self.tracker.observe(event)
        if fired is None:
            return PENDING

        self.observations_fired += 1
        result = self.gate.try_award(fired, now=event.observed_at)

        if isinstance(result, Rejection):
            if result.reason == REASON_COOLDOWN:
                self.rejected_cooldown += 1
                status = STATUS_REJECTED_COOLDOWN
            else:
                self.rejected_no_category += 1
                status = STATUS_REJECTED_NO_CATEGORY
            return PipelineOutcome(status=status, fired=fired, rejection=result)

        self.rewards_awarded += 1
        self.points_awarded += result.points_delta
        return PipelineOutcome(status=STATUS_REWARDED, fired=fired, reward=result)

    def _validate(self, event) -> Optional[str]:
        """Return a description of what is wrong with the event, or None"""
        if not isinstance(event, ClassificationEvent):
            return "not a classification event"
        if not isinstance(event.label, str) or not event.label.strip():
            return "empty label"

        confidence = event.confidence
        if isinstance(confidence, bool) or not isinstance(confidence, numbers.Real):
            return "confidence is not a number"
        if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
            return f"confidence {confidence} outside [0, 1]"

        observed_at = event.observed_at
        if isinstance(observed_at, bool) or not isinstance(observed_at, numbers.Real):
            return "timestamp is not a number"
        if not math.isfinite(observed_at):
            return "timestamp is not finite"
        if self.last_observed_at is not None and observed_at < self.last_observed_at:
            return f"timestamp {observed_at} earlier than previous {self.last_observed_at}"
        return None

    def _check_frame_gap(self, observed_at: float):
        """Reset the streak when the stream went quiet for too long"""
        max_gap = self.config.max_frame_gap_seconds
        if max_gap is None or self.last_observed_at is None:
            return
        gap = observed_at - self.last_observed_at
        if gap > max_gap and self.tracker.streak_count:
            self.logger.info(f"Frame gap of {gap:.2f}s, discarding streak for '{self.tracker.current_label}'")
            self.tracker.reset()

    def reset_session(self):
        """
        Forget the in-progress streak, e.g. when the camera session resumes.
        Cooldown state is kept; timestamp ordering starts over.
        """
        self.tracker.reset()
        self.last_observed_at = None
        self.logger.info("Session reset: consensus state cleared")

    def get_statistics(self) -> Dict:
        """Get overall pipeline statistics"""
        return {
            "frames_processed": self.frames_processed,
            "frames_invalid": self.frames_invalid,
            "observations_fired": self.observations_fired,
            "rewards_awarded": self.rewards_awarded,
            "points_awarded": self.points_awarded,
            "rejected_cooldown": self.rejected_cooldown,
            "rejected_no_category": self.rejected_no_category,
            "current_label": self.tracker.current_label,
            "streak_count": self.tracker.streak_count,
            "streak_progress": self.tracker.progress,
        }
