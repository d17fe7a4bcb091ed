"""
Event and result types flowing through the reward pipeline
ClassificationEvent -> FiredObservation -> RewardEvent | Rejection
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

# Rejection reasons
REASON_NO_CATEGORY = "no reward category matched"
REASON_COOLDOWN = "cooldown"
REASON_INVALID = "invalid input"

# Pipeline outcome statuses
STATUS_PENDING = "pending"
STATUS_REWARDED = "rewarded"
STATUS_REJECTED_COOLDOWN = "rejected_cooldown"
STATUS_REJECTED_NO_CATEGORY = "rejected_no_category"
STATUS_REJECTED_INVALID = "rejected_invalid"


@dataclass(frozen=True)
class ClassificationEvent:
    """One per-frame result from the external classifier"""
    label: str
    confidence: float
    observed_at: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassificationEvent":
        """
        Build an event from a mapping (replay files, JSON payloads)

        Accepts ``observed_at`` or ``timestamp`` for the time field.
        Raises KeyError/ValueError when a field is missing or not numeric.
        """
        observed_at = data["observed_at"] if "observed_at" in data else data["timestamp"]
        return cls(
            label=str(data["label"]),
            confidence=float(data["confidence"]),
            observed_at=float(observed_at),
        )


@dataclass(frozen=True)
class ConsensusState:
    """Snapshot of the consensus tracker"""
    current_label: Optional[str] = None
    streak_count: int = 0


@dataclass(frozen=True)
class FiredObservation:
    """A streak that reached the required length"""
    label: str
    observed_at: float


@dataclass(frozen=True)
class RewardEvent:
    """Points to hand to the ledger. Only the cooldown gate creates these."""
    label: str
    points_delta: int
    awarded_at: float
    category: str = ""

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "label": self.label,
            "category": self.category,
            "points_delta": self.points_delta,
            "awarded_at": self.awarded_at,
            "datetime": datetime.fromtimestamp(self.awarded_at).isoformat(),
        }


@dataclass(frozen=True)
class Rejection:
    """Non-fatal refusal to pay out"""
    reason: str
    label: str = ""
    at: Optional[float] = None
    retry_after: Optional[float] = None  # seconds left in the cooldown window


@dataclass(frozen=True)
class PipelineOutcome:
    """Full result of pushing one event through the pipeline"""
    status: str
    fired: Optional[FiredObservation] = None
    reward: Optional[RewardEvent] = None
    rejection: Optional[Rejection] = None

    @property
    def rewarded(self) -> bool:
        return self.reward is not None


PENDING = PipelineOutcome(status=STATUS_PENDING)
