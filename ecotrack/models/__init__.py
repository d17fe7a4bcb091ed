"""
Models package initialization
"""

from .events import (
    ClassificationEvent,
    ConsensusState,
    FiredObservation,
    PipelineOutcome,
    Rejection,
    RewardEvent,
)
from .reward_classifier import RewardClassifier

__all__ = [
    'ClassificationEvent', 'ConsensusState', 'FiredObservation',
    'PipelineOutcome', 'Rejection', 'RewardEvent', 'RewardClassifier',
]
