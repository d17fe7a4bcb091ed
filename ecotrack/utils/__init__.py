"""
Utilities package initialization
"""

from .consensus_tracker import ConsensusTracker
from .cooldown_gate import CooldownGate
from .data_logger import DataLogger
from .reward_ledger import RewardLedger

__all__ = ['ConsensusTracker', 'CooldownGate', 'DataLogger', 'RewardLedger']
