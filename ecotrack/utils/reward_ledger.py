"""
Reward ledger holding the running eco-points total
Thread-safe add-and-read with optional JSON persistence
"""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from ecotrack.models.events import RewardEvent


class RewardLedger:
    """
    Running total of eco points.

    Updated from the processing thread and read from the display thread,
    so every read and write goes through one lock. Persistence happens
    after the total is updated and never blocks the decision logic.
    """

    def __init__(self, state_file: Optional[Union[str, Path]] = None, initial_points: int = 0):
        """
        Initialize reward ledger

        Args:
            state_file: JSON file to load from and save to, None for in-memory only
            initial_points: Starting total when there is no state file
        """
        self.state_file = Path(state_file) if state_file else None
        self.lock = threading.Lock()
        self._total = int(initial_points)

        self.setup_logging()
        self._load_state()

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def _load_state(self):
        """Load the persisted total if a state file exists"""
        if self.state_file is None or not self.state_file.exists():
            return

        try:
            with open(self.state_file, 'r') as f:
                data = json.load(f)
            self._total = int(data.get("eco_points", 0))
            self.logger.info(f"Loaded ledger total {self._total} from {self.state_file}")
        except Exception as e:
            self.logger.error(f"Failed to load ledger state {self.state_file}: {e}")

    def _save_state(self, total: int):
        """Write the total to the state file"""
        if self.state_file is None:
            return

        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            # Readers only ever see the old file or the complete new one
            tmp_file = self.state_file.with_name(self.state_file.name + '.tmp')
            with open(tmp_file, 'w') as f:
                json.dump({"eco_points": total, "updated": datetime.now().isoformat()}, f, indent=2)
            os.replace(tmp_file, self.state_file)
        except Exception as e:
            self.logger.error(f"Failed to save ledger state {self.state_file}: {e}")

    def add(self, points: int) -> int:
        """
        Atomically add points to the running total

        Args:
            points: Non-negative point delta

        Returns:
            The new total
        """
        if points < 0:
            raise ValueError(f"Ledger only accepts non-negative deltas, got {points}")

        with self.lock:
            self._total += int(points)
            total = self._total
            self._save_state(total)

        self.logger.debug(f"Ledger +{points} -> {total}")
        return total

    def apply(self, reward: RewardEvent) -> int:
        """Apply a reward event's delta and return the new total"""
        total = self.add(reward.points_delta)
        self.logger.info(f"Credited {reward.points_delta} points for '{reward.label}', total {total}")
        return total

    @property
    def total(self) -> int:
        with self.lock:
            return self._total

    def get_status(self) -> Dict:
        return {
            "eco_points": self.total,
            "state_file": str(self.state_file) if self.state_file else None,
        }
