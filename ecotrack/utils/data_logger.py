"""
Data logging system for CSV/JSON output
Handles local storage of awarded rewards and daily point summaries
"""

import csv
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ecotrack.models.events import RewardEvent


class DataLogger:
    """
    Handles logging of awarded rewards to CSV and JSON formats
    Thread-safe logging with configurable output formats
    """

    def __init__(self, log_dir: str = "logs", enable_csv: bool = True,
                 enable_json: bool = True):
        """
        Initialize data logger

        Args:
            log_dir: Directory for log files
            enable_csv: Enable CSV logging
            enable_json: Enable JSON logging
        """
        self.log_dir = Path(log_dir)
        self.enable_csv = enable_csv
        self.enable_json = enable_json

        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.csv_rewards_file = self.log_dir / "rewards.csv"
        self.jsonl_realtime_file = self.log_dir / "realtime_rewards.jsonl"

        self.lock = threading.Lock()

        self.setup_logging()
        self._initialize_csv_files()

        self.logger.info(f"Data logger initialized: {log_dir}")

    def setup_logging(self):
        """Setup logging"""
        self.logger = logging.getLogger(__name__)

    def _daily_file(self, date: Optional[str] = None) -> Path:
        if date is None:
            date = datetime.now().strftime('%Y%m%d')
        return self.log_dir / f"rewards_{date}.json"

    def _initialize_csv_files(self):
        """Initialize CSV file with headers if it doesn't exist"""
        if not self.enable_csv:
            return

        headers = ["awarded_at", "datetime", "label", "category", "points", "total_points"]

        if not self.csv_rewards_file.exists():
            with open(self.csv_rewards_file, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(headers)

    def _initialize_daily_json(self, daily_file: Path, date: str):
        """Create an empty daily summary file"""
        with open(daily_file, 'w') as f:
            json.dump({
                "date": date,
                "rewards": [],
                "daily_summary": {
                    "total_rewards": 0,
                    "total_points": 0,
                    "categories": {}
                }
            }, f, indent=2)

    def log_reward(self, reward: RewardEvent, total_points: Optional[int] = None):
        """
        Log an awarded reward

        Args:
            reward: Reward event produced by the pipeline
            total_points: Ledger total after the reward was applied
        """
        with self.lock:
            try:
                if self.enable_csv:
                    self._log_reward_csv(reward, total_points)

                if self.enable_json:
                    self._log_reward_realtime(reward, total_points)
                    self._update_daily_json(reward)

                self.logger.debug(f"Logged reward for {reward.label}")

            except Exception as e:
                self.logger.error(f"Failed to log reward for {reward.label}: {e}")

    def _log_reward_csv(self, reward: RewardEvent, total_points: Optional[int]):
        """Append a reward row to CSV"""
        row = [
            reward.awarded_at,
            datetime.fromtimestamp(reward.awarded_at).isoformat(),
            reward.label,
            reward.category,
            reward.points_delta,
            total_points if total_points is not None else "",
        ]

        with open(self.csv_rewards_file, 'a', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(row)

    def _log_reward_realtime(self, reward: RewardEvent, total_points: Optional[int]):
        """Append a reward to the JSON lines stream"""
        entry = reward.to_dict()
        entry["total_points"] = total_points

        with open(self.jsonl_realtime_file, 'a') as f:
            f.write(json.dumps(entry, ensure_ascii=False) + '\n')

    def _update_daily_json(self, reward: RewardEvent):
        """Update the daily JSON summary for the reward's date"""
        date = datetime.fromtimestamp(reward.awarded_at).strftime('%Y%m%d')
        daily_file = self._daily_file(date)

        if not daily_file.exists():
            self._initialize_daily_json(daily_file, date)

        with open(daily_file, 'r') as f:
            daily_data = json.load(f)

        daily_data["rewards"].append(reward.to_dict())

        summary = daily_data["daily_summary"]
        summary["total_rewards"] += 1
        summary["total_points"] += reward.points_delta

        category = reward.category or "other"
        summary["categories"][category] = summary["categories"].get(category, 0) + reward.points_delta
        summary["last_updated"] = datetime.now().isoformat()

        with open(daily_file, 'w') as f:
            json.dump(daily_data, f, indent=2, ensure_ascii=False)

    def get_daily_summary(self, date: Optional[str] = None) -> Dict:
        """
        Get daily summary for a specific date

        Args:
            date: Date string in YYYYMMDD format, defaults to today

        Returns:
            Daily summary dictionary
        """
        if date is None:
            date = datetime.now().strftime('%Y%m%d')

        daily_file = self._daily_file(date)

        if not daily_file.exists():
            return {
                "date": date,
                "total_rewards": 0,
                "total_points": 0,
                "categories": {}
            }

        with open(daily_file, 'r') as f:
            data = json.load(f)

        summary = data.get("daily_summary", {})
        summary["date"] = data.get("date", date)
        return summary

    def get_recent_rewards(self, count: int = 10) -> List[Dict]:
        """
        Get the most recent rewards from the realtime stream

        Args:
            count: Number of recent rewards to return
        """
        if not self.jsonl_realtime_file.exists():
            return []

        with open(self.jsonl_realtime_file, 'r') as f:
            entries = [json.loads(line) for line in f if line.strip()]

        return entries[-count:]
