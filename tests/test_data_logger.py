import csv
from datetime import datetime

from ecotrack.models.events import RewardEvent
from ecotrack.utils.data_logger import DataLogger


def _reward(label, points, category, t):
    return RewardEvent(label=label, points_delta=points, awarded_at=t, category=category)


def test_rewards_written_to_csv_and_daily_summary(tmp_path):
    logger = DataLogger(log_dir=str(tmp_path))
    t = datetime(2026, 3, 14, 12, 0, 0).timestamp()

    logger.log_reward(_reward("plastic_bottle", 10, "plastic", t), total_points=10)
    logger.log_reward(_reward("glass_bottle", 30, "glass", t + 6), total_points=40)
    logger.log_reward(_reward("plastic_bag", 10, "plastic", t + 12), total_points=50)

    with open(tmp_path / "rewards.csv", newline='') as f:
        rows = list(csv.DictReader(f))
    assert [r["label"] for r in rows] == ["plastic_bottle", "glass_bottle", "plastic_bag"]
    assert rows[-1]["total_points"] == "50"

    summary = logger.get_daily_summary("20260314")
    assert summary["total_rewards"] == 3
    assert summary["total_points"] == 50
    assert summary["categories"] == {"plastic": 20, "glass": 30}

    recent = logger.get_recent_rewards(2)
    assert [r["label"] for r in recent] == ["glass_bottle", "plastic_bag"]
    assert recent[-1]["total_points"] == 50


def test_empty_summary_for_unknown_day(tmp_path):
    logger = DataLogger(log_dir=str(tmp_path))
    summary = logger.get_daily_summary("19990101")
    assert summary["total_points"] == 0
    assert logger.get_recent_rewards() == []


def test_disabled_outputs_write_nothing(tmp_path):
    logger = DataLogger(log_dir=str(tmp_path), enable_csv=False, enable_json=False)
    logger.log_reward(_reward("metal_can", 20, "metal", 1_700_000_000.0))
    assert list(tmp_path.iterdir()) == []
