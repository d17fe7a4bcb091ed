import json
import threading

import pytest

from ecotrack.models.events import RewardEvent
from ecotrack.utils.reward_ledger import RewardLedger


def test_add_and_read():
    ledger = RewardLedger()
    assert ledger.total == 0
    assert ledger.add(10) == 10
    assert ledger.add(0) == 10
    assert ledger.apply(RewardEvent(label="glass_bottle", points_delta=30, awarded_at=1.0)) == 40
    assert ledger.total == 40


def test_negative_delta_rejected():
    ledger = RewardLedger(initial_points=5)
    with pytest.raises(ValueError):
        ledger.add(-1)
    assert ledger.total == 5


def test_concurrent_adds_are_not_lost():
    ledger = RewardLedger()

    def worker():
        for _ in range(1000):
            ledger.add(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert ledger.total == 8000


def test_total_persists_across_instances(tmp_path):
    state_file = tmp_path / "state" / "ledger.json"

    ledger = RewardLedger(state_file=state_file)
    ledger.add(20)
    ledger.add(10)

    with open(state_file) as f:
        assert json.load(f)["eco_points"] == 30

    reloaded = RewardLedger(state_file=state_file)
    assert reloaded.total == 30


def test_corrupt_state_file_starts_from_initial(tmp_path):
    state_file = tmp_path / "ledger.json"
    state_file.write_text("{not json")

    ledger = RewardLedger(state_file=state_file, initial_points=3)
    assert ledger.total == 3


def test_state_file_is_replaced_whole(tmp_path):
    state_file = tmp_path / "ledger.json"

    ledger = RewardLedger(state_file=state_file)
    for _ in range(5):
        ledger.add(10)

    assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]
    with open(state_file) as f:
        assert json.load(f)["eco_points"] == 50


def test_failed_save_keeps_previous_state(tmp_path, monkeypatch):
    state_file = tmp_path / "ledger.json"
    ledger = RewardLedger(state_file=state_file)
    ledger.add(10)

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("ecotrack.utils.reward_ledger.os.replace", broken_replace)
    assert ledger.add(20) == 30

    with open(state_file) as f:
        assert json.load(f)["eco_points"] == 10
