import pytest

from ecotrack.models.events import ClassificationEvent, ConsensusState
from ecotrack.utils.consensus_tracker import ConsensusTracker


def _event(label: str, confidence: float = 0.9, t: float = 0.0):
    return ClassificationEvent(label=label, confidence=confidence, observed_at=t)


def _feed(tracker, label, count, confidence=0.9, start=0.0, step=0.1):
    fired = []
    for i in range(count):
        obs = tracker.observe(_event(label, confidence, start + i * step))
        if obs is not None:
            fired.append(obs)
    return fired


def test_fires_once_at_required_length():
    tracker = ConsensusTracker(confidence_threshold=0.75, required_streak_length=8)
    results = [tracker.observe(_event("plastic_bottle", 0.9, i * 0.1)) for i in range(8)]

    assert all(r is None for r in results[:7])
    assert results[7] is not None
    assert results[7].label == "plastic_bottle"
    assert results[7].observed_at == pytest.approx(0.7)
    assert tracker.streak_count == 0


def test_one_firing_per_full_streak():
    tracker = ConsensusTracker(required_streak_length=8)
    assert len(_feed(tracker, "metal_can", 8 + 5)) == 1
    assert tracker.streak_count == 5

    tracker = ConsensusTracker(required_streak_length=8)
    assert len(_feed(tracker, "metal_can", 8 * 3)) == 3


def test_low_confidence_never_fires():
    tracker = ConsensusTracker(confidence_threshold=0.75, required_streak_length=3)
    assert _feed(tracker, "glass_bottle", 50, confidence=0.75) == []
    assert _feed(tracker, "glass_bottle", 50, confidence=0.1) == []
    assert tracker.state == ConsensusState(current_label=None, streak_count=0)


def test_weak_frame_resets_streak_and_label():
    tracker = ConsensusTracker(required_streak_length=8)
    _feed(tracker, "plastic_bottle", 7)
    assert tracker.streak_count == 7

    tracker.observe(_event("plastic_bottle", 0.5))
    assert tracker.streak_count == 0
    assert tracker.current_label is None

    # Needs a full new streak afterwards
    assert len(_feed(tracker, "plastic_bottle", 7)) == 0
    assert len(_feed(tracker, "plastic_bottle", 1)) == 1


def test_label_change_mid_streak_resets_progress():
    tracker = ConsensusTracker(required_streak_length=8)
    assert _feed(tracker, "plastic_bottle", 7) == []

    assert tracker.observe(_event("metal_can")) is None
    assert tracker.state == ConsensusState(current_label="metal_can", streak_count=1)

    # One more A frame does not complete the old streak
    assert tracker.observe(_event("plastic_bottle")) is None
    assert tracker.streak_count == 1


def test_alternating_labels_stay_at_one():
    tracker = ConsensusTracker(required_streak_length=2)
    for i in range(20):
        label = "plastic" if i % 2 else "metal"
        assert tracker.observe(_event(label, 0.99, i)) is None
        assert tracker.streak_count == 1


def test_reset_and_progress():
    tracker = ConsensusTracker(required_streak_length=4)
    _feed(tracker, "glass_jar", 2)
    assert tracker.progress == 0.5

    tracker.reset()
    assert tracker.progress == 0.0
    assert tracker.current_label is None
