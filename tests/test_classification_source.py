import json

import pytest

from ecotrack.classification_source import ClassificationSource


def test_replay_csv(tmp_path):
    path = tmp_path / "session.csv"
    path.write_text(
        "label,confidence,timestamp\n"
        "plastic_bottle,0.91,0.0\n"
        "plastic_bottle,not-a-number,0.1\n"
        "metal_can,0.88,0.2\n",
        encoding="utf-8",
    )

    with ClassificationSource(source=str(path)) as source:
        events = list(source.events())
        info = source.get_source_info()

    assert [(e.label, e.confidence, e.observed_at) for e in events] == [
        ("plastic_bottle", 0.91, 0.0),
        ("metal_can", 0.88, 0.2),
    ]
    assert info["type"] == "replay"
    assert info["rows_skipped"] == 1


def test_replay_jsonl_keeps_out_of_range_values_for_the_engine(tmp_path):
    path = tmp_path / "session.jsonl"
    lines = [
        {"label": "glass_bottle", "confidence": 0.95, "observed_at": 1.0},
        {"label": "glass_bottle", "confidence": 1.7, "observed_at": 1.1},
        {"confidence": 0.9, "observed_at": 1.2},
    ]
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n", encoding="utf-8")

    source = ClassificationSource(source=str(path))
    events = list(source.events())

    assert len(events) == 2
    assert events[1].confidence == 1.7
    assert source.rows_skipped == 1


def test_replay_jsonl_skips_truncated_lines(tmp_path):
    path = tmp_path / "session.jsonl"
    path.write_text(
        json.dumps({"label": "metal_can", "confidence": 0.9, "observed_at": 2.0}) + "\n"
        "{truncated\n"
        "\n"
        + json.dumps({"label": "metal_can", "confidence": 0.9, "observed_at": 2.1}) + "\n",
        encoding="utf-8",
    )

    source = ClassificationSource(source=str(path))
    events = list(source.events())

    assert [e.observed_at for e in events] == [2.0, 2.1]
    assert source.rows_skipped == 1


def test_missing_replay_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ClassificationSource(source=str(tmp_path / "missing.csv"))


def test_simulated_stream_is_reproducible():
    a = ClassificationSource(source="simulated", seed=7, start_time=100.0, fps=10.0, max_frames=50)
    b = ClassificationSource(source="simulated", seed=7, start_time=100.0, fps=10.0, max_frames=50)

    events_a = list(a.events())
    events_b = list(b.events())

    assert events_a == events_b
    assert len(events_a) == 50
    assert events_a[0].observed_at == 100.0
    assert events_a[10].observed_at == pytest.approx(101.0)
    assert all(0.0 <= e.confidence <= 1.0 for e in events_a)
    assert {e.label for e in events_a} <= set(a.labels)
    assert a.read_event() is None


def test_classifier_mode_wraps_opaque_callable():
    frames = ["frame-a", "frame-b", "broken", "frame-c"]
    ticks = iter([10.0, 10.1, 10.2, 10.3])

    def classify(frame):
        if frame == "broken":
            raise RuntimeError("model failure")
        return "plastic_" + frame[-1], 0.8

    source = ClassificationSource(source="classifier", frames=frames, classifier=classify,
                                  clock=lambda: next(ticks))
    events = list(source.events())

    assert [e.label for e in events] == ["plastic_a", "plastic_b", "plastic_c"]
    assert [e.observed_at for e in events] == [10.0, 10.1, 10.2]
    assert source.exhausted


def test_classifier_mode_requires_callable():
    with pytest.raises(ValueError):
        ClassificationSource(source="classifier", frames=[1, 2, 3])
