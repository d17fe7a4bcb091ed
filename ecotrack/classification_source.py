"""
Classification source for the reward pipeline
Supports replay files, an opaque classifier over frames, and a simulated stream
"""

import csv
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ecotrack.models.events import ClassificationEvent

DEFAULT_SIMULATED_LABELS = (
    "plastic_bottle",
    "metal_can",
    "glass_bottle",
    "paper_cup",
    "background",
)


class ClassificationSource:
    """
    Unified classification source supporting:
    - Replay of recorded results (.csv or .jsonl / .json lines)
    - Live frames passed through an opaque classify(frame) -> (label, confidence)
    - Simulated mode with a seeded random stream for development
    """

    def __init__(self, source: str = 'simulated', fps: float = 30.0,
                 labels: Sequence[str] = DEFAULT_SIMULATED_LABELS,
                 seed: Optional[int] = None, start_time: Optional[float] = None,
                 max_frames: Optional[int] = None,
                 frames: Optional[Iterable[Any]] = None,
                 classifier: Optional[Callable[[Any], Tuple[str, float]]] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize classification source

        Args:
            source: 'simulated', 'classifier', or a replay file path
            fps: Frame rate used for simulated timestamps
            labels: Label vocabulary for simulated mode
            seed: Random seed for simulated mode
            start_time: First simulated timestamp, defaults to now
            max_frames: Stop after this many events (None = unlimited)
            frames: Frame iterable for classifier mode
            classifier: Opaque classifier callable for classifier mode
            clock: Timestamp source for classifier mode
        """
        self.fps = fps
        self.labels = list(labels)
        self.max_frames = max_frames
        self.clock = clock

        self.source_type = None
        self.is_recording = False
        self.exhausted = False
        self.frames_emitted = 0
        self.rows_skipped = 0

        self.setup_logging()

        if source == 'classifier':
            self._setup_classifier(frames, classifier)
        elif source == 'simulated':
            self._setup_simulated(seed, start_time)
        else:
            self._setup_replay(source)

    def setup_logging(self):
        """Setup logging for classification source"""
        self.logger = logging.getLogger(__name__)

    def _setup_classifier(self, frames, classifier):
        """Setup live classification over a frame iterable"""
        if frames is None or classifier is None:
            raise ValueError("Classifier mode needs both frames and a classifier callable")
        self._frames = iter(frames)
        self._classifier = classifier
        self.source_type = 'classifier'
        self.logger.info("Classifier source initialized")

    def _setup_simulated(self, seed: Optional[int], start_time: Optional[float]):
        """Setup simulated stream"""
        if not self.labels:
            raise ValueError("Simulated mode needs at least one label")
        self.rng = np.random.default_rng(seed)
        self.start_time = time.time() if start_time is None else float(start_time)
        self._sim_label: Optional[str] = None
        self._sim_remaining = 0
        self.source_type = 'simulated'
        self.logger.info(f"Simulated source initialized: {len(self.labels)} labels at {self.fps} fps")

    def _setup_replay(self, path: str):
        """Setup replay from a recorded results file"""
        self.replay_path = Path(path)
        if not self.replay_path.exists():
            raise FileNotFoundError(f"Replay file not found: {path}")

        rows = self._read_replay_rows(self.replay_path)
        self._replay_events: List[ClassificationEvent] = []
        for i, row in enumerate(rows):
            try:
                self._replay_events.append(ClassificationEvent.from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                self.rows_skipped += 1
                self.logger.warning(f"Skipping malformed replay row {i} in {path}: {e}")

        self._replay_index = 0
        self.source_type = 'replay'
        self.logger.info(f"Replay source initialized: {len(self._replay_events)} events from {path}")

    def _read_replay_rows(self, path: Path) -> List[dict]:
        if path.suffix.lower() == '.csv':
            with open(path, 'r', newline='', encoding='utf-8') as f:
                return list(csv.DictReader(f))

        rows = []
        with open(path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    self.rows_skipped += 1
                    self.logger.warning(f"Skipping unparseable line {line_number} in {path}: {e}")
        return rows

    def read_event(self) -> Optional[ClassificationEvent]:
        """
        Produce the next classification event

        Returns:
            Next event, or None when the source is exhausted or a frame failed
        """
        if self.exhausted:
            return None
        if self.max_frames is not None and self.frames_emitted >= self.max_frames:
            self.exhausted = True
            return None

        if self.source_type == 'classifier':
            event = self._read_classifier_event()
        elif self.source_type == 'replay':
            event = self._read_replay_event()
        else:
            event = self._read_simulated_event()

        if event is not None:
            self.frames_emitted += 1
        return event

    def _read_classifier_event(self) -> Optional[ClassificationEvent]:
        """Classify the next frame"""
        try:
            frame = next(self._frames)
        except StopIteration:
            self.exhausted = True
            return None

        try:
            label, confidence = self._classifier(frame)
        except Exception as e:
            self.logger.error(f"Classification failed: {e}")
            return None

        return ClassificationEvent(label=label, confidence=confidence, observed_at=self.clock())

    def _read_replay_event(self) -> Optional[ClassificationEvent]:
        """Return the next recorded event"""
        if self._replay_index >= len(self._replay_events):
            self.exhausted = True
            return None
        event = self._replay_events[self._replay_index]
        self._replay_index += 1
        return event

    def _read_simulated_event(self) -> ClassificationEvent:
        """Generate a simulated event: labels dwell for a while, confidence is noisy"""
        if self._sim_remaining <= 0:
            self._sim_label = self.labels[int(self.rng.integers(len(self.labels)))]
            self._sim_remaining = int(self.rng.integers(4, 24))
        self._sim_remaining -= 1

        # Occasional weak frame (motion blur, occlusion)
        if self.rng.random() < 0.1:
            confidence = float(self.rng.uniform(0.2, 0.7))
        else:
            confidence = float(np.clip(self.rng.normal(0.88, 0.06), 0.0, 1.0))

        observed_at = self.start_time + self.frames_emitted / self.fps
        return ClassificationEvent(label=self._sim_label, confidence=confidence, observed_at=observed_at)

    def events(self) -> Iterator[ClassificationEvent]:
        """Iterate events until the source is exhausted"""
        while not self.exhausted:
            event = self.read_event()
            if event is not None:
                yield event

    def start_recording(self):
        """Start continuous delivery mode"""
        self.is_recording = True
        self.logger.info("Started recording mode")

    def stop_recording(self):
        """Stop delivery mode"""
        self.is_recording = False
        self.logger.info("Stopped recording mode")

    def get_source_info(self) -> dict:
        """Get source information"""
        info = {
            "type": self.source_type,
            "fps": self.fps,
            "is_recording": self.is_recording,
            "frames_emitted": self.frames_emitted,
            "exhausted": self.exhausted,
        }

        if self.source_type == 'replay':
            info.update({
                "replay_path": str(self.replay_path),
                "event_count": len(self._replay_events),
                "rows_skipped": self.rows_skipped,
            })

        return info

    def release(self):
        """Release source resources"""
        self.is_recording = False
        self.exhausted = True
        self.logger.info("Classification source released")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.release()
