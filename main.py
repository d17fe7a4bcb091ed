#!/usr/bin/env python3
"""
EcoTrack Reward Engine - Main Application
Turns a stream of waste classification results into eco points

This script orchestrates all components:
- Classification source (replay file, simulated stream, or live classifier)
- Reward pipeline (consensus tracking, reward classification, cooldown)
- Reward ledger with persistent point total
- CSV/JSON reward logging

Usage:
    python main.py [--config config.json] [--simulate] [--replay FILE] [--debug]
"""

import argparse
import json
import logging
import queue
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from ecotrack.classification_source import ClassificationSource, DEFAULT_SIMULATED_LABELS
from ecotrack.config import EngineConfig
from ecotrack.models.events import ClassificationEvent, PipelineOutcome, STATUS_REJECTED_INVALID
from ecotrack.pipeline import RewardPipeline
from ecotrack.utils.data_logger import DataLogger
from ecotrack.utils.reward_ledger import RewardLedger


class EcoTrackSystem:
    """
    Main eco reward system
    Feeds classification events through the reward pipeline on a single
    processing thread and credits the ledger
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the eco reward system

        Args:
            config: Configuration dictionary
        """
        self.config = config
        self.running = False
        self.paused = False
        self.setup_logging()

        # Initialize components
        self.source = None
        self.pipeline = None
        self.ledger = None
        self.data_logger = None

        # Inbound handoff from source / UI threads
        self.event_queue: queue.Queue = queue.Queue(maxsize=config.get('queue_size', 1000))
        self.events_dropped = 0

        # Last seen prediction for display
        self.status_lock = threading.Lock()
        self.last_prediction = ""
        self.last_confidence = 0.0
        self.last_observed_at = None

        self.processing_lock = threading.Lock()
        self.processing_thread = None
        self.feeder_thread = None
        self.source_finished = False
        self.start_time = None

        self.logger.info("EcoTrack system initialized")

    def setup_logging(self):
        """Setup logging configuration"""
        log_level = getattr(logging, self.config.get('log_level', 'INFO'))
        log_dir = Path(self.config.get('logging', {}).get('directory', 'logs'))
        log_dir.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(log_dir / 'ecotrack.log')
            ]
        )
        self.logger = logging.getLogger(__name__)

    def initialize_components(self):
        """Initialize all system components"""
        try:
            self.logger.info("Initializing system components...")

            engine_config = EngineConfig.from_dict(self.config.get('engine'))
            self.pipeline = RewardPipeline(engine_config)

            ledger_config = self.config.get('ledger', {})
            self.ledger = RewardLedger(state_file=ledger_config.get('state_file'))

            logging_config = self.config.get('logging', {})
            self.data_logger = DataLogger(
                log_dir=logging_config.get('directory', 'logs'),
                enable_csv=logging_config.get('enable_csv', True),
                enable_json=logging_config.get('enable_json', True)
            )

            source_config = self.config.get('source', {})
            source_type = source_config.get('type', 'simulated')
            if source_type != 'none':
                self.source = ClassificationSource(
                    source=source_type,
                    fps=source_config.get('fps', 30.0),
                    labels=source_config.get('labels') or DEFAULT_SIMULATED_LABELS,
                    seed=source_config.get('seed'),
                    max_frames=source_config.get('max_frames'),
                )

            self.logger.info("All components initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize components: {e}")
            raise

    def start(self):
        """Start the eco reward system"""
        if self.running:
            self.logger.warning("System is already running")
            return

        try:
            self.initialize_components()
            self.running = True
            self.start_time = time.time()

            self.processing_thread = threading.Thread(target=self._processing_loop, daemon=True)
            self.processing_thread.start()

            if self.source is not None:
                self.source.start_recording()
                self.feeder_thread = threading.Thread(target=self._feeder_loop, daemon=True)
                self.feeder_thread.start()
            else:
                self.source_finished = True

            self.logger.info("EcoTrack system started successfully")

        except Exception as e:
            self.logger.error(f"Failed to start system: {e}")
            self.stop()
            raise

    def stop(self):
        """Stop the eco reward system"""
        if not self.running:
            return

        self.logger.info("Stopping EcoTrack system...")
        self.running = False

        if self.feeder_thread and self.feeder_thread.is_alive():
            self.feeder_thread.join(timeout=5.0)
        if self.processing_thread and self.processing_thread.is_alive():
            self.processing_thread.join(timeout=5.0)

        # Events already handed over still get decided
        self.drain()

        if self.source:
            self.source.release()

        self._log_final_statistics()
        self.logger.info("EcoTrack system stopped")

    def pause(self):
        """Pause the stream (e.g. app backgrounded); incoming events are ignored"""
        self.paused = True
        if self.source:
            self.source.stop_recording()
        self.logger.info("EcoTrack system paused")

    def resume(self):
        """Resume the stream with a fresh consensus state"""
        with self.processing_lock:
            if self.pipeline:
                self.pipeline.reset_session()
            self.paused = False
        with self.status_lock:
            # Timestamps may start over after a resume
            self.last_prediction = ""
            self.last_confidence = 0.0
            self.last_observed_at = None
        if self.source:
            self.source.start_recording()
        self.logger.info("EcoTrack system resumed")

    def submit(self, event: ClassificationEvent, block: bool = False, timeout: float = 1.0) -> bool:
        """
        Hand an event to the processing thread. Safe to call from any thread.

        Args:
            event: Classification event
            block: Wait up to timeout for queue space instead of dropping
            timeout: Seconds to wait when blocking

        Returns:
            True if queued, False if the queue was full and the event dropped
        """
        try:
            self.event_queue.put(event, block=block, timeout=timeout if block else None)
            return True
        except queue.Full:
            self.events_dropped += 1
            self.logger.warning("Event queue full, dropping classification event")
            return False

    def confirm_manually(self, now: Optional[float] = None) -> bool:
        """
        Manual "confirm disposal" action

        Submits the last seen prediction as one more classification event, so
        it only counts toward a streak and is subject to the same cooldown.
        The event is stamped on the stream's time base: the last seen
        frame time, or ``now`` when that is later.

        Args:
            now: Confirm time in the stream's time base

        Returns:
            True if an event was submitted
        """
        with self.status_lock:
            label = self.last_prediction
            confidence = self.last_confidence
            last_observed_at = self.last_observed_at

        if not label:
            self.logger.info("Manual confirm ignored: nothing recognized yet")
            return False

        event = ClassificationEvent(
            label=label,
            confidence=confidence,
            observed_at=last_observed_at if now is None else max(now, last_observed_at),
        )
        self.logger.info(f"Manual confirm for '{label}'")
        return self.submit(event)

    def _feeder_loop(self):
        """Move events from the classification source to the queue"""
        source_config = self.config.get('source', {})
        pace = source_config.get('realtime', True)
        interval = 1.0 / self.source.fps if self.source.fps > 0 else 0.0

        for event in self.source.events():
            if not self.running:
                break
            if self.paused:
                time.sleep(0.1)
                continue
            self.submit(event, block=True)
            if pace and interval:
                time.sleep(interval)

        self.source_finished = True
        self.logger.info("Classification source finished")

    def _processing_loop(self):
        """Main processing loop, one event at a time"""
        self.logger.info("Starting reward processing loop")

        while self.running:
            try:
                event = self.event_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                self.process_event(event)
            except Exception as e:
                self.logger.error(f"Error in processing loop: {e}")
            finally:
                self.event_queue.task_done()

    def process_event(self, event: ClassificationEvent) -> Optional[PipelineOutcome]:
        """
        Run one event through the pipeline and credit any reward

        Returns:
            Pipeline outcome, or None when paused
        """
        with self.processing_lock:
            if self.paused:
                self.logger.debug("Paused, ignoring classification event")
                return None

            outcome = self.pipeline.evaluate(event)

        if outcome.status != STATUS_REJECTED_INVALID:
            with self.status_lock:
                self.last_prediction = event.label
                self.last_confidence = event.confidence
                self.last_observed_at = event.observed_at

        if outcome.reward is not None:
            total = self.ledger.apply(outcome.reward)
            self.data_logger.log_reward(outcome.reward, total)

        return outcome

    def drain(self) -> int:
        """Process everything waiting in the queue on the calling thread"""
        processed = 0
        while True:
            try:
                event = self.event_queue.get_nowait()
            except queue.Empty:
                return processed

            try:
                self.process_event(event)
                processed += 1
            except Exception as e:
                self.logger.error(f"Failed to process queued event: {e}")
            finally:
                self.event_queue.task_done()

    def _log_final_statistics(self):
        """Log final system statistics on shutdown"""
        try:
            if not self.start_time or not self.pipeline:
                return

            uptime_minutes = (time.time() - self.start_time) / 60.0
            stats = self.pipeline.get_statistics()

            self.logger.info(
                f"Final Stats - Runtime: {uptime_minutes:.1f}min, "
                f"Frames: {stats['frames_processed']}, "
                f"Rewards: {stats['rewards_awarded']}, "
                f"Points: {stats['points_awarded']}, "
                f"Total: {self.ledger.total}"
            )

        except Exception as e:
            self.logger.error(f"Error logging final statistics: {e}")

    def get_status(self) -> Dict:
        """Get current system status"""
        if not self.running:
            return {"status": "stopped"}

        try:
            with self.status_lock:
                last_prediction = self.last_prediction
                last_confidence = self.last_confidence

            uptime = (time.time() - self.start_time) / 60.0 if self.start_time else 0

            return {
                "status": "paused" if self.paused else "running",
                "uptime_minutes": uptime,
                "last_prediction": last_prediction,
                "last_confidence": last_confidence,
                "eco_points": self.ledger.total,
                "queued_events": self.event_queue.qsize(),
                "events_dropped": self.events_dropped,
                "source": self.source.get_source_info() if self.source else None,
                "pipeline": self.pipeline.get_statistics(),
            }

        except Exception as e:
            return {"status": "error", "error": str(e)}


def merge_dicts(default: Dict, user: Dict) -> Dict:
    """Recursively merge user config over defaults"""
    result = default.copy()
    for key, value in user.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from file or use defaults"""
    default_config = {
        "engine": EngineConfig().to_dict(),
        "source": {
            "type": "simulated",
            "fps": 30.0,
            "labels": list(DEFAULT_SIMULATED_LABELS),
            "seed": None,
            "max_frames": None,
            "realtime": True
        },
        "ledger": {
            "state_file": "data/ledger.json"
        },
        "logging": {
            "directory": "logs",
            "enable_csv": True,
            "enable_json": True
        },
        "queue_size": 1000,
        "log_level": "INFO"
    }

    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)
            return merge_dicts(default_config, user_config)
        except Exception as e:
            print(f"Warning: Failed to load config {config_path}: {e}")
            print("Using default configuration")

    return default_config


system = None


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    print("\nReceived shutdown signal. Stopping system...")
    if system:
        system.stop()
    sys.exit(0)


def main():
    """Main entry point"""
    global system

    parser = argparse.ArgumentParser(description="EcoTrack Reward Engine")
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--simulate', '-s', action='store_true',
                        help='Force simulated classification stream')
    parser.add_argument('--replay', '-r', help='Replay recorded results (.csv or .jsonl)')
    parser.add_argument('--frames', '-n', type=int, help='Stop after this many frames')
    parser.add_argument('--seed', type=int, help='Random seed for the simulated stream')
    parser.add_argument('--fast', action='store_true',
                        help='Do not pace events to the source frame rate')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args()

    config = load_config(args.config)

    # Override config based on arguments
    if args.simulate:
        config['source']['type'] = 'simulated'
    elif args.replay:
        config['source']['type'] = args.replay
    if args.frames is not None:
        config['source']['max_frames'] = args.frames
    if args.seed is not None:
        config['source']['seed'] = args.seed
    if args.fast:
        config['source']['realtime'] = False
    if args.debug:
        config['log_level'] = 'DEBUG'

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    system = EcoTrackSystem(config)

    try:
        print("Starting EcoTrack Reward Engine...")
        print(f"Source: {config['source']['type']}")
        print(f"Cooldown: {config['engine']['cooldown_seconds']}s, "
              f"streak: {config['engine']['required_streak_length']} frames")
        print("Press Ctrl+C to stop")

        system.start()

        # Keep main thread alive until the source runs dry
        while system.running:
            time.sleep(0.5)
            if system.source_finished and system.event_queue.empty():
                break

    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    except Exception as e:
        print(f"System error: {e}")
    finally:
        if system:
            system.stop()
            if system.ledger:
                print(f"Eco points: {system.ledger.total}")


if __name__ == "__main__":
    main()
