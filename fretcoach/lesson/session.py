"""
Lesson session: ties zone tracking, hand observations and scoring together
"""
import logging
import threading
import time
from typing import Callable, Optional, Sequence, Tuple, Union

from fretcoach.config.guitar_config import (
    DETECTION_FPS,
    FINGER_JOINTS,
    JOINT_CONFIDENCE_THRESHOLD,
    MIRRORED_PREVIEW,
)
from fretcoach.geometry.coordinates import hand_observation_from_detections
from fretcoach.geometry.types import EMPTY_HAND, HandObservation, PerspectiveCalibration
from fretcoach.lesson.chords import ChordFingering, GuitarChord
from fretcoach.lesson.finger_mapper import MappingSource, calibration_from_taps, default_calibration
from fretcoach.lesson.placement_scorer import EMPTY_RESULT, PlacementResult, PlacementScorer
from fretcoach.tracking.rate_limiter import RateLimiter
from fretcoach.tracking.zone_tracker import TrackingSnapshot, ZoneTracker

logger = logging.getLogger(__name__)


class LessonSession:
    """
    One chord lesson over a live feed.

    The placement result is recomputed whenever the hand observation or the
    tracked zone changes, and published as an immutable PlacementResult.
    A perspective calibration, when set, replaces the tracked zone as the
    source of target positions.
    """

    def __init__(self,
                 tracker: ZoneTracker,
                 chord: Union[GuitarChord, ChordFingering] = GuitarChord.C,
                 hand_detector=None,
                 scorer: Optional[PlacementScorer] = None,
                 detection_fps: float = DETECTION_FPS,
                 confidence_threshold: float = JOINT_CONFIDENCE_THRESHOLD,
                 mirrored: bool = MIRRORED_PREVIEW,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            tracker: Zone tracker fed by the same frames
            chord: Chord to practice
            hand_detector: Object with detect_hand(frame) (None = hand fed via update_hand)
            scorer: Placement scorer (default tolerance if None)
            detection_fps: Max hand detections per second
            confidence_threshold: Joints at or below this confidence are ignored
            mirrored: Whether the preview is horizontally mirrored
            clock: Time source for rate limiting
        """
        self.tracker = tracker
        self.hand_detector = hand_detector
        self.scorer = scorer or PlacementScorer()
        self.confidence_threshold = confidence_threshold
        self.mirrored = mirrored
        self.hand_limiter = RateLimiter(max_hz=detection_fps, clock=clock or time.monotonic)

        self._lock = threading.Lock()
        self._chord = self._as_fingering(chord)
        self._active = False
        self._generation = 0
        self._hand = EMPTY_HAND
        self._calibration: Optional[PerspectiveCalibration] = None
        self._result = EMPTY_RESULT

        tracker.add_listener(self._on_zone_update)

    @staticmethod
    def _as_fingering(chord) -> ChordFingering:
        if isinstance(chord, GuitarChord):
            return chord.fingering
        return chord

    @property
    def chord(self) -> ChordFingering:
        return self._chord

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def hand(self) -> HandObservation:
        return self._hand

    @property
    def calibration(self) -> Optional[PerspectiveCalibration]:
        return self._calibration

    @property
    def result(self) -> PlacementResult:
        """Latest placement result"""
        return self._result

    def mapping_source(self) -> MappingSource:
        if self._calibration is not None:
            return self._calibration
        return self.tracker.snapshot.zone

    def select_chord(self, chord: Union[GuitarChord, ChordFingering]):
        self._chord = self._as_fingering(chord)
        logger.info("Chord selected: %s (%s)", self._chord.name, self._chord.notation)
        self._rescore()

    def start(self):
        """Start the lesson: begin tracking with a clean slate"""
        with self._lock:
            self._active = True
            self._generation += 1
            self._hand = EMPTY_HAND
        self.hand_limiter.reset()
        self.tracker.start()
        self._rescore()

    def stop(self):
        """Stop the lesson and clear every status"""
        with self._lock:
            self._active = False
            self._generation += 1
            self._hand = EMPTY_HAND
            self._result = EMPTY_RESULT
        self.tracker.stop()

    def calibrate(self, taps: Sequence[Tuple[float, float]], frame_size: Optional[Tuple[int, int]] = None):
        """Use four tapped corners for targets instead of the tracked zone"""
        self._calibration = calibration_from_taps(taps, frame_size)
        logger.info("Perspective calibration set")
        self._rescore()

    def reset_calibration(self):
        """Fall back to the default corner calibration"""
        self._calibration = default_calibration()
        self._rescore()

    def clear_calibration(self):
        self._calibration = None
        self._rescore()

    def update_hand(self, observation: HandObservation):
        """Replace the hand observation and rescore (ignored while stopped)"""
        with self._lock:
            if not self._active:
                return
            self._hand = observation
            self._rescore_locked()

    def process_frame(self, frame, timestamp: Optional[float] = None):
        """
        Feed one camera frame to zone tracking and hand detection

        Args:
            frame: Upright camera frame
            timestamp: Frame time in seconds (defaults to the session clock)
        """
        with self._lock:
            if not self._active:
                return
            generation = self._generation

        self.tracker.process_frame(frame, timestamp)

        if self.hand_detector is None or not self.hand_limiter.allow(timestamp):
            return

        try:
            joints = self.hand_detector.detect_hand(frame, timestamp)
        except Exception as e:
            logger.warning("Hand pose detection failed, skipping frame: %s", e)
            return

        observation = hand_observation_from_detections(
            joints,
            threshold=self.confidence_threshold,
            mirrored=self.mirrored,
            wanted=list(FINGER_JOINTS.values()),
        )

        with self._lock:
            # start()/stop() ran while the pose pass was in flight
            if not self._active or generation != self._generation:
                logger.debug("Discarding hand detection from a stopped lesson")
                return
            self._hand = observation
            self._rescore_locked()

    def _on_zone_update(self, snapshot: TrackingSnapshot):
        if snapshot.is_tracking:
            self._rescore()

    def _rescore(self):
        with self._lock:
            self._rescore_locked()

    def _rescore_locked(self):
        if not self._active:
            return
        self._result = self.scorer.evaluate(self._chord, self._hand, self.mapping_source())
