"""
Guitar neck zone tracking: candidate filtering, smoothing and snapshot publication
"""
import logging
import time
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from fretcoach.config.guitar_config import (
    DETECTION_FPS,
    FRET_LINE_MAX_ASPECT,
    FRET_LINE_MIN_HEIGHT,
    MAX_CONTOURS,
    MAX_FRET_LINES,
    MAX_STRING_LINES,
    MIRRORED_PREVIEW,
    NECK_ASPECT_BANDS,
    NECK_MIN_AREA,
    NECK_MIN_SIDE,
    SMOOTHING_WINDOW,
    STRING_LINE_MIN_ASPECT,
    STRING_LINE_MIN_WIDTH,
)
from fretcoach.geometry.coordinates import (
    fret_line_position,
    string_line_position,
    zone_from_detector_box,
)
from fretcoach.geometry.types import (
    DEFAULT_ZONE,
    ContourDetection,
    FretboardZone,
    RectangleDetection,
)
from fretcoach.tracking.rate_limiter import RateLimiter
from fretcoach.tracking.temporal_smoother import LineSmoother, TemporalSmoother

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingSnapshot:
    """One complete smoothed update, as seen by readers"""

    zone: FretboardZone
    is_tracking: bool
    sequence: int = 0

    @property
    def fret_lines(self) -> Tuple[float, ...]:
        return self.zone.detected_fret_positions

    @property
    def string_lines(self) -> Tuple[float, ...]:
        return self.zone.detected_string_positions


IDLE_SNAPSHOT = TrackingSnapshot(zone=DEFAULT_ZONE, is_tracking=False)


def is_neck_candidate(detection: RectangleDetection,
                      aspect_bands: Sequence[Tuple[float, float]] = NECK_ASPECT_BANDS,
                      min_area: float = NECK_MIN_AREA,
                      min_side: float = NECK_MIN_SIDE) -> bool:
    """Elongated, large enough rectangle (aspect here is height / width)"""
    box = detection.bounding_box
    if box.width <= 0:
        return False

    aspect = box.height / box.width
    good_aspect = any(low < aspect < high for low, high in aspect_bands)
    large_enough = box.area > min_area and (box.width > min_side or box.height > min_side)

    return good_aspect and large_enough


def select_neck_rectangle(detections: Sequence[RectangleDetection], **filter_kwargs) -> Optional[RectangleDetection]:
    """
    Pick the neck among detected rectangles

    The largest surviving candidate wins, so smaller rectangles (fingers,
    partly occluded pieces of the neck) lose to the most prominent one.

    Returns:
        Best rectangle or None if nothing passes the filter
    """
    candidates = [d for d in detections if is_neck_candidate(d, **filter_kwargs)]
    if not candidates:
        return None
    return max(candidates, key=lambda d: d.bounding_box.area)


def classify_lines(contours: Sequence[ContourDetection],
                   max_contours: int = MAX_CONTOURS,
                   max_strings: int = MAX_STRING_LINES,
                   max_frets: int = MAX_FRET_LINES) -> Tuple[List[float], List[float]]:
    """
    Split contours into string lines and fret lines

    Args:
        contours: Contour detections (detector space)
        max_contours: Only the first N contours are inspected
        max_strings: Cap on string positions kept
        max_frets: Cap on fret positions kept

    Returns:
        (string_positions, fret_positions), each deduplicated and ascending
    """
    strings = set()
    frets = set()

    for contour in list(contours)[:max_contours]:
        box = contour.bounding_box
        aspect = box.aspect_ratio()

        if aspect > STRING_LINE_MIN_ASPECT and box.width > STRING_LINE_MIN_WIDTH:
            strings.add(string_line_position(box))
        elif aspect < FRET_LINE_MAX_ASPECT and box.height > FRET_LINE_MIN_HEIGHT:
            frets.add(fret_line_position(box))

    return sorted(strings)[:max_strings], sorted(frets)[:max_frets]


class ZoneTracker:
    """
    Track the fretboard zone across frames.

    All mutation (buffers, tracking flag) happens under one lock and is meant
    to be driven from a single detection lane. Readers use ``snapshot``,
    which is replaced wholesale on every update and never mutated.
    """

    def __init__(self,
                 rectangle_detector,
                 contour_detector=None,
                 window: int = SMOOTHING_WINDOW,
                 detection_fps: float = DETECTION_FPS,
                 mirrored: bool = MIRRORED_PREVIEW,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            rectangle_detector: Object with detect_rectangles(frame)
            contour_detector: Object with detect_contours(frame) (None = zone only)
            window: Smoothing window size
            detection_fps: Max processed frames per second
            mirrored: Whether the preview is horizontally mirrored
            clock: Time source for rate limiting (defaults to time.monotonic)
        """
        self.rectangle_detector = rectangle_detector
        self.contour_detector = contour_detector
        self.mirrored = mirrored

        self.zone_smoother = TemporalSmoother(
            window=window,
            default=DEFAULT_ZONE,
            to_array=FretboardZone.as_array,
            from_array=FretboardZone.from_array,
        )
        self.fret_smoother = LineSmoother(window=window, max_lines=MAX_FRET_LINES)
        self.string_smoother = LineSmoother(window=window, max_lines=MAX_STRING_LINES)

        self.rate_limiter = RateLimiter(max_hz=detection_fps, clock=clock or time.monotonic)

        self._lock = threading.Lock()
        self._tracking = False
        self._generation = 0
        self._sequence = 0
        self._snapshot = IDLE_SNAPSHOT
        self._listeners: List[Callable[[TrackingSnapshot], None]] = []

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def snapshot(self) -> TrackingSnapshot:
        """Latest published snapshot"""
        return self._snapshot

    def add_listener(self, callback: Callable[[TrackingSnapshot], None]):
        """Call ``callback(snapshot)`` after every publication"""
        self._listeners.append(callback)

    def start(self):
        """Begin tracking with empty history"""
        with self._lock:
            self._tracking = True
            self._reset_locked()
            snapshot = self._publish_locked()
        logger.info("Zone tracking started")
        self._notify(snapshot)

    def stop(self):
        """Stop tracking and publish the idle default zone"""
        with self._lock:
            self._tracking = False
            self._reset_locked()
            snapshot = self._publish_locked()
        logger.info("Zone tracking stopped")
        self._notify(snapshot)

    def _reset_locked(self):
        # Anything still in flight belongs to the previous generation
        self._generation += 1
        self.zone_smoother.clear()
        self.fret_smoother.clear()
        self.string_smoother.clear()
        self.rate_limiter.reset()

    def process_frame(self, frame, timestamp: Optional[float] = None) -> Optional[TrackingSnapshot]:
        """
        Run detection on one frame and publish the smoothed result

        Args:
            frame: Image handed to the detectors
            timestamp: Frame time in seconds (defaults to the tracker clock)

        Returns:
            The new snapshot, or None if the frame was dropped, skipped or
            produced no candidates
        """
        with self._lock:
            if not self._tracking:
                return None
            if not self.rate_limiter.allow(timestamp):
                logger.debug("Frame dropped by rate limiter")
                return None
            generation = self._generation

        try:
            rectangles = self.rectangle_detector.detect_rectangles(frame)
            contours = self.contour_detector.detect_contours(frame) if self.contour_detector else []
        except Exception as e:
            logger.warning("Guitar detection failed, skipping frame: %s", e)
            return None

        neck = select_neck_rectangle(rectangles)
        zone = zone_from_detector_box(neck.bounding_box, mirrored=self.mirrored) if neck else None
        strings, frets = classify_lines(contours)

        if zone is None and not strings and not frets:
            return None

        with self._lock:
            if not self._tracking or generation != self._generation:
                logger.debug("Discarding detection from a stopped tracking run")
                return None

            if zone is not None:
                self.zone_smoother.push(zone)
            if strings:
                self.string_smoother.push(strings)
            if frets:
                self.fret_smoother.push(frets)

            snapshot = self._publish_locked()

        self._notify(snapshot)
        return snapshot

    def _publish_locked(self) -> TrackingSnapshot:
        self._sequence += 1

        if self._tracking:
            zone = self.zone_smoother.average().with_lines(
                fret_positions=self.fret_smoother.average(),
                string_positions=self.string_smoother.average(),
            )
        else:
            zone = DEFAULT_ZONE

        self._snapshot = TrackingSnapshot(zone=zone, is_tracking=self._tracking, sequence=self._sequence)
        return self._snapshot

    def _notify(self, snapshot: TrackingSnapshot):
        # A newer publication may already have overtaken this one
        if snapshot is not self._snapshot:
            return
        for callback in list(self._listeners):
            callback(snapshot)
