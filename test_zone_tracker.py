#!/usr/bin/env python3
"""
Tests for neck filtering, line classification and zone tracking
"""
import pytest

from fretcoach.errors import DetectorFailure
from fretcoach.geometry.types import DEFAULT_ZONE, BoundingBox, ContourDetection, RectangleDetection
from fretcoach.tracking.zone_tracker import (
    classify_lines,
    is_neck_candidate,
    select_neck_rectangle,
    ZoneTracker,
)

NECK = RectangleDetection(BoundingBox(x=0.2, y=0.3, width=0.4, height=0.3))
STRING = ContourDetection(BoundingBox(x=0.1, y=0.5, width=0.5, height=0.02))
FRET = ContourDetection(BoundingBox(x=0.3, y=0.1, width=0.02, height=0.5))


class FakeRectangleDetector:
    def __init__(self, results=None, error=None, hook=None):
        self.results = [NECK] if results is None else results
        self.error = error
        self.hook = hook
        self.calls = 0

    def detect_rectangles(self, frame):
        self.calls += 1
        if self.hook:
            self.hook()
        if self.error:
            raise self.error
        return list(self.results)


class FakeContourDetector:
    def __init__(self, results=None):
        self.results = results or []

    def detect_contours(self, frame):
        return list(self.results)


def make_tracker(rectangles=None, contours=None, **kwargs):
    tracker = ZoneTracker(
        rectangle_detector=rectangles or FakeRectangleDetector(),
        contour_detector=contours,
        mirrored=True,
        **kwargs
    )
    return tracker


def test_neck_filter():
    assert is_neck_candidate(NECK)
    # Too small
    assert not is_neck_candidate(RectangleDetection(BoundingBox(0.1, 0.1, 0.1, 0.1)))
    # Too thin for either aspect band
    assert not is_neck_candidate(RectangleDetection(BoundingBox(0.0, 0.0, 0.9, 0.1)))
    # Degenerate
    assert not is_neck_candidate(RectangleDetection(BoundingBox(0.0, 0.0, 0.0, 0.5)))


def test_largest_candidate_wins():
    small = RectangleDetection(BoundingBox(x=0.1, y=0.1, width=0.3, height=0.3))
    large = RectangleDetection(BoundingBox(x=0.1, y=0.1, width=0.5, height=0.5))
    assert select_neck_rectangle([small, large]) is large
    assert select_neck_rectangle([]) is None


def test_classify_lines():
    noise = ContourDetection(BoundingBox(x=0.1, y=0.1, width=0.05, height=0.05))
    strings, frets = classify_lines([STRING, FRET, noise])
    assert strings == [pytest.approx(0.49)]
    assert frets == [pytest.approx(0.69)]


def test_flat_contour_is_a_string_line():
    flat = ContourDetection(BoundingBox(x=0.1, y=0.5, width=0.5, height=0.0))
    assert flat.bounding_box.aspect_ratio() == float('inf')

    strings, frets = classify_lines([flat])
    assert strings == [pytest.approx(0.5)]
    assert frets == []


def test_empty_box_is_not_a_line():
    point = ContourDetection(BoundingBox(x=0.1, y=0.5, width=0.0, height=0.0))
    assert classify_lines([point]) == ([], [])


def test_classify_lines_caps_and_sorts():
    contours = [
        ContourDetection(BoundingBox(x=0.1, y=i / 20, width=0.5, height=0.02))
        for i in range(10)
    ]
    strings, frets = classify_lines(contours)
    assert len(strings) == 6
    assert strings == sorted(strings)
    assert frets == []


def test_idle_tracker_publishes_default_zone():
    tracker = make_tracker()
    assert tracker.snapshot.zone == DEFAULT_ZONE
    assert not tracker.snapshot.is_tracking
    assert tracker.process_frame(object(), 0.0) is None


def test_tracking_publishes_smoothed_zone():
    tracker = make_tracker()
    tracker.start()
    snapshot = tracker.process_frame(object(), 0.0)

    assert snapshot is tracker.snapshot
    assert snapshot.is_tracking
    assert snapshot.zone.left_x == pytest.approx(0.4)
    assert snapshot.zone.right_x == pytest.approx(0.8)
    assert snapshot.zone.nut_y == pytest.approx(0.4)
    assert snapshot.zone.fret4_y == pytest.approx(0.7)


def test_lines_are_published_with_zone():
    tracker = make_tracker(contours=FakeContourDetector([STRING, FRET]))
    tracker.start()
    snapshot = tracker.process_frame(object(), 0.0)

    assert snapshot.string_lines == (pytest.approx(0.49),)
    assert snapshot.fret_lines == (pytest.approx(0.69),)


def test_lines_without_neck_keep_default_bounds():
    tracker = make_tracker(rectangles=FakeRectangleDetector(results=[]),
                           contours=FakeContourDetector([FRET]))
    tracker.start()
    snapshot = tracker.process_frame(object(), 0.0)

    assert snapshot.zone.nut_y == DEFAULT_ZONE.nut_y
    assert snapshot.fret_lines == (pytest.approx(0.69),)


def test_empty_detection_pushes_nothing():
    tracker = make_tracker(rectangles=FakeRectangleDetector(results=[]))
    tracker.start()
    assert tracker.process_frame(object(), 0.0) is None
    assert len(tracker.zone_smoother) == 0


def test_rate_limit_at_60hz():
    detector = FakeRectangleDetector()
    tracker = make_tracker(rectangles=detector)
    tracker.start()

    for i in range(60):
        tracker.process_frame(object(), i / 60)

    assert 10 <= detector.calls <= 16


def test_stop_resets_to_default():
    tracker = make_tracker()
    tracker.start()
    for i in range(3):
        tracker.process_frame(object(), float(i))

    tracker.stop()
    assert tracker.snapshot.zone == DEFAULT_ZONE
    assert not tracker.snapshot.is_tracking
    assert len(tracker.zone_smoother) == 0
    assert tracker.zone_smoother.average() == DEFAULT_ZONE

    tracker.start()
    assert tracker.snapshot.zone == DEFAULT_ZONE
    assert tracker.snapshot.is_tracking


def test_detector_failure_skips_frame():
    tracker = make_tracker(rectangles=FakeRectangleDetector(error=DetectorFailure("boom")))
    tracker.start()
    before = tracker.snapshot

    assert tracker.process_frame(object(), 0.0) is None
    assert tracker.snapshot is before
    assert len(tracker.zone_smoother) == 0


def test_any_detector_error_skips_frame():
    tracker = make_tracker(rectangles=FakeRectangleDetector(error=ValueError("malformed input")))
    tracker.start()
    before = tracker.snapshot

    assert tracker.process_frame(object(), 0.0) is None
    assert tracker.snapshot is before
    assert len(tracker.zone_smoother) == 0


def test_restart_during_detection_discards_stale_result():
    tracker = make_tracker()

    def restart():
        tracker.stop()
        tracker.start()

    tracker.rectangle_detector = FakeRectangleDetector(hook=restart)
    tracker.start()

    assert tracker.process_frame(object(), 0.0) is None
    assert len(tracker.zone_smoother) == 0
    assert tracker.snapshot.zone == DEFAULT_ZONE


def test_listeners_receive_each_publication():
    tracker = make_tracker()
    seen = []
    tracker.add_listener(seen.append)

    tracker.start()
    tracker.process_frame(object(), 0.0)
    tracker.stop()

    assert [s.is_tracking for s in seen] == [True, True, False]
    assert [s.sequence for s in seen] == sorted(s.sequence for s in seen)
