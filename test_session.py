#!/usr/bin/env python3
"""
Tests for the lesson session and the detection lane
"""
import threading

import pytest

from fretcoach.errors import DetectorFailure
from fretcoach.geometry.types import (
    BoundingBox,
    Fingertip,
    HandObservation,
    JointDetection,
    NormalizedPoint,
    RectangleDetection,
)
from fretcoach.lesson.chords import GuitarChord
from fretcoach.lesson.finger_mapper import calibrated_target_position, target_position
from fretcoach.lesson.placement_scorer import EMPTY_RESULT, PlacementStatus
from fretcoach.lesson.session import LessonSession
from fretcoach.tracking.detection_lane import DetectionLane
from fretcoach.tracking.zone_tracker import ZoneTracker


class StaticRectangles:
    def __init__(self, box=None):
        self.box = box

    def detect_rectangles(self, frame):
        return [RectangleDetection(self.box)] if self.box else []


class StaticHand:
    """Reports fixed detector-space joints"""

    def __init__(self, joints=None, error=None):
        self.joints = joints
        self.error = error

    def detect_hand(self, frame, timestamp=None):
        if self.error:
            raise self.error
        return self.joints


def screen_to_detector(point, mirrored=True):
    return NormalizedPoint(1 - point.x if mirrored else point.x, 1 - point.y)


def make_session(box=None, hand_detector=None, chord=GuitarChord.Em):
    tracker = ZoneTracker(rectangle_detector=StaticRectangles(box), mirrored=True)
    return LessonSession(tracker, chord=chord, hand_detector=hand_detector, mirrored=True)


def on_target_hand(session):
    chord = session.chord
    joints = {1: 'index_tip', 2: 'middle_tip', 3: 'ring_tip', 4: 'little_tip'}
    zone = session.tracker.snapshot.zone
    return HandObservation(fingertips={
        joints[p.finger]: Fingertip(target_position(zone, p.fret, p.string), 0.9)
        for p in chord.required_positions()
    })


def test_inactive_session_has_no_statuses():
    session = make_session()
    session.update_hand(HandObservation())
    assert session.result is EMPTY_RESULT


def test_hand_update_rescores():
    session = make_session()
    session.start()
    assert session.result.statuses == {2: PlacementStatus.MISSING, 3: PlacementStatus.MISSING}

    session.update_hand(on_target_hand(session))
    assert session.result.is_complete


def test_zone_update_rescores():
    session = make_session(box=BoundingBox(x=0.2, y=0.3, width=0.4, height=0.3))
    session.start()
    session.update_hand(on_target_hand(session))
    assert session.result.is_complete

    # The neck shows up somewhere else: the old fingertips no longer match
    session.process_frame(object(), 0.0)
    assert session.tracker.snapshot.zone.left_x == pytest.approx(0.4)
    assert not session.result.is_complete


def test_stop_clears_statuses():
    session = make_session()
    session.start()
    session.update_hand(on_target_hand(session))
    session.stop()

    assert not session.is_active
    assert session.result is EMPTY_RESULT
    assert len(session.hand) == 0
    assert not session.tracker.is_tracking


def test_select_chord_rescores():
    session = make_session(chord=GuitarChord.Em)
    session.start()
    session.select_chord(GuitarChord.C)
    assert session.chord.name == 'C'
    assert session.result.total_required == 3


def test_hand_detection_from_frames():
    session = make_session(chord=GuitarChord.Em)
    zone = session.tracker.snapshot.zone
    middle = target_position(zone, 2, 5)
    ring = target_position(zone, 2, 4)
    detector = StaticHand(joints={
        'middle_tip': JointDetection(screen_to_detector(middle), confidence=0.9),
        'ring_tip': JointDetection(screen_to_detector(ring), confidence=0.2),
    })
    session.hand_detector = detector
    session.start()
    session.process_frame(object(), 0.0)

    assert 'middle_tip' in session.hand
    assert 'ring_tip' not in session.hand
    assert session.result.statuses[2] is PlacementStatus.CORRECT
    assert session.result.statuses[3] is PlacementStatus.MISSING


def test_hand_detector_failure_keeps_previous_hand():
    session = make_session(hand_detector=StaticHand(error=DetectorFailure("no pose")))
    session.start()
    hand = on_target_hand(session)
    session.update_hand(hand)
    session.process_frame(object(), 0.0)
    assert session.hand is hand


def test_calibration_replaces_zone():
    session = make_session(chord=GuitarChord.Em)
    session.start()
    session.calibrate([(0.1, 0.2), (0.6, 0.2), (0.6, 0.6), (0.1, 0.6)])

    middle = calibrated_target_position(session.calibration, 2, 5)
    ring = calibrated_target_position(session.calibration, 2, 4)
    session.update_hand(HandObservation(fingertips={
        'middle_tip': Fingertip(middle, 0.9),
        'ring_tip': Fingertip(ring, 0.9),
    }))
    assert session.result.is_complete

    session.clear_calibration()
    assert session.calibration is None
    assert not session.result.is_complete


def test_detection_lane_runs_handler():
    seen = []
    done = threading.Event()

    def handler(frame, timestamp):
        seen.append((frame, timestamp))
        done.set()

    with DetectionLane(handler) as lane:
        assert lane.submit('frame', 1.5)
        assert done.wait(2.0)

    assert seen == [('frame', 1.5)]
    assert lane.processed == 1


def test_detection_lane_keeps_newest_pending_frame():
    release = threading.Event()
    started = threading.Event()
    handled = []

    def handler(frame, timestamp):
        handled.append(frame)
        started.set()
        release.wait(2.0)

    lane = DetectionLane(handler)
    lane.start()
    lane.submit(1)
    assert started.wait(2.0)

    assert lane.submit(2)
    assert not lane.submit(3)
    assert lane.dropped == 1

    release.set()
    lane.stop()
    assert handled == [1, 3]
    assert lane.processed == 2


def test_detection_lane_stop_does_not_hang_on_stuck_handler():
    release = threading.Event()
    started = threading.Event()

    def handler(frame, timestamp):
        started.set()
        release.wait(5.0)

    lane = DetectionLane(handler)
    lane.start()
    lane.submit(1)
    assert started.wait(2.0)
    lane.submit(2)

    lane.stop(timeout=0.1)
    assert not lane.submit(3)
    release.set()


def test_detection_lane_survives_handler_errors():
    calls = []

    def handler(frame, timestamp):
        calls.append(frame)
        if frame == 'bad':
            raise RuntimeError("detector crashed")

    lane = DetectionLane(handler)
    lane.start()
    lane.submit('bad')
    lane.stop()
    lane.start()
    lane.submit('good')
    lane.stop()

    assert calls == ['bad', 'good']
    assert lane.processed == 1


def test_reset_calibration_uses_default_corners():
    session = make_session()
    session.start()
    session.reset_calibration()
    assert session.calibration.top_left == NormalizedPoint(0.15, 0.25)
    assert session.mapping_source() is session.calibration


def test_hand_detection_across_restart_is_discarded():
    session = make_session(chord=GuitarChord.Em)

    class RestartingHand:
        def detect_hand(self, frame, timestamp=None):
            session.stop()
            session.start()
            return {'middle_tip': JointDetection(NormalizedPoint(0.5, 0.5), confidence=0.9)}

    session.hand_detector = RestartingHand()
    session.start()
    session.process_frame(object(), 0.0)

    assert session.is_active
    assert len(session.hand) == 0
    assert session.result.statuses == {2: PlacementStatus.MISSING, 3: PlacementStatus.MISSING}


def test_any_hand_detector_error_skips_frame():
    session = make_session(hand_detector=StaticHand(error=ValueError("bad landmarks")))
    session.start()
    hand = on_target_hand(session)
    session.update_hand(hand)
    session.process_frame(object(), 0.0)
    assert session.hand is hand
