#!/usr/bin/env python3
"""
Tests for the OpenCV adapters, frame source and overlay drawing
"""
import cv2
import numpy as np
import pytest

from fretcoach.errors import DetectorFailure
from fretcoach.geometry.coordinates import detector_box_to_screen
from fretcoach.lesson.chords import GuitarChord
from fretcoach.lesson.session import LessonSession
from fretcoach.tracking.zone_tracker import ZoneTracker
from fretcoach.video.fretboard_detector import OpenCVContourDetector, OpenCVRectangleDetector
from fretcoach.video.frame_extractor import FrameSource
from fretcoach.video.overlay import render_lesson


def synthetic_neck_frame():
    frame = np.zeros((400, 400, 3), dtype=np.uint8)
    cv2.rectangle(frame, (100, 50), (299, 249), (255, 255, 255), -1)
    return frame


def test_rectangle_detector_finds_drawn_rectangle():
    detections = OpenCVRectangleDetector().detect_rectangles(synthetic_neck_frame())
    assert detections

    screen = detector_box_to_screen(detections[0].bounding_box, mirrored=False)
    assert screen.x == pytest.approx(0.25, abs=0.02)
    assert screen.y == pytest.approx(0.125, abs=0.02)
    assert screen.width == pytest.approx(0.5, abs=0.02)
    assert screen.height == pytest.approx(0.5, abs=0.02)
    assert 0.0 < detections[0].confidence <= 1.0


def test_blank_frame_has_no_rectangles():
    assert OpenCVRectangleDetector().detect_rectangles(np.zeros((100, 100, 3), dtype=np.uint8)) == []


def test_contour_detector_reports_long_lines():
    frame = np.zeros((400, 400, 3), dtype=np.uint8)
    cv2.line(frame, (20, 200), (380, 200), (255, 255, 255), 3)

    contours = OpenCVContourDetector().detect_contours(frame)
    assert contours
    longest = contours[0].bounding_box
    assert longest.width > 0.8
    assert longest.aspect_ratio() > 3.0


def test_bad_frames_raise_detector_failure():
    with pytest.raises(DetectorFailure):
        OpenCVRectangleDetector().detect_rectangles(np.zeros((0, 0, 3), dtype=np.uint8))
    with pytest.raises(DetectorFailure):
        OpenCVContourDetector().detect_contours(np.zeros((10, 10, 5), dtype=np.uint8))
    with pytest.raises(DetectorFailure):
        OpenCVRectangleDetector().detect_rectangles(None)


def test_missing_video_file():
    with pytest.raises(FileNotFoundError):
        FrameSource('does/not/exist.mp4').open()


def test_render_lesson_draws_on_copy():
    tracker = ZoneTracker(rectangle_detector=OpenCVRectangleDetector())
    session = LessonSession(tracker, chord=GuitarChord.G)
    session.start()

    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    annotated = render_lesson(frame, session)

    assert annotated.shape == frame.shape
    assert annotated.any()
    assert not frame.any()
