"""
Draw the lesson overlay on a screen-space preview frame
"""
from typing import Mapping

import cv2
import numpy as np

from fretcoach.config.guitar_config import (
    COLOR_CORRECT,
    COLOR_LINES,
    COLOR_TARGET,
    COLOR_UNSCORED,
    COLOR_ZONE,
    FINGER_JOINTS,
)
from fretcoach.geometry.types import FretboardZone, HandObservation
from fretcoach.lesson.chords import ChordFingering
from fretcoach.lesson.finger_mapper import MappingSource, mapper_for
from fretcoach.lesson.placement_scorer import PlacementResult, PlacementStatus, finger_status_color


def draw_zone(frame: np.ndarray, zone: FretboardZone, tracking: bool = True) -> np.ndarray:
    """
    Draw the zone bounds and any detected fret/string lines

    Args:
        frame: BGR preview frame (modified in place)
        zone: Zone in screen space
        tracking: Solid outline when tracking, thin gray outline otherwise

    Returns:
        The same frame
    """
    h, w = frame.shape[:2]
    x0, y0 = int(zone.left_x * w), int(zone.nut_y * h)
    x1, y1 = int(zone.right_x * w), int(zone.fret4_y * h)

    color = COLOR_ZONE if tracking else COLOR_UNSCORED
    cv2.rectangle(frame, (x0, y0), (x1, y1), color, 2 if tracking else 1)

    for fret_num, y in enumerate(zone.detected_fret_positions, 1):
        py = int(y * h)
        cv2.line(frame, (x0, py), (x1, py), COLOR_LINES, 1)
        cv2.putText(frame, str(fret_num), (x1 + 5, py + 5),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, COLOR_LINES, 1)

    for x in zone.detected_string_positions:
        px = int(x * w)
        cv2.line(frame, (px, y0), (px, y1), COLOR_LINES, 1)

    return frame


def draw_targets(frame: np.ndarray, chord: ChordFingering, source: MappingSource,
                 statuses: Mapping[int, PlacementStatus]) -> np.ndarray:
    """Draw a labelled marker at each fretted target, colored by finger status"""
    h, w = frame.shape[:2]
    mapper = mapper_for(source)

    for position in chord.required_positions():
        target = mapper.target_position(position.fret, position.string)
        center = target.to_pixel(w, h)
        color = finger_status_color(statuses, position.finger)

        cv2.circle(frame, center, 14, color, 2)
        cv2.putText(frame, str(position.finger), (center[0] - 5, center[1] + 5),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 2)

    return frame


def draw_hand(frame: np.ndarray, hand: HandObservation,
              statuses: Mapping[int, PlacementStatus]) -> np.ndarray:
    """Draw the observed fingertips; scored fingers use their status color"""
    h, w = frame.shape[:2]
    finger_for_joint = {joint: finger for finger, joint in FINGER_JOINTS.items()}

    for joint, point in hand.points().items():
        finger = finger_for_joint.get(joint)
        color = finger_status_color(statuses, finger) if finger else COLOR_TARGET
        cv2.circle(frame, point.to_pixel(w, h), 6, color, -1)

    return frame


def draw_status(frame: np.ndarray, chord: ChordFingering, result: PlacementResult) -> np.ndarray:
    """Chord name and the placement message in the top-left corner"""
    color = COLOR_CORRECT if result.is_complete else (255, 255, 255)
    cv2.putText(frame, f"{chord.name}  {chord.notation}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2)
    cv2.putText(frame, result.message, (10, 60),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)
    return frame


def render_lesson(frame: np.ndarray, session) -> np.ndarray:
    """
    Compose the full overlay for a lesson session

    Args:
        frame: BGR frame already in screen space (mirrored if the preview is)
        session: LessonSession

    Returns:
        Annotated copy of the frame
    """
    annotated = frame.copy()
    snapshot = session.tracker.snapshot
    result = session.result

    if session.calibration is None:
        draw_zone(annotated, snapshot.zone, tracking=snapshot.is_tracking)

    draw_targets(annotated, session.chord, session.mapping_source(), result.statuses)
    draw_hand(annotated, session.hand, result.statuses)
    draw_status(annotated, session.chord, result)
    return annotated
