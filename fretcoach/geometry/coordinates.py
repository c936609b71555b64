"""
Conversions between detector space and screen space.

Detectors report normalized coordinates with a bottom-left origin, in the
camera's own (unmirrored) orientation. The screen uses a top-left origin and
shows the front camera mirrored. Every flip between the two lives here.
"""
from typing import Mapping, Optional, Sequence, Tuple

from fretcoach.config.guitar_config import (
    JOINT_CONFIDENCE_THRESHOLD,
    MIRRORED_PREVIEW,
)
from fretcoach.geometry.types import (
    BoundingBox,
    Fingertip,
    FretboardZone,
    HandObservation,
    JointDetection,
    NormalizedPoint,
)


def detector_point_to_screen(point: NormalizedPoint, mirrored: bool = MIRRORED_PREVIEW) -> NormalizedPoint:
    """
    Map a bottom-left-origin detector point onto the screen

    Args:
        point: Detector-space point
        mirrored: Whether the preview is horizontally mirrored

    Returns:
        Top-left-origin screen point
    """
    x = 1 - point.x if mirrored else point.x
    return NormalizedPoint(x=x, y=1 - point.y)


def _flip_span(low: float, high: float) -> Tuple[float, float]:
    # Flipping an axis swaps which edge is the minimum
    return 1 - high, 1 - low


def detector_span_to_screen(box: BoundingBox, mirrored: bool = MIRRORED_PREVIEW) -> Tuple[float, float, float, float]:
    """
    Screen edges of a detector-space box

    Returns:
        (min_x, max_x, min_y, max_y) in top-left-origin screen space
    """
    if mirrored:
        min_x, max_x = _flip_span(box.min_x, box.max_x)
    else:
        min_x, max_x = box.min_x, box.max_x
    min_y, max_y = _flip_span(box.min_y, box.max_y)
    return min_x, max_x, min_y, max_y


def detector_box_to_screen(box: BoundingBox, mirrored: bool = MIRRORED_PREVIEW) -> BoundingBox:
    """Map a detector-space box onto the screen"""
    min_x, max_x, min_y, max_y = detector_span_to_screen(box, mirrored=mirrored)
    return BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def image_box_to_detector(x: float, y: float, width: float, height: float,
                          frame_width: int, frame_height: int) -> BoundingBox:
    """Pixel box (top-left origin, as OpenCV reports it) to detector space"""
    return BoundingBox(
        x=x / frame_width,
        y=1 - (y + height) / frame_height,
        width=width / frame_width,
        height=height / frame_height,
    )


def image_point_to_detector(x: float, y: float) -> NormalizedPoint:
    """Normalized top-left-origin image point (MediaPipe) to detector space"""
    return NormalizedPoint(x=x, y=1 - y)


def zone_from_detector_box(box: BoundingBox, mirrored: bool = MIRRORED_PREVIEW) -> FretboardZone:
    """Zone bounds for a neck rectangle reported by the rectangle detector"""
    left_x, right_x, nut_y, fret4_y = detector_span_to_screen(box, mirrored=mirrored)
    return FretboardZone(nut_y=nut_y, fret4_y=fret4_y, left_x=left_x, right_x=right_x)


def string_line_position(box: BoundingBox) -> float:
    """
    Screen X of a string line.

    The line detector sees the sensor buffer, which is a quarter turn from
    the display: a contour that is flat in detector space is a string running
    down the screen, and its detector Y becomes the screen X.
    """
    return 1 - box.mid_y


def fret_line_position(box: BoundingBox) -> float:
    """Screen Y of a fret line (detector X, same quarter turn as strings)"""
    return 1 - box.mid_x


def hand_observation_from_detections(joints: Optional[Mapping[str, JointDetection]],
                                     threshold: float = JOINT_CONFIDENCE_THRESHOLD,
                                     mirrored: bool = MIRRORED_PREVIEW,
                                     wanted: Optional[Sequence[str]] = None) -> HandObservation:
    """
    Build a screen-space hand observation from raw joint detections

    Args:
        joints: Joint name -> detection, or None when no hand was found
        threshold: Joints at or below this confidence are dropped
        mirrored: Whether the preview is horizontally mirrored
        wanted: Restrict to these joint names (None = keep all)

    Returns:
        HandObservation (empty when no hand)
    """
    if not joints:
        return HandObservation()

    fingertips = {}
    for name, detection in joints.items():
        if wanted is not None and name not in wanted:
            continue
        if detection.confidence <= threshold:
            continue
        fingertips[name] = Fingertip(
            location=detector_point_to_screen(detection.location, mirrored=mirrored),
            confidence=detection.confidence,
        )

    return HandObservation(fingertips=fingertips)


def normalize_tap(point: Tuple[float, float], frame_size: Optional[Tuple[int, int]] = None) -> NormalizedPoint:
    """Screen tap in pixels (with frame_size=(width, height)) or already normalized"""
    x, y = point
    if frame_size is not None:
        width, height = frame_size
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size: {frame_size}")
        x, y = x / width, y / height
    return NormalizedPoint(x=float(x), y=float(y))
