"""
Value types for normalized 2D geometry, detector output and hand observations
"""
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

import numpy as np

from fretcoach.config.guitar_config import (
    DEFAULT_NUT_Y,
    DEFAULT_FRET4_Y,
    DEFAULT_LEFT_X,
    DEFAULT_RIGHT_X,
    MAX_FRET_LINES,
    MAX_STRING_LINES,
)


@dataclass(frozen=True)
class NormalizedPoint:
    """Point in [0, 1] x [0, 1], origin top-left"""

    x: float
    y: float

    def distance_to(self, other: 'NormalizedPoint') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_pixel(self, width: int, height: int) -> Tuple[int, int]:
        return int(round(self.x * width)), int(round(self.y * height))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    @classmethod
    def from_array(cls, values) -> 'NormalizedPoint':
        x, y = (float(v) for v in values)
        return cls(x=x, y=y)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned normalized box given by its min corner and size"""

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def aspect_ratio(self) -> float:
        """Width over height (inf for a flat box, 0 when both sides are 0)"""
        if self.height > 0:
            return self.width / self.height
        return math.inf if self.width > 0 else 0.0


@dataclass(frozen=True)
class RectangleDetection:
    """Rectangle detector output, bottom-left-origin detector space"""

    bounding_box: BoundingBox
    confidence: float = 1.0


@dataclass(frozen=True)
class ContourDetection:
    """Contour detector output, bottom-left-origin detector space"""

    bounding_box: BoundingBox
    confidence: float = 1.0


@dataclass(frozen=True)
class JointDetection:
    """Hand-pose joint, bottom-left-origin detector space"""

    location: NormalizedPoint
    confidence: float


def _check_sorted(values: Sequence[float], name: str, limit: int):
    if len(values) > limit:
        raise ValueError(f"{name} holds {len(values)} entries (max {limit})")
    if any(b < a for a, b in zip(values, values[1:])):
        raise ValueError(f"{name} must be sorted ascending: {values}")


@dataclass(frozen=True)
class FretboardZone:
    """
    Normalized bounds of the 4-fret window on screen.

    Fret lines run across the zone at detected Y positions and strings along
    it at detected X positions. Both sequences are empty when the line
    detector has nothing for us, in which case mapping falls back to an
    even grid over the bounds.
    """

    nut_y: float
    fret4_y: float
    left_x: float
    right_x: float
    detected_fret_positions: Tuple[float, ...] = ()
    detected_string_positions: Tuple[float, ...] = ()

    def __post_init__(self):
        if not self.nut_y < self.fret4_y:
            raise ValueError(f"nut_y ({self.nut_y}) must be above fret4_y ({self.fret4_y})")
        if not self.left_x < self.right_x:
            raise ValueError(f"left_x ({self.left_x}) must be left of right_x ({self.right_x})")

        # Accept any sequence, store tuples so the zone stays hashable
        object.__setattr__(self, 'detected_fret_positions', tuple(float(v) for v in self.detected_fret_positions))
        object.__setattr__(self, 'detected_string_positions', tuple(float(v) for v in self.detected_string_positions))
        _check_sorted(self.detected_fret_positions, 'detected_fret_positions', MAX_FRET_LINES)
        _check_sorted(self.detected_string_positions, 'detected_string_positions', MAX_STRING_LINES)

    @property
    def width(self) -> float:
        return self.right_x - self.left_x

    @property
    def height(self) -> float:
        return self.fret4_y - self.nut_y

    def as_array(self) -> np.ndarray:
        """Bounds as (nut_y, fret4_y, left_x, right_x)"""
        return np.array([self.nut_y, self.fret4_y, self.left_x, self.right_x], dtype=float)

    @classmethod
    def from_array(cls, values) -> 'FretboardZone':
        nut_y, fret4_y, left_x, right_x = (float(v) for v in values)
        return cls(nut_y=nut_y, fret4_y=fret4_y, left_x=left_x, right_x=right_x)

    def with_lines(self, fret_positions: Sequence[float] = (),
                   string_positions: Sequence[float] = ()) -> 'FretboardZone':
        """Copy of the bounds carrying the given line positions"""
        return FretboardZone(
            nut_y=self.nut_y,
            fret4_y=self.fret4_y,
            left_x=self.left_x,
            right_x=self.right_x,
            detected_fret_positions=tuple(fret_positions),
            detected_string_positions=tuple(string_positions),
        )


DEFAULT_ZONE = FretboardZone(
    nut_y=DEFAULT_NUT_Y,
    fret4_y=DEFAULT_FRET4_Y,
    left_x=DEFAULT_LEFT_X,
    right_x=DEFAULT_RIGHT_X,
)


@dataclass(frozen=True)
class PerspectiveCalibration:
    """
    Four user-tapped corners of the nut..4th fret window.

    Top edge is the low E string (string 6), bottom edge the high E
    (string 1); left edge is the nut, right edge the 4th fret.
    """

    top_left: NormalizedPoint
    top_right: NormalizedPoint
    bottom_right: NormalizedPoint
    bottom_left: NormalizedPoint

    def corners(self) -> Tuple[NormalizedPoint, NormalizedPoint, NormalizedPoint, NormalizedPoint]:
        """Corners in tap order"""
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)


@dataclass(frozen=True)
class Fingertip:
    location: NormalizedPoint
    confidence: float


@dataclass(frozen=True)
class HandObservation:
    """
    Fingertips seen in one processed frame (screen space, top-left origin).

    Joints that were not detected, or were below the confidence threshold,
    are simply absent.
    """

    fingertips: Mapping[str, Fingertip] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'fingertips', dict(self.fingertips))

    def get(self, joint: str) -> Optional[NormalizedPoint]:
        tip = self.fingertips.get(joint)
        return tip.location if tip is not None else None

    def __contains__(self, joint) -> bool:
        return joint in self.fingertips

    def __iter__(self) -> Iterator[str]:
        return iter(self.fingertips)

    def __len__(self) -> int:
        return len(self.fingertips)

    def points(self) -> Dict[str, NormalizedPoint]:
        return {joint: tip.location for joint, tip in self.fingertips.items()}


EMPTY_HAND = HandObservation()
