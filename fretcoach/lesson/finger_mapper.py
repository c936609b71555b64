"""
Map chord fingerings (fret, string) to screen positions
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from fretcoach.config.guitar_config import DEFAULT_CALIBRATION, NUM_STRINGS, ZONE_FRETS
from fretcoach.errors import CalibrationError
from fretcoach.geometry.coordinates import normalize_tap
from fretcoach.geometry.types import FretboardZone, NormalizedPoint, PerspectiveCalibration


class AxisSource(Enum):
    """Where one coordinate of a target came from"""

    DETECTED = 'detected'  # Live-tracked fret/string line
    INTERPOLATED = 'interpolated'  # Even grid over the zone bounds


@dataclass(frozen=True)
class FingerTarget:
    point: NormalizedPoint
    x_source: AxisSource
    y_source: AxisSource


def _check_fingering(fret: int, string: int):
    if fret < 0:
        raise ValueError(f"Muted strings have no target position (fret={fret})")
    if not 1 <= string <= NUM_STRINGS:
        raise ValueError(f"string must be 1..{NUM_STRINGS}, got {string}")


def resolve_axis(detected: Sequence[float], index: int, start: float, end: float,
                 ratio: float) -> Tuple[float, AxisSource]:
    """
    One coordinate of a target position

    Args:
        detected: Tracked line positions for this axis (may be empty)
        index: 1-based line number (fret or string)
        start: Zone edge at ratio 0
        end: Zone edge at ratio 1
        ratio: Fallback position between the edges

    Returns:
        (value, source)
    """
    if detected and 1 <= index <= len(detected):
        return detected[index - 1], AxisSource.DETECTED
    return start + (end - start) * ratio, AxisSource.INTERPOLATED


def locate_target(zone: FretboardZone, fret: int, string: int) -> FingerTarget:
    """Target point for (fret, string) in a tracked zone, with the policy used per axis"""
    _check_fingering(fret, string)

    y, y_source = resolve_axis(zone.detected_fret_positions, fret,
                               zone.nut_y, zone.fret4_y, fret / ZONE_FRETS)
    x, x_source = resolve_axis(zone.detected_string_positions, string,
                               zone.left_x, zone.right_x, (string - 1) / (NUM_STRINGS - 1))

    return FingerTarget(point=NormalizedPoint(x=x, y=y), x_source=x_source, y_source=y_source)


def target_position(zone: FretboardZone, fret: int, string: int) -> NormalizedPoint:
    return locate_target(zone, fret, string).point


def calibrated_target_position(calibration: PerspectiveCalibration, fret: int, string: int) -> NormalizedPoint:
    """
    Target point from a 4-corner calibration.

    Frets run from the nut (left edge) to the 4th fret (right edge); strings
    from low E (top edge) to high E (bottom edge). Each coordinate is
    interpolated along both opposite edges and the two results averaged.
    """
    _check_fingering(fret, string)
    tl, tr, br, bl = calibration.corners()

    fret_ratio = fret / ZONE_FRETS
    top_x = tl.x + (tr.x - tl.x) * fret_ratio
    bottom_x = bl.x + (br.x - bl.x) * fret_ratio

    string_ratio = (NUM_STRINGS - string) / (NUM_STRINGS - 1)
    left_y = tl.y + (bl.y - tl.y) * string_ratio
    right_y = tr.y + (br.y - tr.y) * string_ratio

    return NormalizedPoint(x=(top_x + bottom_x) / 2, y=(left_y + right_y) / 2)


def calibration_from_taps(taps: Sequence[Tuple[float, float]],
                          frame_size: Optional[Tuple[int, int]] = None) -> PerspectiveCalibration:
    """
    Build a calibration from four screen taps

    Args:
        taps: Tap points in order nut/low E, 4th fret/low E, 4th fret/high E,
              nut/high E
        frame_size: (width, height) when taps are in pixels; None if normalized

    Returns:
        PerspectiveCalibration
    """
    if len(taps) != 4:
        raise CalibrationError(f"Calibration needs exactly 4 taps, got {len(taps)}")

    corners = [normalize_tap(t, frame_size) for t in taps]
    if len(set(corners)) != 4:
        raise CalibrationError("Calibration taps must be 4 distinct points")

    return PerspectiveCalibration(
        top_left=corners[0],
        top_right=corners[1],
        bottom_right=corners[2],
        bottom_left=corners[3],
    )


def default_calibration() -> PerspectiveCalibration:
    return PerspectiveCalibration(**{
        name: NormalizedPoint(*corner) for name, corner in DEFAULT_CALIBRATION.items()
    })


class ZoneFingerMapper:
    """Targets from a tracked zone (detected lines, else even grid)"""

    def __init__(self, zone: FretboardZone):
        self.zone = zone

    def target_position(self, fret: int, string: int) -> NormalizedPoint:
        return target_position(self.zone, fret, string)


class CalibratedFingerMapper:
    """Targets from a user perspective calibration"""

    def __init__(self, calibration: PerspectiveCalibration):
        self.calibration = calibration

    def target_position(self, fret: int, string: int) -> NormalizedPoint:
        return calibrated_target_position(self.calibration, fret, string)


MappingSource = Union[FretboardZone, PerspectiveCalibration, ZoneFingerMapper, CalibratedFingerMapper]


def mapper_for(source: MappingSource):
    """Wrap a zone or calibration in the matching mapper (mappers pass through)"""
    if isinstance(source, FretboardZone):
        return ZoneFingerMapper(source)
    if isinstance(source, PerspectiveCalibration):
        return CalibratedFingerMapper(source)
    if hasattr(source, 'target_position'):
        return source
    raise TypeError(f"Cannot map finger positions from {type(source).__name__}")
