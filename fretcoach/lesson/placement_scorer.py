"""
Score live fingertip positions against a chord's target positions
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

from fretcoach.config.guitar_config import (
    COLOR_CORRECT,
    COLOR_INCORRECT,
    COLOR_MISSING,
    COLOR_UNSCORED,
    FINGER_JOINTS,
    PLACEMENT_TOLERANCE,
)
from fretcoach.geometry.types import HandObservation
from fretcoach.lesson.chords import ChordFingering
from fretcoach.lesson.finger_mapper import MappingSource, mapper_for


class PlacementStatus(Enum):
    CORRECT = 'correct'
    INCORRECT = 'incorrect'
    MISSING = 'missing'


STATUS_COLORS = {
    PlacementStatus.CORRECT: COLOR_CORRECT,
    PlacementStatus.INCORRECT: COLOR_INCORRECT,
    PlacementStatus.MISSING: COLOR_MISSING,
}


def finger_status_color(statuses: Mapping[int, PlacementStatus], finger: int):
    """BGR color for a finger indicator (gray when the finger is not scored)"""
    status = statuses.get(finger)
    return STATUS_COLORS.get(status, COLOR_UNSCORED)


@dataclass(frozen=True)
class PlacementResult:
    """Per-finger statuses plus the lesson-level completion signal"""

    statuses: Mapping[int, PlacementStatus] = field(default_factory=dict)
    total_required: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'statuses', dict(self.statuses))

    @property
    def correct_count(self) -> int:
        return sum(1 for s in self.statuses.values() if s is PlacementStatus.CORRECT)

    @property
    def is_complete(self) -> bool:
        return self.total_required > 0 and self.correct_count == self.total_required

    @property
    def message(self) -> str:
        if self.is_complete:
            return "Perfect! All fingers in position"
        return f"{self.correct_count}/{self.total_required} fingers correct"


EMPTY_RESULT = PlacementResult()


class PlacementScorer:
    """Classify each fretting finger as correct, incorrect or missing"""

    def __init__(self, tolerance: float = PLACEMENT_TOLERANCE, finger_joints: Optional[Mapping[int, str]] = None):
        """
        Args:
            tolerance: Max normalized distance from target for a correct finger
            finger_joints: Finger number -> fingertip joint name
        """
        self.tolerance = tolerance
        self.finger_joints = dict(finger_joints or FINGER_JOINTS)

    def score(self, chord: ChordFingering, hand: HandObservation, zone: MappingSource) -> Dict[int, PlacementStatus]:
        """
        Score the fretting fingers of a chord

        Args:
            chord: Chord being practiced
            hand: Latest fingertip observation (screen space)
            zone: Tracked zone, perspective calibration, or a mapper

        Returns:
            Finger number -> status, for fingers the chord requires
        """
        mapper = mapper_for(zone)
        statuses = {}

        for position in chord.required_positions():
            joint = self.finger_joints.get(position.finger)
            tip = hand.get(joint) if joint else None

            if tip is None:
                statuses[position.finger] = PlacementStatus.MISSING
                continue

            target = mapper.target_position(position.fret, position.string)
            if tip.distance_to(target) < self.tolerance:
                statuses[position.finger] = PlacementStatus.CORRECT
            else:
                statuses[position.finger] = PlacementStatus.INCORRECT

        return statuses

    def evaluate(self, chord: ChordFingering, hand: HandObservation, zone: MappingSource) -> PlacementResult:
        """Score and aggregate into a PlacementResult"""
        return PlacementResult(
            statuses=self.score(chord, hand, zone),
            total_required=len(chord.required_positions()),
        )
