"""
Chord fingerings used by the lessons
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from fretcoach.config.guitar_config import (
    MUTED_FRET,
    NUM_STRINGS,
    OPEN_FRET,
    STANDARD_TUNING,
    ZONE_FRETS,
)

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']


@dataclass(frozen=True)
class FingerPosition:
    """
    One string of a chord shape.

    string: 1 = high E (thinnest) .. 6 = low E (thickest)
    fret: -1 = muted, 0 = open, 1..4 = fretted
    finger: 0 = none, 1 = index, 2 = middle, 3 = ring, 4 = pinky
    """

    string: int
    fret: int
    finger: int = 0

    def __post_init__(self):
        if not 1 <= self.string <= NUM_STRINGS:
            raise ValueError(f"string must be 1..{NUM_STRINGS}, got {self.string}")
        if not MUTED_FRET <= self.fret <= ZONE_FRETS:
            raise ValueError(f"fret must be {MUTED_FRET}..{ZONE_FRETS}, got {self.fret}")
        if not 0 <= self.finger <= 4:
            raise ValueError(f"finger must be 0..4, got {self.finger}")
        if self.fret <= OPEN_FRET and self.finger != 0:
            raise ValueError(f"open or muted string {self.string} cannot have finger {self.finger}")

    @property
    def is_muted(self) -> bool:
        return self.fret == MUTED_FRET

    @property
    def is_fretted(self) -> bool:
        return self.finger > 0


class ChordFingering:
    """Six finger positions, one per string"""

    def __init__(self, name: str, positions):
        positions = tuple(positions)

        if len(positions) != NUM_STRINGS:
            raise ValueError(f"{name}: expected {NUM_STRINGS} positions, got {len(positions)}")
        strings = [p.string for p in positions]
        if len(set(strings)) != NUM_STRINGS:
            raise ValueError(f"{name}: string numbers must be unique, got {strings}")

        self.name = name
        self._positions = positions

    @property
    def positions(self) -> Tuple[FingerPosition, ...]:
        return self._positions

    def required_positions(self) -> List[FingerPosition]:
        """Positions that need a finger (open and muted strings excluded)"""
        return [p for p in self._positions if p.is_fretted]

    def required_fingers(self) -> List[int]:
        return sorted({p.finger for p in self.required_positions()})

    def position_for_string(self, string: int) -> Optional[FingerPosition]:
        for p in self._positions:
            if p.string == string:
                return p
        return None

    @property
    def notation(self) -> str:
        """Low E to high E, e.g. 'x-3-2-0-1-0' for C"""
        symbols = []
        for string in range(NUM_STRINGS, 0, -1):
            fret = self.position_for_string(string).fret
            symbols.append('x' if fret == MUTED_FRET else str(fret))
        return '-'.join(symbols)

    def sounding_notes(self) -> List[str]:
        """Note names from low E to high E, muted strings skipped"""
        notes = []
        for string in range(NUM_STRINGS, 0, -1):
            position = self.position_for_string(string)
            if position.is_muted:
                continue
            note, octave = STANDARD_TUNING[NUM_STRINGS - string]
            semitone = NOTE_NAMES.index(note) + position.fret
            notes.append(f"{NOTE_NAMES[semitone % 12]}{octave + semitone // 12}")
        return notes

    def __iter__(self):
        return iter(self._positions)

    def __len__(self):
        return len(self._positions)

    def __repr__(self):
        return f"ChordFingering({self.name!r}, {self.notation})"


def _shape(name: str, frets: str, fingers: str) -> ChordFingering:
    """
    Build a fingering from low-to-high shorthand

    Args:
        name: Chord name
        frets: Frets from string 6 to string 1 ('x' = muted)
        fingers: Fingers from string 6 to string 1 ('0' = none)
    """
    positions = []
    for i, (fret, finger) in enumerate(zip(frets, fingers)):
        positions.append(FingerPosition(
            string=NUM_STRINGS - i,
            fret=MUTED_FRET if fret == 'x' else int(fret),
            finger=int(finger),
        ))
    return ChordFingering(name, positions)


class GuitarChord(Enum):
    C = 'C'
    D = 'D'
    E = 'E'
    G = 'G'
    A = 'A'
    Am = 'Am'
    Em = 'Em'
    Dm = 'Dm'

    @property
    def fingering(self) -> ChordFingering:
        return CHORD_FINGERINGS[self]

    @classmethod
    def from_name(cls, name: str) -> 'GuitarChord':
        for chord in cls:
            if chord.value.lower() == name.lower():
                return chord
        raise ValueError(f"Unknown chord '{name}'. Available: {[c.value for c in cls]}")


CHORD_FINGERINGS = {
    GuitarChord.C: _shape('C', 'x32010', '032010'),
    GuitarChord.G: _shape('G', '320003', '320004'),  # 3-finger G
    GuitarChord.D: _shape('D', 'xx0232', '000132'),
    GuitarChord.Em: _shape('Em', '022000', '023000'),
    GuitarChord.Am: _shape('Am', 'x02210', '002310'),
    GuitarChord.E: _shape('E', '022100', '023100'),
    GuitarChord.A: _shape('A', 'x02220', '001230'),
    GuitarChord.Dm: _shape('Dm', 'xx0231', '000231'),
}
