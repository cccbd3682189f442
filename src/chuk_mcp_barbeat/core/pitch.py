"""
Pitch primitives - PitchClass and note-name conversion.

PitchClass represents the 12 chromatic pitches (octave-independent).
Note names follow the Ableton Live convention where C3 is middle C (MIDI 60),
so MIDI = (octave + 2) * 12 + pitch class.
"""

from __future__ import annotations

import re
from enum import IntEnum

from chuk_mcp_barbeat.constants import MIDI_MAX, MIDI_MIN

# Display name mappings (module level to avoid IntEnum member issues)
_SHARP_NAMES: list[str] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]
_FLAT_NAMES: list[str] = [
    "C",
    "Db",
    "D",
    "Eb",
    "E",
    "F",
    "Gb",
    "G",
    "Ab",
    "A",
    "Bb",
    "B",
]

_NATURALS: dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}
_ACCIDENTALS: dict[str, int] = {"": 0, "#": 1, "b": -1}

# Letter is case-insensitive, accidental is a literal '#' or 'b'
NOTE_NAME_RE = re.compile(r"^([A-Ga-g])([#b]?)(-?[0-9]+)$")

# Octave offset for the C3 = 60 convention
_OCTAVE_OFFSET = 2


class PitchClass(IntEnum):
    """
    The 12 chromatic pitch classes (0-11).

    Octave-independent - C3 and C4 are both PitchClass.C.
    Enharmonic equivalents share the same value (C# == Db == 1).

    Spelling is a display concern, handled at serialization.
    Notation output uses flats.
    """

    C = 0
    Cs = 1  # C# / Db
    D = 2
    Ds = 3  # D# / Eb
    E = 4
    F = 5
    Fs = 6  # F# / Gb
    G = 7
    Gs = 8  # G# / Ab
    A = 9
    As = 10  # A# / Bb
    B = 11

    def spell(self, prefer_flats: bool = True) -> str:
        """Get human-readable name."""
        names = _FLAT_NAMES if prefer_flats else _SHARP_NAMES
        return names[self.value]

    @classmethod
    def from_midi(cls, midi_note: int) -> PitchClass:
        """Extract pitch class from MIDI note number."""
        return cls(midi_note % 12)


def note_name_to_midi(name: str) -> int:
    """
    Convert a note name to a MIDI note number.

    Args:
        name: Note name like 'C3', 'F#1', 'Bb-1', 'eb2'

    Returns:
        MIDI note number (0-127)

    Raises:
        ValueError: If the name is malformed or outside the MIDI range
    """
    match = NOTE_NAME_RE.match(name)
    if not match:
        raise ValueError(f"Unknown pitch name: {name}")

    letter, accidental, octave_str = match.groups()
    semitone = _NATURALS[letter.upper()] + _ACCIDENTALS[accidental]
    midi = (int(octave_str) + _OCTAVE_OFFSET) * 12 + semitone

    if not MIDI_MIN <= midi <= MIDI_MAX:
        raise ValueError(f"MIDI pitch {midi} ({name}) outside valid range 0-127")

    return midi


def midi_to_note_name(midi: int, prefer_flats: bool = True) -> str:
    """
    Convert a MIDI note number to a note name (60 -> 'C3').

    Args:
        midi: MIDI note number (0-127)
        prefer_flats: Spell black keys as flats (Db) rather than sharps (C#)

    Returns:
        Note name
    """
    if not MIDI_MIN <= midi <= MIDI_MAX:
        raise ValueError(f"Pitch must be 0-127, got {midi}")

    octave = midi // 12 - _OCTAVE_OFFSET
    return f"{PitchClass.from_midi(midi).spell(prefer_flats)}{octave}"
