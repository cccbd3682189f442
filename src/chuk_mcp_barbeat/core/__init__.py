"""
Core primitives - pitch and musical time.

These are the invariants everything else composes on:
- PitchClass: The 12 chromatic pitch classes (0-11)
- note_name_to_midi / midi_to_note_name: C3 = 60 note names
- TimeSignature: Beats per bar over beat unit
- BarBeatPosition: 1-based bar|beat position
- Conversions between bar|beat, musical beats and Ableton beats
"""

from chuk_mcp_barbeat.core.pitch import PitchClass, midi_to_note_name, note_name_to_midi
from chuk_mcp_barbeat.core.time import (
    BarBeatPosition,
    TimeSignature,
    ableton_beats_to_bar_beat,
    ableton_beats_to_musical_beats,
    bar_beat_to_ableton_beats,
    bar_beat_to_musical_beats,
    format_beat_value,
    musical_beats_to_ableton_beats,
    parse_beat_value,
    parse_duration,
)

__all__ = [
    # Pitch
    "PitchClass",
    "midi_to_note_name",
    "note_name_to_midi",
    # Time
    "BarBeatPosition",
    "TimeSignature",
    "ableton_beats_to_bar_beat",
    "ableton_beats_to_musical_beats",
    "bar_beat_to_ableton_beats",
    "bar_beat_to_musical_beats",
    "format_beat_value",
    "musical_beats_to_ableton_beats",
    "parse_beat_value",
    "parse_duration",
]
