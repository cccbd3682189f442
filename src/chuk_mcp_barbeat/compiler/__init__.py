"""
MIDI bridge - NoteRecords to and from Standard MIDI Files.

The pipeline:
    notation text → NoteRecords → MidiEvents (ticks) → MIDI File
    MIDI File → NoteRecords → notation text
"""

from chuk_mcp_barbeat.compiler.midi import (
    MidiEvent,
    beats_to_ticks,
    midi_time_signature,
    midi_to_notes,
    notes_to_events,
    notes_to_midi,
    ticks_to_beats,
)

__all__ = [
    "MidiEvent",
    "beats_to_ticks",
    "midi_time_signature",
    "midi_to_notes",
    "notes_to_events",
    "notes_to_midi",
    "ticks_to_beats",
]
