#!/usr/bin/env python3
"""
Example: bar|beat notation round-trip.

This demonstrates the full notation workflow:
1. Write a beat and a bassline in bar|beat notation
2. Materialize it into notes (Ableton beats)
3. Export the notes to a MIDI file
4. Read the MIDI file back and render it as minimal notation

Usage:
    python examples/notation_roundtrip.py
    # Creates: examples/output/groove.mid
"""

import random
from pathlib import Path

from mido import MidiFile

from chuk_mcp_barbeat.compiler import midi_to_notes, notes_to_midi
from chuk_mcp_barbeat.core import TimeSignature
from chuk_mcp_barbeat.notation import format_notation, interpret_notation

GROOVE = """
// Drums: kick on every beat, hats in eighths with some swing in velocity,
// snare on 2 and 4
1|1x4@1 v110 t0.5 C1
1|1x8@0.5 v70-90 t0.25 Gb1
1|2,4 v100 D1
@2-4=1

// Bass: one sustained note per bar
1|1-2|1 v90 D0
2|1-3|1 Bb-1
3|1-4|1 F0
4|1-5|1 C0
"""


def main() -> None:
    """Run the round-trip."""
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)
    ts = TimeSignature.COMMON_TIME

    # Step 1-2: Notation to notes
    print("Materializing notation...")
    notes = interpret_notation(GROOVE, ts, rng=random.Random(124))
    print(f"  Notes: {len(notes)}")
    print(f"  Last note ends at beat {max(n.start_time + n.duration for n in notes)}")

    # Step 3: Export
    path = output_dir / "groove.mid"
    notes_to_midi(notes, ts, tempo_bpm=124).save(str(path))
    print(f"\nExported: {path}")

    # Step 4: Import and render
    loaded = midi_to_notes(MidiFile(str(path)))
    print(f"\nRe-imported {len(loaded)} notes, bar 1 as notation:\n")
    bar_one = [n for n in loaded if n.start_time < ts.ableton_beats_per_bar]
    print(format_notation(bar_one, ts))

    print("\nDone! Open the MIDI file in your DAW to hear it.")


if __name__ == "__main__":
    main()
