"""
MIDI bridge - note records to and from Standard MIDI Files.

Export turns materialized notation into a file any DAW can open.
Import reads note_on/note_off pairs back into NoteRecords so existing MIDI
can be rendered as bar|beat text.

All export operations are deterministic: same notes → same MIDI file.
Probability has no MIDI representation and is dropped on export.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mido import Message, MetaMessage, MidiFile, MidiTrack

from chuk_mcp_barbeat.constants import TICKS_PER_BEAT
from chuk_mcp_barbeat.core.time import TimeSignature
from chuk_mcp_barbeat.notation.events import NoteRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MidiEvent:
    """
    A single MIDI note event.

    All times are in ticks (absolute from start of track).
    """

    pitch: int  # MIDI note number (0-127)
    start_ticks: int  # Absolute start time in ticks
    duration_ticks: int  # Duration in ticks
    velocity: int  # 0-127
    channel: int = 0  # 0-15

    def __post_init__(self) -> None:
        """Validate MIDI ranges."""
        if not 0 <= self.pitch <= 127:
            raise ValueError(f"Pitch must be 0-127, got {self.pitch}")
        if not 0 <= self.velocity <= 127:
            raise ValueError(f"Velocity must be 0-127, got {self.velocity}")
        if not 0 <= self.channel <= 15:
            raise ValueError(f"Channel must be 0-15, got {self.channel}")
        if self.start_ticks < 0:
            raise ValueError(f"Start ticks must be >= 0, got {self.start_ticks}")
        if self.duration_ticks <= 0:
            raise ValueError(f"Duration ticks must be > 0, got {self.duration_ticks}")


def beats_to_ticks(beats: float, ticks_per_beat: int = TICKS_PER_BEAT) -> int:
    """Convert Ableton beats to the nearest tick."""
    return round(beats * ticks_per_beat)


def ticks_to_beats(ticks: int, ticks_per_beat: int = TICKS_PER_BEAT) -> float:
    """Convert ticks to Ableton beats."""
    return ticks / ticks_per_beat


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def notes_to_events(
    notes: Sequence[NoteRecord],
    ticks_per_beat: int = TICKS_PER_BEAT,
    channel: int = 0,
) -> list[MidiEvent]:
    """Quantize notes to tick-based events (every note lasts at least one tick)."""
    return [
        MidiEvent(
            pitch=note.pitch,
            start_ticks=beats_to_ticks(note.start_time, ticks_per_beat),
            duration_ticks=max(1, beats_to_ticks(note.duration, ticks_per_beat)),
            velocity=note.velocity,
            channel=channel,
        )
        for note in notes
    ]


def notes_to_midi(
    notes: Sequence[NoteRecord],
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
    tempo_bpm: int = 120,
    ticks_per_beat: int = TICKS_PER_BEAT,
    channel: int = 0,
) -> MidiFile:
    """
    Convert notes to a single-track MidiFile.

    Args:
        notes: Notes in Ableton beats
        time_signature: Written as a meta message when its denominator is a power of two
        tempo_bpm: Tempo in beats per minute
        ticks_per_beat: Resolution (default 480)
        channel: MIDI channel for every note

    Returns:
        A mido MidiFile ready to be saved
    """
    mid = MidiFile(ticks_per_beat=ticks_per_beat)
    track = MidiTrack()
    mid.tracks.append(track)

    # Set tempo (microseconds per beat)
    tempo_us = int(60_000_000 / tempo_bpm)
    track.append(MetaMessage("set_tempo", tempo=tempo_us, time=0))

    if _is_power_of_two(time_signature.denominator):
        track.append(
            MetaMessage(
                "time_signature",
                numerator=time_signature.numerator,
                denominator=time_signature.denominator,
                time=0,
            )
        )
    else:
        logger.warning("Time signature %s cannot be stored in a MIDI file, omitting it", time_signature)

    messages: list[tuple[int, Message]] = []
    for event in notes_to_events(notes, ticks_per_beat, channel):
        messages.append(
            (
                event.start_ticks,
                Message("note_on", channel=event.channel, note=event.pitch, velocity=event.velocity),
            )
        )
        messages.append(
            (
                event.start_ticks + event.duration_ticks,
                Message("note_off", channel=event.channel, note=event.pitch, velocity=0),
            )
        )

    # note_off before note_on at the same tick so repeated pitches retrigger cleanly
    messages.sort(key=lambda x: (x[0], x[1].type != "note_off"))

    # Convert to delta times
    current_time = 0
    for abs_time, msg in messages:
        msg.time = abs_time - current_time
        track.append(msg)
        current_time = abs_time

    track.append(MetaMessage("end_of_track", time=0))

    logger.debug("Wrote %d note(s) to MIDI at %d ticks per beat", len(notes), ticks_per_beat)
    return mid


def midi_to_notes(midi: MidiFile) -> list[NoteRecord]:
    """
    Read the notes of every track in a MidiFile.

    note_on with velocity 0 counts as note_off. Overlapping notes of the
    same pitch and channel close first in, first out. Notes that never end
    or last zero ticks are skipped.

    Returns:
        Notes sorted by (start_time, pitch), probability 1.0
    """
    ticks_per_beat = midi.ticks_per_beat
    records: list[NoteRecord] = []

    for track in midi.tracks:
        open_notes: dict[tuple[int, int], deque[tuple[int, int]]] = defaultdict(deque)
        abs_ticks = 0

        for msg in track:
            abs_ticks += msg.time
            if msg.type == "note_on" and msg.velocity > 0:
                open_notes[(msg.channel, msg.note)].append((abs_ticks, msg.velocity))
            elif msg.type in ("note_off", "note_on"):
                pending = open_notes.get((msg.channel, msg.note))
                if not pending:
                    continue
                start_ticks, velocity = pending.popleft()
                if abs_ticks == start_ticks:
                    logger.debug("Skipping zero-length note %d at tick %d", msg.note, start_ticks)
                    continue
                records.append(
                    NoteRecord(
                        start_time=ticks_to_beats(start_ticks, ticks_per_beat),
                        pitch=msg.note,
                        duration=ticks_to_beats(abs_ticks - start_ticks, ticks_per_beat),
                        velocity=velocity,
                    )
                )

        unterminated = sum(len(pending) for pending in open_notes.values())
        if unterminated:
            logger.warning("Skipping %d note(s) without a note_off", unterminated)

    return sorted(records, key=NoteRecord.sort_key)


def midi_time_signature(midi: MidiFile) -> TimeSignature | None:
    """The first time signature meta message in the file, if any."""
    for track in midi.tracks:
        for msg in track:
            if msg.type == "time_signature":
                return TimeSignature(msg.numerator, msg.denominator)
    return None
