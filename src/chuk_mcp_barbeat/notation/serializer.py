"""
Notation serializer - note records back to bar|beat text.

Output is the minimal canonical form: one line per start time, modifiers
only where they change, pitches that share modifiers joined by commas.

    [C3 v100 t1 @0, E3 @0, G3 v80 @1]  ->  "1|1 C3,E3\n1|2 v80 G3"

Identical lines collapse: three or more evenly spaced ones into a repeat
(`1|1x16@0.25 Gb1`), others in the same bar into a beat list (`1|1,3 C1`).
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from chuk_mcp_barbeat.constants import MIN_SERIALIZED_REPEAT, TIME_EPSILON
from chuk_mcp_barbeat.core.pitch import midi_to_note_name
from chuk_mcp_barbeat.core.time import (
    TimeSignature,
    ableton_beats_to_bar_beat,
    ableton_beats_to_musical_beats,
    format_beat_value,
    format_probability,
    musical_beats_to_ableton_beats,
    parse_beat_value,
)
from chuk_mcp_barbeat.notation.events import NoteRecord
from chuk_mcp_barbeat.notation.materializer import ModifierState

if TYPE_CHECKING:
    from chuk_mcp_barbeat.models.config import NotationConfig

logger = logging.getLogger(__name__)


def _same(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=0, abs_tol=TIME_EPSILON)


def _same_content(a: list[NoteRecord], b: list[NoteRecord]) -> bool:
    """Same pitches in the same order, with the same modifiers."""
    return len(a) == len(b) and all(
        x.pitch == y.pitch
        and x.velocity == y.velocity
        and _same(x.duration, y.duration)
        and _same(x.probability, y.probability)
        for x, y in zip(a, b)
    )


class NotationSerializer:
    """
    Serializes NoteRecords to notation text.

    Notes are written in the order given. Sort them by (start_time, pitch)
    first for canonical output (format_notation does this).
    """

    def __init__(
        self,
        time_signature: TimeSignature = TimeSignature.COMMON_TIME,
        config: NotationConfig | None = None,
    ):
        self.time_signature = time_signature
        self.config = config

    def serialize(self, notes: list[NoteRecord]) -> str:
        """
        Serialize notes to notation text.

        Velocity-0 notes cannot be written (v0 means delete) and are skipped.

        Returns:
            Lines joined with newlines, empty string for no notes
        """
        state = ModifierState.from_config(self.config)
        groups = self._group_by_start(notes)
        lines: list[str] = []

        index = 0
        while index < len(groups):
            group = groups[index]
            head, covered = self._position_text(groups, index)
            tokens = [head]
            run: list[str] = []

            for note in group:
                duration = self._musical(note.duration)
                modifiers = []
                if note.velocity != state.velocity:
                    modifiers.append(f"v{note.velocity}")
                if not _same(duration, state.duration):
                    modifiers.append(f"t{format_beat_value(duration)}")
                if not _same(note.probability, state.probability):
                    modifiers.append(f"p{format_probability(note.probability)}")

                if modifiers:
                    if run:
                        tokens.append(",".join(run))
                        run = []
                    tokens.extend(modifiers)
                    state = ModifierState(
                        velocity=note.velocity,
                        duration=duration,
                        probability=note.probability,
                    )

                run.append(midi_to_note_name(note.pitch))

            if run:
                tokens.append(",".join(run))
            lines.append(" ".join(tokens))
            index += covered

        logger.debug("Serialized %d note(s) to %d line(s)", len(notes), len(lines))
        return "\n".join(lines)

    def _musical(self, ableton_beats: float) -> float:
        return ableton_beats_to_musical_beats(ableton_beats, self.time_signature.denominator)

    def _position_text(self, groups: list[list[NoteRecord]], index: int) -> tuple[str, int]:
        """
        Position token for the line starting at groups[index].

        Returns:
            The token and how many groups the line covers
        """
        first = groups[index]
        position = ableton_beats_to_bar_beat(first[0].start_time, self.time_signature)

        count, interval = self._repeat_run(groups, index)
        if count >= MIN_SERIALIZED_REPEAT:
            interval_text = format_beat_value(interval)
            durations = {format_beat_value(self._musical(note.duration)) for note in first}
            # The interval defaults to the sticky duration
            if durations == {interval_text}:
                return f"{position}x{count}", count
            return f"{position}x{count}@{interval_text}", count

        beats = [position.beat]
        for group in groups[index + 1 :]:
            if not _same_content(first, group):
                break
            next_position = ableton_beats_to_bar_beat(group[0].start_time, self.time_signature)
            if next_position.bar != position.bar:
                break
            beats.append(next_position.beat)

        if len(beats) > 1:
            beat_text = ",".join(format_beat_value(beat) for beat in beats)
            return f"{position.bar}|{beat_text}", len(beats)
        return str(position), 1

    def _repeat_run(self, groups: list[list[NoteRecord]], index: int) -> tuple[int, float]:
        """Length and interval (musical beats) of the evenly spaced identical groups at index."""
        first = groups[index]
        if index + 1 >= len(groups) or not _same_content(first, groups[index + 1]):
            return 1, 0.0

        start = self._musical(first[0].start_time)
        interval = self._musical(groups[index + 1][0].start_time) - start
        if interval <= TIME_EPSILON:
            return 1, 0.0

        # Spacing as the written interval will read back
        written = parse_beat_value(format_beat_value(interval))
        denominator = self.time_signature.denominator
        count = 1
        while index + count < len(groups):
            group = groups[index + count]
            expected = musical_beats_to_ableton_beats(start + count * written, denominator)
            if not (_same_content(first, group) and _same(group[0].start_time, expected)):
                break
            count += 1
        return count, interval

    @staticmethod
    def _group_by_start(notes: list[NoteRecord]) -> list[list[NoteRecord]]:
        """Group consecutive notes sharing a start time, skipping v0 notes."""
        groups: list[list[NoteRecord]] = []
        for note in notes:
            if note.velocity == 0:
                logger.warning("Skipping note %d at %s with velocity 0", note.pitch, note.start_time)
                continue
            if groups and _same(groups[-1][0].start_time, note.start_time):
                groups[-1].append(note)
            else:
                groups.append([note])
        return groups


def serialize(
    notes: list[NoteRecord],
    time_signature: TimeSignature = TimeSignature.COMMON_TIME,
    config: NotationConfig | None = None,
) -> str:
    """
    Convenience function to serialize notes.

    Args:
        notes: Notes in output order
        time_signature: Time signature
        config: Notation config (sticky defaults)

    Returns:
        Notation text
    """
    return NotationSerializer(time_signature, config).serialize(notes)
